# src/support_rag/retrieval/state.py

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, List, Mapping, Optional

from langchain_core.documents import Document

from support_rag.retrieval.constants import (
    KEYWORD_SCORE_KEY,
    RERANK_SCORE_KEY,
    RRF_SCORE_KEY,
    VECTOR_SCORE_KEY,
)


@dataclass(frozen=True)
class RetrievedDocument:
    """Immutable retrieval result. Scores are annotated via `with_metadata`."""

    id: Optional[str]
    content: str
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    @property
    def title(self) -> Optional[str]:
        return self.metadata.get("title")

    @property
    def source(self) -> Optional[str]:
        return self.metadata.get("source")

    @property
    def dedup_key(self) -> str:
        """Document id, or a content hash when the backend gave none."""
        if self.id:
            return str(self.id)
        doc_id = self.metadata.get("id")
        if doc_id:
            return str(doc_id)
        return "sha256:" + hashlib.sha256(self.content.encode("utf-8")).hexdigest()

    @property
    def best_score(self) -> Optional[float]:
        for key in (RERANK_SCORE_KEY, RRF_SCORE_KEY, VECTOR_SCORE_KEY, KEYWORD_SCORE_KEY):
            value = self.metadata.get(key)
            if value is not None:
                return float(value)
        return None

    def with_metadata(self, **updates: Any) -> "RetrievedDocument":
        return replace(self, metadata={**self.metadata, **updates})

    @classmethod
    def from_langchain(cls, doc: Document, **scores: Any) -> "RetrievedDocument":
        meta = dict(doc.metadata or {})
        doc_id = doc.id or meta.get("id")
        meta.update({k: v for k, v in scores.items() if v is not None})
        return cls(id=str(doc_id) if doc_id is not None else None, content=doc.page_content, metadata=meta)


@dataclass(frozen=True)
class KeywordHit:
    """Row returned by the keyword/BM25 backend."""

    id: str
    content: str
    title: Optional[str] = None
    source: Optional[str] = None
    score: float = 0.0

    def to_document(self) -> RetrievedDocument:
        return RetrievedDocument(
            id=self.id,
            content=self.content,
            metadata={"title": self.title, "source": self.source, KEYWORD_SCORE_KEY: self.score},
        )


@dataclass(frozen=True)
class MultiHopResult:
    documents: List[RetrievedDocument]
    hops_performed: int
    hop_queries: List[str]


@dataclass(frozen=True)
class RetrievalOutcome:
    documents: List[RetrievedDocument]
    method: str
    hops_performed: int = 1
    hop_queries: List[str] = field(default_factory=list)


def dedupe_documents(documents) -> List[RetrievedDocument]:
    """Drop repeated documents by dedup key, keeping first-seen order."""
    seen = set()
    out: List[RetrievedDocument] = []
    for doc in documents:
        key = doc.dedup_key
        if key in seen:
            continue
        seen.add(key)
        out.append(doc)
    return out
