# src/support_rag/retrieval/adapters.py
"""Search backend contracts and the adapters shipped with the package.

The vector and keyword backends are external collaborators. The pipeline
only depends on the two protocols below; anything with a matching async
`search` method can be plugged in.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Protocol

from langchain_core.vectorstores import VectorStore
from rank_bm25 import BM25Okapi

from support_rag.retrieval.constants import VECTOR_SCORE_KEY
from support_rag.retrieval.state import KeywordHit, RetrievedDocument

logger = logging.getLogger(__name__)

FilterBuilder = Callable[[Mapping[str, Any]], Optional[Dict[str, Any]]]


class VectorSearchAdapter(Protocol):
    """Vector-similarity backend.

    Must return documents ranked best-first, at most `k` of them.

    Example implementation:
        class PgVectorSearch:
            async def search(self, query, k, filters=None):
                rows = await self.pool.fetch(SQL, await self.embed(query), k)
                return [RetrievedDocument(id=r["id"], content=r["content"], metadata=r["meta"]) for r in rows]
    """

    async def search(
        self,
        query: str,
        k: int,
        filters: Optional[Mapping[str, Any]] = None,
    ) -> List[RetrievedDocument]:
        ...


class KeywordSearchAdapter(Protocol):
    """Keyword/BM25 backend. Returns hits ranked best-first, at most `k`."""

    async def search(self, query: str, k: int) -> List[KeywordHit]:
        ...


def build_vector_filter(filters: Optional[Mapping[str, Any]]) -> Optional[Dict[str, Any]]:
    """Map request filter hints onto metadata filter syntax.

    documentType -> document_type, dateFrom/dateTo -> created_at range,
    every other key is passed through as an equality match.
    """
    if not filters:
        return None
    out: Dict[str, Any] = {}
    date_range: Dict[str, Any] = {}
    for key, value in filters.items():
        if value is None:
            continue
        if key == "documentType":
            out["document_type"] = value
        elif key == "dateFrom":
            date_range["$gte"] = value
        elif key == "dateTo":
            date_range["$lte"] = value
        else:
            out[key] = value
    if date_range:
        out["created_at"] = date_range
    return out or None


class LangChainVectorSearch:
    """VectorSearchAdapter over any langchain-core VectorStore."""

    def __init__(self, vector_store: VectorStore, *, filter_builder: FilterBuilder = build_vector_filter):
        self._store = vector_store
        self._filter_builder = filter_builder

    async def search(
        self,
        query: str,
        k: int,
        filters: Optional[Mapping[str, Any]] = None,
    ) -> List[RetrievedDocument]:
        kwargs: Dict[str, Any] = {}
        store_filter = self._filter_builder(filters) if filters else None
        if store_filter is not None:
            kwargs["filter"] = store_filter

        pairs = await self._store.asimilarity_search_with_relevance_scores(query, k=k, **kwargs)
        docs = [RetrievedDocument.from_langchain(doc, **{VECTOR_SCORE_KEY: score}) for doc, score in pairs]
        logger.debug(f"Vector search returned {len(docs)} documents for k={k}")
        return docs


_TOKEN_RE = re.compile(r"\w+")


def tokenize(text: str) -> List[str]:
    return _TOKEN_RE.findall((text or "").lower())


class InMemoryKeywordSearch:
    """BM25 keyword search over a fixed corpus, for local runs and tests.

    Only documents sharing at least one term with the query are returned,
    ranked by Okapi BM25 score (corpus order on ties).
    """

    def __init__(self, documents: Iterable[RetrievedDocument]):
        self._docs = list(documents)
        self._tokens = [tokenize(f"{d.title or ''} {d.content}") for d in self._docs]
        self._bm25 = BM25Okapi(self._tokens) if self._docs else None

    async def search(self, query: str, k: int) -> List[KeywordHit]:
        query_tokens = tokenize(query)
        if not query_tokens or self._bm25 is None:
            return []
        query_terms = set(query_tokens)
        matched = [idx for idx, tokens in enumerate(self._tokens) if query_terms.intersection(tokens)]
        if not matched:
            return []
        scores = self._bm25.get_scores(query_tokens)
        matched.sort(key=lambda idx: (-scores[idx], idx))
        hits = []
        for idx in matched[:k]:
            doc = self._docs[idx]
            score = float(scores[idx])
            hits.append(KeywordHit(id=doc.dedup_key, content=doc.content, title=doc.title, source=doc.source, score=score))
        return hits
