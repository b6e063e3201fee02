# src/support_rag/answer/state.py
from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, confloat
from pydantic.alias_generators import to_camel

from support_rag.retrieval.state import RetrievedDocument

EXCERPT_LENGTH = 200
ELLIPSIS = "..."
NO_INFORMATION_RESPONSE = "I don't have enough information to answer this question."


def make_excerpt(content: str, length: int = EXCERPT_LENGTH) -> str:
    """At most `length` characters, ellipsis included."""
    if len(content) <= length:
        return content
    return content[: length - len(ELLIPSIS)] + ELLIPSIS


class Source(BaseModel):
    """Citation shown to the caller. Serialises with camelCase keys."""

    model_config = ConfigDict(extra="forbid", alias_generator=to_camel, populate_by_name=True)

    document_id: str
    title: str = "Unknown"
    excerpt: str = ""
    relevance_score: float = 1.0

    @classmethod
    def from_document(cls, doc: RetrievedDocument) -> "Source":
        score = doc.best_score
        return cls(
            document_id=doc.dedup_key,
            title=doc.title or "Unknown",
            excerpt=make_excerpt(doc.content),
            relevance_score=1.0 if score is None else score,
        )


class SynthesisResult(BaseModel):
    model_config = ConfigDict(extra="forbid")

    response: str
    sources: List[Source] = Field(default_factory=list)
    tokens_used: int = 0
    model_used: str = "none"


class ValidationResult(BaseModel):
    """Response check on a 0-100 confidence scale."""

    model_config = ConfigDict(extra="forbid")

    valid: bool
    confidence_score: confloat(ge=0.0, le=100.0)
    hallucinated_claims: List[str] = Field(default_factory=list)
    verification_details: Dict[str, Any] = Field(default_factory=dict)
    requires_human_review: bool = False
    review_reason: Optional[str] = None
