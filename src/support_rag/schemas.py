# src/support_rag/schemas.py
"""Request/response models exchanged with callers (camelCase on the wire)."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, confloat, field_validator
from pydantic.alias_generators import to_camel

from support_rag.answer.state import Source

FILTER_KEYS = ("documentType", "source", "dateFrom", "dateTo")


class QueryRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", alias_generator=to_camel, populate_by_name=True)

    query: str = Field(..., min_length=1)
    session_id: Optional[str] = None
    context: Dict[str, Any] = Field(default_factory=dict)
    stream: bool = False

    @field_validator("query")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("query must not be blank")
        return v.strip()


class ResponseMetadata(BaseModel):
    model_config = ConfigDict(extra="forbid", alias_generator=to_camel, populate_by_name=True)

    tokens_used: int = 0
    latency_ms: int = 0
    model_used: str = "none"
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    # keys are already camelCase, e.g. documentsRetrieved, retrievalMethod
    additional_info: Dict[str, Any] = Field(default_factory=dict)


class QueryResponse(BaseModel):
    model_config = ConfigDict(extra="forbid", alias_generator=to_camel, populate_by_name=True)

    response: str
    sources: List[Source] = Field(default_factory=list)
    confidence_score: confloat(ge=0.0, le=1.0) = 1.0
    metadata: ResponseMetadata = Field(default_factory=ResponseMetadata)


def extract_filters(context: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Filter hints from the request context, or None when there are none."""
    if not context:
        return None
    filters = {k: context[k] for k in FILTER_KEYS if context.get(k) is not None}
    return filters or None
