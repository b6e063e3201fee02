# src/support_rag/planner/state.py

from __future__ import annotations

from typing import Any, List, Literal, Optional, get_args

from pydantic import BaseModel, ConfigDict, Field, confloat, conint, field_validator

QueryType = Literal["FACTUAL", "COMPARISON", "PROCEDURAL", "ANALYTICAL"]
QUERY_TYPES = get_args(QueryType)
DEFAULT_QUERY_TYPE: QueryType = "FACTUAL"


def coerce_query_type(value: Any) -> str:
    """Normalize a type tag; unknown values become FACTUAL."""
    if isinstance(value, str):
        tag = value.strip().upper()
        if tag in QUERY_TYPES:
            return tag
    return DEFAULT_QUERY_TYPE


class SubQuery(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: conint(ge=0)
    query: str = Field(..., min_length=1)
    dependencies: List[int] = Field(default_factory=list)
    query_type: QueryType = DEFAULT_QUERY_TYPE

    @field_validator("query_type", mode="before")
    @classmethod
    def _coerce_type(cls, v):
        return coerce_query_type(v)


class QueryPlan(BaseModel):
    """Sub-queries plus an order in which every dependency runs first.

    `degraded` marks plans whose dependency graph had a cycle and were given
    the sequential order 0..n-1 instead.
    """

    model_config = ConfigDict(extra="forbid")

    original_query: str
    sub_queries: List[SubQuery] = Field(default_factory=list)
    execution_order: List[int] = Field(default_factory=list)
    degraded: bool = False

    @property
    def is_simple(self) -> bool:
        return len(self.sub_queries) <= 1

    @property
    def size(self) -> int:
        return len(self.sub_queries)

    def get(self, sub_query_id: int) -> Optional[SubQuery]:
        if 0 <= sub_query_id < len(self.sub_queries):
            return self.sub_queries[sub_query_id]
        return None


# ---- structured LLM outputs ------------------------------------------------


class ProposedSubQuery(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: int
    query: str
    dependencies: List[int] = Field(default_factory=list)
    query_type: str = DEFAULT_QUERY_TYPE


class DecompositionResult(BaseModel):
    model_config = ConfigDict(extra="forbid")

    sub_queries: List[ProposedSubQuery] = Field(default_factory=list)


class ClassificationResult(BaseModel):
    model_config = ConfigDict(extra="forbid")

    query_type: str = DEFAULT_QUERY_TYPE
    confidence: confloat(ge=0.0, le=1.0) = 0.5
    reasoning: str = ""

    @field_validator("query_type", mode="before")
    @classmethod
    def _coerce_type(cls, v):
        return coerce_query_type(v)
