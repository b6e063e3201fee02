# src/support_rag/executor/state.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

from support_rag.answer.state import Source
from support_rag.retrieval.state import RetrievedDocument

FAILED_SUB_QUERY_PREFIX = "Failed to process this sub-query: "


@dataclass(frozen=True)
class SubQueryResult:
    """Answer to one sub-query. Written once into the executor's result map."""

    sub_query_id: int
    query: str
    response: str
    documents: List[RetrievedDocument] = field(default_factory=list)
    sources: List[Source] = field(default_factory=list)
    tokens_used: int = 0
    success: bool = True
    model_used: str = "none"

    @classmethod
    def failed(cls, sub_query_id: int, query: str, error: BaseException) -> "SubQueryResult":
        return cls(
            sub_query_id=sub_query_id,
            query=query,
            response=FAILED_SUB_QUERY_PREFIX + str(error),
            success=False,
        )


@dataclass(frozen=True)
class ExecutionReport:
    """Ordered results plus how the plan was run."""

    results: List[SubQueryResult]
    levels: List[List[int]] = field(default_factory=list)
    fell_back: bool = False
