# src/support_rag/compression/state.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List


@dataclass(frozen=True)
class CompressionResult:
    compressed_context: str
    compression_ratio: float
    source_document_ids: List[str] = field(default_factory=list)
    original_tokens: int = 0
    compressed_tokens: int = 0
    query_id: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.compressed_context


@dataclass(frozen=True)
class CompressionMetrics:
    original_tokens: int
    compressed_tokens: int
    compression_ratio: float
    reduction_percent: float


@dataclass(frozen=True)
class TokenBudgetValidation:
    is_valid: bool
    context_tokens: int
    response_tokens: int
    total_required: int
    model_max_tokens: int
    remaining_tokens: int


@dataclass(frozen=True)
class ScoredSentence:
    text: str
    score: float
    document_id: str
    position: int
