# src/support_rag/compression/tokens.py

from __future__ import annotations

import logging
import math
from typing import Dict, Iterable, Optional, Protocol, Union

import tiktoken

from support_rag.compression.constants import (
    DEFAULT_ENCODING,
    DEFAULT_MAX_CONTEXT_TOKENS,
    DEFAULT_MAX_RESPONSE_TOKENS,
    SAFETY_MARGIN_TOKENS,
    WORDS_PER_TOKEN,
)
from support_rag.compression.state import CompressionMetrics, TokenBudgetValidation

logger = logging.getLogger(__name__)


class Encoding(Protocol):
    def encode(self, text: str) -> list:
        ...

    def decode(self, tokens: list) -> str:
        ...


def heuristic_token_count(text: str) -> int:
    words = len(text.split())
    return math.ceil(words / WORDS_PER_TOKEN) if words else 0


def heuristic_truncate(text: str, max_tokens: int) -> str:
    max_words = int(max_tokens * WORDS_PER_TOKEN)
    return " ".join(text.split()[:max_words])


class TokenBudgetManager:
    """Counts and truncates text in model-tokenizer units.

    The tiktoken encoding is loaded on first use. Any tokenizer error falls
    back to the words / 0.75 heuristic. Compression ratios are tracked per
    correlation id for reporting.
    """

    def __init__(
        self,
        *,
        encoding: Optional[Encoding] = None,
        encoding_name: str = DEFAULT_ENCODING,
        max_context_tokens: int = DEFAULT_MAX_CONTEXT_TOKENS,
        max_response_tokens: int = DEFAULT_MAX_RESPONSE_TOKENS,
    ):
        self._encoding = encoding
        self._encoding_name = encoding_name
        self.max_context_tokens = max_context_tokens
        self.max_response_tokens = max_response_tokens
        self._metrics: Dict[str, CompressionMetrics] = {}

    @property
    def encoding(self) -> Encoding:
        if self._encoding is None:
            self._encoding = tiktoken.get_encoding(self._encoding_name)
        return self._encoding

    # ---- counting / truncation -------------------------------------------

    def count_tokens(self, text: Union[str, Iterable[str], None]) -> int:
        if text is None:
            return 0
        if not isinstance(text, str):
            return sum(self.count_tokens(t) for t in text)
        if not text:
            return 0
        try:
            return len(self.encoding.encode(text))
        except Exception as e:
            logger.warning(f"Tokenizer failed, using word heuristic: {e}")
            return heuristic_token_count(text)

    def fits_within_budget(self, text: str, max_tokens: Optional[int] = None) -> bool:
        limit = self.max_context_tokens if max_tokens is None else max_tokens
        return self.count_tokens(text) <= limit

    def truncate_to_tokens(self, text: str, max_tokens: int) -> str:
        if not text or max_tokens <= 0:
            return ""
        try:
            tokens = self.encoding.encode(text)
            if len(tokens) <= max_tokens:
                return text
            return self.encoding.decode(tokens[:max_tokens])
        except Exception as e:
            logger.warning(f"Tokenizer failed during truncation, using word heuristic: {e}")
            return heuristic_truncate(text, max_tokens)

    def enforce_token_budget(self, text: str, max_tokens: Optional[int] = None) -> str:
        limit = self.max_context_tokens if max_tokens is None else max_tokens
        if self.count_tokens(text) <= limit:
            return text
        truncated = self.truncate_to_tokens(text, limit)
        logger.info(f"Enforced token budget of {limit}")
        return truncated

    # ---- budgeting --------------------------------------------------------

    def calculate_available_context_tokens(
        self,
        total_tokens: int,
        response_tokens: int = DEFAULT_MAX_RESPONSE_TOKENS,
        system_prompt_tokens: int = 0,
    ) -> int:
        available = total_tokens - response_tokens - system_prompt_tokens - SAFETY_MARGIN_TOKENS
        return max(0, available)

    def validate_budget(
        self,
        context_tokens: int,
        response_tokens: int,
        model_max_tokens: int,
    ) -> TokenBudgetValidation:
        total = context_tokens + response_tokens + SAFETY_MARGIN_TOKENS
        return TokenBudgetValidation(
            is_valid=total <= model_max_tokens,
            context_tokens=context_tokens,
            response_tokens=response_tokens,
            total_required=total,
            model_max_tokens=model_max_tokens,
            remaining_tokens=model_max_tokens - total,
        )

    # ---- metrics ----------------------------------------------------------

    def log_compression_ratio(self, query_id: str, original_tokens: int, compressed_tokens: int) -> CompressionMetrics:
        ratio = compressed_tokens / original_tokens if original_tokens > 0 else 0.0
        metrics = CompressionMetrics(
            original_tokens=original_tokens,
            compressed_tokens=compressed_tokens,
            compression_ratio=ratio,
            reduction_percent=(1.0 - ratio) * 100.0 if original_tokens > 0 else 0.0,
        )
        self._metrics[query_id] = metrics
        logger.info(
            f"Compression {query_id}: {original_tokens} -> {compressed_tokens} tokens "
            f"(ratio {ratio:.2f}, {metrics.reduction_percent:.1f}% reduction)"
        )
        return metrics

    def get_compression_metrics(self, query_id: str) -> Optional[CompressionMetrics]:
        return self._metrics.get(query_id)

    def average_compression_ratio(self) -> float:
        if not self._metrics:
            return 0.0
        return sum(m.compression_ratio for m in self._metrics.values()) / len(self._metrics)

    def average_reduction_percent(self) -> float:
        if not self._metrics:
            return 0.0
        return sum(m.reduction_percent for m in self._metrics.values()) / len(self._metrics)

    def tracked_operations_count(self) -> int:
        return len(self._metrics)

    def clear_metrics(self) -> None:
        self._metrics.clear()
