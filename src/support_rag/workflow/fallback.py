# src/support_rag/workflow/fallback.py

from __future__ import annotations

import logging
from typing import Optional, Sequence

from support_rag.answer.state import SynthesisResult, ValidationResult
from support_rag.compression.state import CompressionResult
from support_rag.planner.planner import simple_plan
from support_rag.planner.state import QueryPlan
from support_rag.retrieval.state import RetrievalOutcome, RetrievedDocument
from support_rag.workflow.constants import (
    GENERATION_FALLBACK_MODEL,
    GENERATION_FALLBACK_RESPONSE,
    RETRIEVAL_METHOD_FALLBACK,
    VALIDATION_FALLBACK_CONFIDENCE,
    VALIDATION_FALLBACK_REASON,
)

logger = logging.getLogger(__name__)


class FallbackStrategy:
    """Default value for each stage once its retries are spent."""

    def planning(self, query: str, error: Optional[BaseException] = None) -> QueryPlan:
        logger.warning(f"Planning fallback: single sub-query plan ({error})")
        return simple_plan(query)

    def retrieval(self, query: str, error: Optional[BaseException] = None) -> RetrievalOutcome:
        logger.warning(f"Retrieval fallback: no documents ({error})")
        return RetrievalOutcome(documents=[], method=RETRIEVAL_METHOD_FALLBACK, hops_performed=0, hop_queries=[query])

    def compression(
        self,
        documents: Sequence[RetrievedDocument],
        error: Optional[BaseException] = None,
    ) -> CompressionResult:
        logger.warning(f"Compression fallback: concatenating {len(documents)} documents ({error})")
        ids = []
        for doc in documents:
            if doc.dedup_key not in ids:
                ids.append(doc.dedup_key)
        return CompressionResult(
            compressed_context="\n\n".join(doc.content for doc in documents),
            compression_ratio=1.0,
            source_document_ids=ids,
        )

    def generation(self, error: Optional[BaseException] = None) -> SynthesisResult:
        logger.warning(f"Generation fallback: apology response ({error})")
        return SynthesisResult(
            response=GENERATION_FALLBACK_RESPONSE,
            sources=[],
            tokens_used=0,
            model_used=GENERATION_FALLBACK_MODEL,
        )

    def validation(self, error: Optional[BaseException] = None) -> ValidationResult:
        logger.warning(f"Validation fallback: medium confidence, needs review ({error})")
        return ValidationResult(
            valid=True,
            confidence_score=VALIDATION_FALLBACK_CONFIDENCE,
            requires_human_review=True,
            review_reason=VALIDATION_FALLBACK_REASON,
        )
