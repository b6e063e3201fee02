# src/support_rag/workflow/response.py

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from support_rag.answer.state import Source
from support_rag.schemas import QueryResponse, ResponseMetadata
from support_rag.workflow.constants import GENERATION_FALLBACK_MODEL, GENERATION_FALLBACK_RESPONSE
from support_rag.workflow.fsm import WorkflowStatus
from support_rag.workflow.state import WorkflowState

# metadata keys copied from the run into additionalInfo when present
PASSTHROUGH_KEYS = (
    "processingMethod",
    "retrievalMethod",
    "subQueriesExecuted",
    "subQueriesFailed",
    "planDegraded",
    "compressionRatio",
    "planningFallback",
    "retrievalFallback",
    "compressionSkipped",
    "generationFallback",
    "validationFallback",
    "compressionEnabled",
    "validationEnabled",
    "failedStage",
)


def to_response_confidence(validator_confidence: Optional[float], completed: bool) -> float:
    """Map the validator's 0-100 score onto the response's 0.0-1.0 scale."""
    if validator_confidence is None:
        return 1.0 if completed else 0.0
    return max(0.0, min(1.0, validator_confidence / 100.0))


def build_response(
    state: WorkflowState,
    *,
    latency_ms: int,
    timestamp: Optional[datetime] = None,
) -> QueryResponse:
    machine = state["machine"]
    context = state["exec_context"]
    meta: Dict[str, Any] = dict(state.get("metadata") or {})
    generation = state.get("generation")
    validation = state.get("validation")
    docs = list(state.get("retrieved_documents") or [])
    completed = machine.status == WorkflowStatus.COMPLETE

    if generation is not None and completed:
        text = generation.response
        sources: List[Source] = list(generation.sources)
        tokens = generation.tokens_used
        model = generation.model_used
    else:
        text = GENERATION_FALLBACK_RESPONSE
        sources = []
        tokens = 0
        model = GENERATION_FALLBACK_MODEL
    if not sources and completed and generation is not None and generation.model_used != GENERATION_FALLBACK_MODEL:
        sources = [Source.from_document(d) for d in docs]

    info: Dict[str, Any] = {
        "executionId": context.execution_id,
        "sessionId": context.session_id,
        "documentsRetrieved": len(docs),
        "workflowStatus": machine.status.value,
        "retryCount": machine.retry_count,
        "requiresHumanReview": bool(validation.requires_human_review) if validation else not completed,
        "errorCount": len(state.get("errors") or []),
    }
    for key in PASSTHROUGH_KEYS:
        if key in meta:
            info[key] = meta[key]
    hops = meta.get("hopsPerformed")
    if hops and hops > 1:
        info["hopsPerformed"] = hops
    if validation is not None:
        info["confidenceScore"] = validation.confidence_score
        if validation.review_reason:
            info["reviewReason"] = validation.review_reason
    if not completed:
        info["workflowFailed"] = True

    return QueryResponse(
        response=text,
        sources=sources,
        confidence_score=to_response_confidence(validation.confidence_score if validation else None, completed),
        metadata=ResponseMetadata(
            tokens_used=tokens,
            latency_ms=latency_ms,
            model_used=model,
            timestamp=timestamp or datetime.now(timezone.utc),
            additional_info=info,
        ),
    )
