# src/support_rag/workflow/nodes/validate_response.py

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from support_rag.answer.validator import ValidatorAdapter
from support_rag.config import ValidationConfig
from support_rag.utils import observe, with_error_handling
from support_rag.workflow.constants import STAGE_VALIDATION
from support_rag.workflow.fallback import FallbackStrategy
from support_rag.workflow.fsm import WorkflowEvent
from support_rag.workflow.stage import StageRunner
from support_rag.workflow.state import WorkflowState

logger = logging.getLogger(__name__)


def make_validate_response_node(
    validator: Optional[ValidatorAdapter],
    runner: StageRunner,
    fallbacks: FallbackStrategy,
    config: Optional[ValidationConfig] = None,
):
    """Validates the answer and decides between completion and another
    retrieval round (low confidence and flagged for review, retries left)."""
    config = config or ValidationConfig()

    @observe
    @with_error_handling("validate_response")
    async def validate_response(state: WorkflowState) -> Dict[str, Any]:
        machine = state["machine"]
        context = state["exec_context"]

        if validator is None or not config.enabled:
            machine.send(WorkflowEvent.VALIDATION_COMPLETE)
            return {"status": machine.status.value, "metadata": {"validationEnabled": False}}

        response_text = state.get("response_text") or ""
        docs = list(state.get("retrieved_documents") or [])

        run = await runner.run(
            machine,
            stage=STAGE_VALIDATION,
            call=lambda: validator.validate(response_text, docs, state["query"]),
            fallback=fallbacks.validation,
            timeout=context.timeout_seconds,
        )
        if run.failed:
            return {"status": machine.status.value, "errors": run.errors, "metadata": {"failedStage": STAGE_VALIDATION}}

        result = run.value
        context.set_shared("validation_confidence", result.confidence_score)

        low_confidence = result.requires_human_review and result.confidence_score < config.low_confidence_threshold
        if low_confidence and machine.send(WorkflowEvent.NEEDS_RETRIEVAL):
            retry = machine.increment_retry()
            logger.info(
                f"Low confidence ({result.confidence_score:.1f}); retrieval round {retry}/{context.max_retries}"
            )
        else:
            machine.send(WorkflowEvent.VALIDATION_COMPLETE)

        return {
            "status": machine.status.value,
            "validation": result,
            "errors": run.errors,
            "metadata": {"validationFallback": run.fell_back, "retryCount": machine.retry_count},
        }

    return validate_response
