# src/support_rag/workflow/nodes/generate_response.py

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from support_rag.answer.combine import ResultSynthesizer
from support_rag.answer.synthesis import SynthesisService
from support_rag.utils import observe, with_error_handling
from support_rag.workflow.constants import STAGE_GENERATION
from support_rag.workflow.fallback import FallbackStrategy
from support_rag.workflow.fsm import WorkflowEvent
from support_rag.workflow.stage import StageRunner
from support_rag.workflow.state import WorkflowState

logger = logging.getLogger(__name__)


def make_generate_response_node(
    synthesizer: SynthesisService,
    combiner: Optional[ResultSynthesizer],
    runner: StageRunner,
    fallbacks: FallbackStrategy,
):
    """Sub-query answers are combined; otherwise the answer is synthesized
    from the compressed context."""

    @observe
    @with_error_handling("generate_response")
    async def generate_response(state: WorkflowState) -> Dict[str, Any]:
        machine = state["machine"]
        context = state["exec_context"]
        query = state["query"]
        docs = list(state.get("retrieved_documents") or [])
        sub_results = list(state.get("sub_query_results") or [])
        compressed = state.get("compressed_context") or None

        async def _generate():
            if sub_results and combiner is not None:
                return await combiner.combine(query, sub_results)
            return await synthesizer.synthesize(query, docs, compressed)

        run = await runner.run(
            machine,
            stage=STAGE_GENERATION,
            call=_generate,
            fallback=fallbacks.generation,
            complete_event=WorkflowEvent.GENERATION_COMPLETE,
            timeout=context.timeout_seconds,
        )
        if run.failed:
            return {"status": machine.status.value, "errors": run.errors, "metadata": {"failedStage": STAGE_GENERATION}}

        result = run.value
        context.set_shared("tokens_used", result.tokens_used)
        context.set_shared("model_used", result.model_used)
        context.set_shared("source_count", len(result.sources))

        logger.info(f"Generation stage: {len(result.response)} chars from {result.model_used}")
        return {
            "status": machine.status.value,
            "generation": result,
            "response_text": result.response,
            "errors": run.errors,
            "metadata": {"generationFallback": run.fell_back},
        }

    return generate_response
