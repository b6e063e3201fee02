# src/support_rag/workflow/nodes/compress_context.py

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from support_rag.compression.compressor import ContextCompressor
from support_rag.utils import observe, with_error_handling
from support_rag.workflow.constants import STAGE_COMPRESSION
from support_rag.workflow.fallback import FallbackStrategy
from support_rag.workflow.fsm import WorkflowEvent
from support_rag.workflow.stage import StageRunner
from support_rag.workflow.state import WorkflowState

logger = logging.getLogger(__name__)


def make_compress_context_node(
    compressor: Optional[ContextCompressor],
    runner: StageRunner,
    fallbacks: FallbackStrategy,
):
    @observe
    @with_error_handling("compress_context")
    async def compress_context(state: WorkflowState) -> Dict[str, Any]:
        machine = state["machine"]
        context = state["exec_context"]
        docs = list(state.get("retrieved_documents") or [])

        if compressor is None or not compressor.config.enabled:
            result = fallbacks.compression(docs)
            machine.send(WorkflowEvent.COMPRESSION_COMPLETE)
            return {
                "status": machine.status.value,
                "compression": result,
                "compressed_context": result.compressed_context,
                "metadata": {"compressionEnabled": False},
            }

        max_tokens = context.get_config("max_tokens") or compressor.config.max_tokens

        run = await runner.run(
            machine,
            stage=STAGE_COMPRESSION,
            call=lambda: compressor.compress(docs, state["query"], max_tokens, context=context),
            fallback=lambda e: fallbacks.compression(docs, e),
            complete_event=WorkflowEvent.COMPRESSION_COMPLETE,
            timeout=context.timeout_seconds,
            skip_on_fallback=True,
        )
        if run.failed:
            return {"status": machine.status.value, "errors": run.errors, "metadata": {"failedStage": STAGE_COMPRESSION}}

        result = run.value
        logger.info(
            f"Compression stage: {result.original_tokens} -> {result.compressed_tokens} tokens"
            + (" (skipped)" if run.fell_back else "")
        )
        return {
            "status": machine.status.value,
            "compression": result,
            "compressed_context": result.compressed_context,
            "errors": run.errors,
            "metadata": {
                "compressionSkipped": run.fell_back,
                "compressionRatio": result.compression_ratio,
            },
        }

    return compress_context
