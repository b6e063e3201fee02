# src/support_rag/workflow/nodes/finalize.py

from __future__ import annotations

import logging
import time
from typing import Any, Dict

from support_rag.workflow.fsm import WorkflowEvent, WorkflowStatus
from support_rag.workflow.state import WorkflowState

logger = logging.getLogger(__name__)


async def finalize(state: WorkflowState) -> Dict[str, Any]:
    """Close the run. A run that stalled outside a terminal state is failed."""
    machine = state["machine"]
    if not machine.is_terminal:
        logger.error(f"Workflow stalled in {machine.status.value}; marking as failed")
        if machine.status != WorkflowStatus.RETRYING:
            machine.send(WorkflowEvent.ERROR)
        machine.exhaust_retries()
        machine.send(WorkflowEvent.FAIL)

    end = time.monotonic()
    elapsed = end - state.get("start_time", end)
    logger.info(f"Workflow finished in {machine.status.value} after {elapsed * 1000:.0f} ms")
    return {"status": machine.status.value, "end_time": end}
