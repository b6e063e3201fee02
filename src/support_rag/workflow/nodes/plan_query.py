# src/support_rag/workflow/nodes/plan_query.py

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from support_rag.planner.planner import QueryPlanner, simple_plan
from support_rag.utils import observe, with_error_handling
from support_rag.workflow.constants import STAGE_PLANNING
from support_rag.workflow.fallback import FallbackStrategy
from support_rag.workflow.fsm import WorkflowEvent
from support_rag.workflow.stage import StageRunner
from support_rag.workflow.state import WorkflowState

logger = logging.getLogger(__name__)


def make_plan_query_node(
    planner: Optional[QueryPlanner],
    runner: StageRunner,
    fallbacks: FallbackStrategy,
    *,
    use_planning: bool = True,
):
    @observe
    @with_error_handling("plan_query")
    async def plan_query(state: WorkflowState) -> Dict[str, Any]:
        machine = state["machine"]
        context = state["exec_context"]
        query = state["query"]

        machine.send(WorkflowEvent.START)

        planning = use_planning and planner is not None and context.get_config("use_planning", True)

        async def _plan():
            if planning:
                return await planner.plan(query)
            return simple_plan(query)

        run = await runner.run(
            machine,
            stage=STAGE_PLANNING,
            call=_plan,
            fallback=lambda e: fallbacks.planning(query, e),
            complete_event=WorkflowEvent.PLANNING_COMPLETE,
            timeout=context.timeout_seconds,
        )
        if run.failed:
            return {"status": machine.status.value, "errors": run.errors, "metadata": {"failedStage": STAGE_PLANNING}}

        plan = run.value
        context.set_shared("sub_query_count", plan.size)
        context.set_shared("is_complex_query", not plan.is_simple)

        logger.info(f"Plan ready: {plan.size} sub-queries, order={plan.execution_order}")
        return {
            "status": machine.status.value,
            "query_plan": plan,
            "errors": run.errors,
            "metadata": {
                "planningFallback": run.fell_back,
                "planDegraded": plan.degraded,
                "processingMethod": "single_query" if plan.is_simple else "query_decomposition",
            },
        }

    return plan_query
