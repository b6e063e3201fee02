# src/support_rag/workflow/nodes/retrieve_documents.py

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from support_rag.executor.executor import SubQueryExecutor
from support_rag.executor.state import SubQueryResult
from support_rag.planner.planner import simple_plan
from support_rag.retrieval.constants import DEFAULT_TOP_K, RETRIEVAL_METHOD_HYBRID, RETRIEVAL_METHOD_MULTI_HOP
from support_rag.retrieval.retriever import DocumentRetriever
from support_rag.retrieval.state import RetrievalOutcome, dedupe_documents
from support_rag.utils import observe, with_error_handling
from support_rag.workflow.constants import STAGE_RETRIEVAL
from support_rag.workflow.fallback import FallbackStrategy
from support_rag.workflow.fsm import WorkflowEvent
from support_rag.workflow.stage import StageRunner
from support_rag.workflow.state import WorkflowState

logger = logging.getLogger(__name__)


def make_retrieve_documents_node(
    retriever: DocumentRetriever,
    executor: Optional[SubQueryExecutor],
    runner: StageRunner,
    fallbacks: FallbackStrategy,
    *,
    top_k: int = DEFAULT_TOP_K,
):
    """Simple plans use the retriever directly (multi-hop when enabled);
    decomposed plans go through the sub-query executor.

    Each NEEDS_RETRIEVAL round widens the pool to top_k * (1 + retry_count).
    """

    @observe
    @with_error_handling("retrieve_documents")
    async def retrieve_documents(state: WorkflowState) -> Dict[str, Any]:
        machine = state["machine"]
        context = state["exec_context"]
        query = state["query"]
        filters = state.get("filters")
        plan = state.get("query_plan") or simple_plan(query)
        k = top_k * (1 + machine.retry_count)

        async def _retrieve() -> Tuple[RetrievalOutcome, List[SubQueryResult]]:
            if plan.is_simple or executor is None:
                outcome = await retriever.retrieve(query, k, filters, use_multi_hop=True, context=context)
                return outcome, []

            report = await executor.execute(plan, filters, context=context, top_k=k)
            docs = dedupe_documents(d for r in report.results for d in r.documents)
            method = RETRIEVAL_METHOD_MULTI_HOP if executor.use_multi_hop else RETRIEVAL_METHOD_HYBRID
            context.set_shared("retrieved_document_count", len(docs))
            context.set_shared("sub_queries_executed", len(report.results))
            return RetrievalOutcome(documents=docs, method=method), list(report.results)

        run = await runner.run(
            machine,
            stage=STAGE_RETRIEVAL,
            call=_retrieve,
            fallback=lambda e: (fallbacks.retrieval(query, e), []),
            complete_event=WorkflowEvent.RETRIEVAL_COMPLETE,
            timeout=context.timeout_seconds,
        )
        if run.failed:
            return {"status": machine.status.value, "errors": run.errors, "metadata": {"failedStage": STAGE_RETRIEVAL}}

        outcome, sub_results = run.value
        metadata: Dict[str, Any] = {
            "documentsRetrieved": len(outcome.documents),
            "retrievalMethod": outcome.method,
            "hopsPerformed": outcome.hops_performed,
            "retrievalFallback": run.fell_back,
        }
        if sub_results:
            metadata["subQueriesExecuted"] = len(sub_results)
            metadata["subQueriesFailed"] = sum(1 for r in sub_results if not r.success)

        logger.info(f"Retrieval stage: {len(outcome.documents)} documents via {outcome.method} (k={k})")
        return {
            "status": machine.status.value,
            "retrieval": outcome,
            "retrieved_documents": list(outcome.documents),
            "sub_query_results": sub_results,
            "errors": run.errors,
            "metadata": metadata,
        }

    return retrieve_documents
