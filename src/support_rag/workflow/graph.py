# src/support_rag/workflow/graph.py

from __future__ import annotations

from typing import Optional

from langgraph.graph import END, START, StateGraph

from support_rag.answer.combine import ResultSynthesizer
from support_rag.answer.synthesis import SynthesisService
from support_rag.answer.validator import ValidatorAdapter
from support_rag.compression.compressor import ContextCompressor
from support_rag.config import AppConfig
from support_rag.executor.executor import SubQueryExecutor
from support_rag.planner.planner import QueryPlanner
from support_rag.retrieval.retriever import DocumentRetriever
from support_rag.workflow.fallback import FallbackStrategy
from support_rag.workflow.fsm import WorkflowStatus
from support_rag.workflow.nodes.compress_context import make_compress_context_node
from support_rag.workflow.nodes.finalize import finalize
from support_rag.workflow.nodes.generate_response import make_generate_response_node
from support_rag.workflow.nodes.plan_query import make_plan_query_node
from support_rag.workflow.nodes.retrieve_documents import make_retrieve_documents_node
from support_rag.workflow.nodes.validate_response import make_validate_response_node
from support_rag.workflow.stage import StageRunner
from support_rag.workflow.state import WorkflowState

NODE_FOR_STATUS = {
    WorkflowStatus.RETRIEVING: "retrieve_documents",
    WorkflowStatus.COMPRESSING: "compress_context",
    WorkflowStatus.GENERATING: "generate_response",
    WorkflowStatus.VALIDATING: "validate_response",
}
STAGE_NODES = ["retrieve_documents", "compress_context", "generate_response", "validate_response", "finalize"]


def make_router(own_status: WorkflowStatus):
    """Next node from the machine status; a node that made no progress goes to finalize."""

    def route(state: WorkflowState):
        status = state["machine"].status
        if status == own_status:
            return "finalize"
        return NODE_FOR_STATUS.get(status, "finalize")

    return route


def make_workflow_graph(
    *,
    planner: Optional[QueryPlanner],
    retriever: DocumentRetriever,
    executor: Optional[SubQueryExecutor],
    compressor: Optional[ContextCompressor],
    synthesizer: SynthesisService,
    combiner: Optional[ResultSynthesizer] = None,
    validator: Optional[ValidatorAdapter] = None,
    config: Optional[AppConfig] = None,
    runner: Optional[StageRunner] = None,
    fallbacks: Optional[FallbackStrategy] = None,
):
    config = config or AppConfig()
    runner = runner or StageRunner()
    fallbacks = fallbacks or FallbackStrategy()

    g = StateGraph(WorkflowState)

    g.add_node(
        "plan_query",
        make_plan_query_node(planner, runner, fallbacks, use_planning=config.workflow.use_planning),
    )
    g.add_node(
        "retrieve_documents",
        make_retrieve_documents_node(retriever, executor, runner, fallbacks, top_k=config.retrieval.default_top_k),
    )
    g.add_node("compress_context", make_compress_context_node(compressor, runner, fallbacks))
    g.add_node("generate_response", make_generate_response_node(synthesizer, combiner, runner, fallbacks))
    g.add_node(
        "validate_response",
        make_validate_response_node(validator, runner, fallbacks, config.validation),
    )
    g.add_node("finalize", finalize)

    g.add_edge(START, "plan_query")
    g.add_conditional_edges("plan_query", make_router(WorkflowStatus.PLANNING), STAGE_NODES)
    g.add_conditional_edges("retrieve_documents", make_router(WorkflowStatus.RETRIEVING), STAGE_NODES)
    g.add_conditional_edges("compress_context", make_router(WorkflowStatus.COMPRESSING), STAGE_NODES)
    g.add_conditional_edges("generate_response", make_router(WorkflowStatus.GENERATING), STAGE_NODES)
    # VALIDATING -> RETRIEVING loops back for another retrieval round
    g.add_conditional_edges("validate_response", make_router(WorkflowStatus.VALIDATING), STAGE_NODES)
    g.add_edge("finalize", END)

    return g.compile()
