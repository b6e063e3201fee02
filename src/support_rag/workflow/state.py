# src/support_rag/workflow/state.py
from __future__ import annotations

import operator
from typing import Annotated, Any, Dict, List, Optional, TypedDict

from support_rag.answer.state import SynthesisResult, ValidationResult
from support_rag.compression.state import CompressionResult
from support_rag.context import ExecutionContext
from support_rag.executor.state import SubQueryResult
from support_rag.planner.state import QueryPlan
from support_rag.retrieval.state import RetrievalOutcome, RetrievedDocument
from support_rag.workflow.fsm import WorkflowStateMachine


def merge_metadata(left: Optional[Dict[str, Any]], right: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    return {**(left or {}), **(right or {})}


class WorkflowState(TypedDict, total=False):
    # Inputs
    query: str
    filters: Optional[Dict[str, Any]]
    exec_context: ExecutionContext
    machine: WorkflowStateMachine
    start_time: float

    # Stage outputs
    status: str
    query_plan: QueryPlan
    sub_query_results: List[SubQueryResult]
    retrieval: RetrievalOutcome
    retrieved_documents: List[RetrievedDocument]
    compression: CompressionResult
    compressed_context: str
    generation: SynthesisResult
    response_text: str
    validation: ValidationResult
    end_time: float

    # Diagnostics
    metadata: Annotated[Dict[str, Any], merge_metadata]
    errors: Annotated[List[Dict[str, Any]], operator.add]
