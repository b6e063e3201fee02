# src/support_rag/workflow/orchestrator.py

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

from langchain_core.embeddings import Embeddings

from support_rag.answer.combine import ResultSynthesizer
from support_rag.answer.synthesis import SynthesisService
from support_rag.answer.validator import HeuristicValidator, ValidatorAdapter
from support_rag.compression.compressor import ContextCompressor
from support_rag.compression.tokens import TokenBudgetManager
from support_rag.config import AppConfig
from support_rag.context import ExecutionContext
from support_rag.executor.executor import SubQueryExecutor
from support_rag.planner.classifier import QueryClassifier
from support_rag.planner.planner import QueryPlanner
from support_rag.retrieval.adapters import KeywordSearchAdapter, VectorSearchAdapter
from support_rag.retrieval.entities import EntityExtractor
from support_rag.retrieval.hybrid_search import HybridSearchService
from support_rag.retrieval.multi_hop import MultiHopRetriever
from support_rag.retrieval.reranker import EmbeddingReranker
from support_rag.retrieval.retriever import DocumentRetriever
from support_rag.schemas import QueryRequest, QueryResponse, extract_filters
from support_rag.workflow.constants import RECURSION_LIMIT
from support_rag.workflow.fallback import FallbackStrategy
from support_rag.workflow.fsm import WorkflowStateMachine
from support_rag.workflow.graph import make_workflow_graph
from support_rag.workflow.response import build_response
from support_rag.workflow.retry import RetryableStageExecutor
from support_rag.workflow.stage import StageRunner

logger = logging.getLogger(__name__)


class AgentOrchestrator:
    """Runs one query through plan -> retrieve -> compress -> generate -> validate.

    Every stage goes through the retry/fallback layer, so a well-formed
    request always gets a response; degradations are reported as flags in
    `metadata.additionalInfo`. A blank query is rejected before any stage
    runs.
    """

    def __init__(
        self,
        *,
        planner: Optional[QueryPlanner],
        retriever: DocumentRetriever,
        synthesizer: SynthesisService,
        executor: Optional[SubQueryExecutor] = None,
        compressor: Optional[ContextCompressor] = None,
        combiner: Optional[ResultSynthesizer] = None,
        validator: Optional[ValidatorAdapter] = None,
        config: Optional[AppConfig] = None,
        stage_executor: Optional[RetryableStageExecutor] = None,
        fallbacks: Optional[FallbackStrategy] = None,
    ):
        self.config = config or AppConfig()
        self.graph = make_workflow_graph(
            planner=planner,
            retriever=retriever,
            executor=executor,
            compressor=compressor,
            synthesizer=synthesizer,
            combiner=combiner,
            validator=validator,
            config=self.config,
            runner=StageRunner(stage_executor),
            fallbacks=fallbacks,
        )

    @classmethod
    def from_components(
        cls,
        *,
        llm,
        embeddings: Embeddings,
        vector_search: VectorSearchAdapter,
        keyword_search: KeywordSearchAdapter,
        config: Optional[AppConfig] = None,
        token_manager: Optional[TokenBudgetManager] = None,
        stage_executor: Optional[RetryableStageExecutor] = None,
    ) -> "AgentOrchestrator":
        """Wire the default pipeline from the external collaborators."""
        config = config or AppConfig()
        reranker = EmbeddingReranker(
            embeddings,
            enabled=config.retrieval.use_reranking,
            concurrency=config.retrieval.rerank_concurrency,
        )
        hybrid = HybridSearchService(vector_search, keyword_search, reranker=reranker, config=config.retrieval)
        multi_hop = MultiHopRetriever(
            vector_search,
            EntityExtractor(llm, max_entities=config.multi_hop.max_entities),
            config=config.multi_hop,
        )
        retriever = DocumentRetriever(hybrid, multi_hop)
        synthesizer = SynthesisService(llm)
        return cls(
            planner=QueryPlanner(llm, classifier=QueryClassifier(llm)),
            retriever=retriever,
            synthesizer=synthesizer,
            executor=SubQueryExecutor(retriever, synthesizer, top_k=config.retrieval.default_top_k),
            compressor=ContextCompressor(embeddings, token_manager, config=config.compression),
            combiner=ResultSynthesizer(llm),
            validator=HeuristicValidator(config.validation),
            config=config,
            stage_executor=stage_executor,
        )

    def new_context(self, request: QueryRequest) -> ExecutionContext:
        return ExecutionContext(
            session_id=request.session_id,
            configuration=dict(request.context),
            max_retries=self.config.workflow.max_retries,
            timeout_seconds=self.config.workflow.stage_timeout_seconds,
        )

    async def process_query(
        self,
        request: Union[QueryRequest, Dict[str, Any]],
        *,
        context: Optional[ExecutionContext] = None,
    ) -> QueryResponse:
        if not isinstance(request, QueryRequest):
            request = QueryRequest.model_validate(request)
        context = context or self.new_context(request)
        machine = WorkflowStateMachine(max_retries=context.max_retries)

        logger.info(f"Processing query {context.execution_id}: {request.query[:80]!r}")
        started = time.monotonic()
        timestamp = datetime.now(timezone.utc)

        final = await self.graph.ainvoke(
            {
                "query": request.query,
                "filters": extract_filters(request.context),
                "exec_context": context,
                "machine": machine,
                "start_time": started,
                "metadata": {},
                "errors": [],
            },
            config={"recursion_limit": RECURSION_LIMIT},
        )

        latency_ms = int((time.monotonic() - started) * 1000)
        response = build_response(final, latency_ms=latency_ms, timestamp=timestamp)
        logger.info(
            f"Query {context.execution_id} finished: status={machine.status.value} "
            f"latency={latency_ms}ms confidence={response.confidence_score:.2f}"
        )
        return response
