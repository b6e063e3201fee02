# src/support_rag/executor/executor.py

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

from support_rag.answer.synthesis import SynthesisService
from support_rag.context import ExecutionContext
from support_rag.errors import InvalidInputError
from support_rag.executor.state import ExecutionReport, SubQueryResult
from support_rag.planner.dependencies import dependency_levels, valid_dependencies
from support_rag.planner.state import QueryPlan, SubQuery
from support_rag.retrieval.constants import DEFAULT_TOP_K
from support_rag.retrieval.retriever import DocumentRetriever
from support_rag.utils import observe

logger = logging.getLogger(__name__)

DIGEST_HEADER = "Previous answers:\n\n"
CURRENT_QUESTION = "\nCurrent question: "


def dependency_digest(dependencies: Sequence[SubQueryResult]) -> str:
    """'Q: ...\\nA: ...' blocks for the completed dependencies."""
    if not dependencies:
        return ""
    parts = [DIGEST_HEADER]
    for dep in dependencies:
        parts.append(f"Q: {dep.query}\nA: {dep.response}\n\n")
    return "".join(parts)


def augment_query(query: str, dependencies: Sequence[SubQueryResult]) -> str:
    digest = dependency_digest(dependencies)
    if not digest:
        return query
    return digest + CURRENT_QUESTION + query


class SubQueryExecutor:
    """Runs a QueryPlan level by level.

    Sub-queries in one dependency level run concurrently; a level starts
    only after the previous one finished. A failing sub-query becomes a
    `success=False` result. If running the plan fails as a whole, the
    original question is executed as a single query; only a failure of that
    fallback propagates.
    """

    def __init__(
        self,
        retriever: DocumentRetriever,
        synthesizer: SynthesisService,
        *,
        top_k: int = DEFAULT_TOP_K,
        use_multi_hop: bool = False,
    ):
        self.retriever = retriever
        self.synthesizer = synthesizer
        self.top_k = top_k
        self.use_multi_hop = use_multi_hop

    async def _run(
        self,
        sub_query_id: int,
        query_text: str,
        dependencies: Sequence[SubQueryResult],
        filters: Optional[Mapping[str, Any]],
        context: Optional[ExecutionContext],
        top_k: int,
    ) -> SubQueryResult:
        child = context.create_child() if context is not None else None
        outcome = await self.retriever.retrieve(
            augment_query(query_text, dependencies),
            top_k,
            filters,
            use_multi_hop=self.use_multi_hop,
            context=child,
        )
        synthesis = await self.synthesizer.synthesize(query_text, outcome.documents)
        return SubQueryResult(
            sub_query_id=sub_query_id,
            query=query_text,
            response=synthesis.response,
            documents=list(outcome.documents),
            sources=list(synthesis.sources),
            tokens_used=synthesis.tokens_used,
            success=True,
            model_used=synthesis.model_used,
        )

    async def _run_contained(
        self,
        plan: QueryPlan,
        sub_query: SubQuery,
        results: Dict[int, SubQueryResult],
        filters: Optional[Mapping[str, Any]],
        context: Optional[ExecutionContext],
        top_k: int,
    ) -> None:
        deps = [
            results[d]
            for d in valid_dependencies(sub_query, plan.size)
            if d in results and results[d].success
        ]
        try:
            result = await self._run(sub_query.id, sub_query.query, deps, filters, context, top_k)
        except Exception as e:
            logger.warning(f"Sub-query {sub_query.id} failed: {e}")
            result = SubQueryResult.failed(sub_query.id, sub_query.query, e)
        if sub_query.id in results:
            raise RuntimeError(f"Sub-query {sub_query.id} produced more than one result")
        results[sub_query.id] = result

    @observe
    async def execute(
        self,
        plan: QueryPlan,
        filters: Optional[Mapping[str, Any]] = None,
        *,
        context: Optional[ExecutionContext] = None,
        top_k: Optional[int] = None,
    ) -> ExecutionReport:
        if plan is None or not plan.sub_queries:
            raise InvalidInputError("Plan must contain at least one sub-query")
        top_k = int(top_k or self.top_k)

        try:
            if plan.is_simple:
                sq = plan.sub_queries[0]
                result = await self._run(sq.id, sq.query, [], filters, context, top_k)
                return ExecutionReport(results=[result], levels=[[sq.id]])

            levels = dependency_levels(plan)
            results: Dict[int, SubQueryResult] = {}
            for depth, level in enumerate(levels):
                logger.info(f"Executing level {depth}: sub-queries {level}")
                await asyncio.gather(
                    *(
                        self._run_contained(plan, plan.sub_queries[i], results, filters, context, top_k)
                        for i in level
                    )
                )

            ordered: List[SubQueryResult] = [results[i] for i in plan.execution_order]
            succeeded = sum(1 for r in ordered if r.success)
            logger.info(f"Executed {len(ordered)} sub-queries in {len(levels)} levels ({succeeded} succeeded)")
            return ExecutionReport(results=ordered, levels=levels)
        except Exception as e:
            logger.error(f"Plan execution failed, running original query as a single query: {e}")
            result = await self._run(0, plan.original_query, [], filters, context, top_k)
            return ExecutionReport(results=[result], levels=[[0]], fell_back=True)
