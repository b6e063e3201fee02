# src/support_rag/planner/planner.py

from __future__ import annotations

import logging
from typing import List, Optional

from langchain_core.prompts import ChatPromptTemplate
from pydantic import ValidationError

from support_rag.errors import InvalidInputError
from support_rag.planner.classifier import QueryClassifier
from support_rag.planner.dependencies import build_plan
from support_rag.planner.prompts.planner import DECOMPOSITION_PROMPT, QUERY_INPUT
from support_rag.planner.state import (
    DEFAULT_QUERY_TYPE,
    DecompositionResult,
    ProposedSubQuery,
    QueryPlan,
    SubQuery,
)
from support_rag.utils import observe

logger = logging.getLogger(__name__)


def simple_plan(query: str, query_type: str = DEFAULT_QUERY_TYPE) -> QueryPlan:
    """Single-sub-query plan wrapping the original question."""
    return QueryPlan(
        original_query=query,
        sub_queries=[SubQuery(id=0, query=query, dependencies=[], query_type=query_type)],
        execution_order=[0],
    )


def normalize_sub_queries(proposed: List[ProposedSubQuery]) -> List[SubQuery]:
    """Renumber proposals by position and remap their dependency ids.

    Unknown dependency ids are kept out of range so the resolver drops them.
    """
    n = len(proposed)
    id_map = {p.id: pos for pos, p in enumerate(proposed)}
    if len(id_map) != n:
        # duplicate ids: positions are the only reliable reference
        id_map = {pos: pos for pos in range(n)}

    out: List[SubQuery] = []
    for pos, p in enumerate(proposed):
        deps = [id_map.get(d, n + abs(d)) for d in p.dependencies]
        out.append(SubQuery(id=pos, query=p.query.strip(), dependencies=deps, query_type=p.query_type))
    return out


class QueryPlanner:
    """Decomposes a question into a dependency-ordered QueryPlan.

    Decomposition failure never surfaces: any error, or an empty proposal,
    yields a single-sub-query plan typed by the classifier.
    """

    def __init__(self, llm, *, classifier: Optional[QueryClassifier] = None):
        self._prompt = ChatPromptTemplate.from_messages(
            [("system", DECOMPOSITION_PROMPT), ("human", QUERY_INPUT)]
        )
        self._model = llm.with_structured_output(DecompositionResult, method="function_calling")
        self._classifier = classifier

    async def _simple(self, query: str) -> QueryPlan:
        query_type = DEFAULT_QUERY_TYPE
        if self._classifier is not None:
            query_type = (await self._classifier.classify(query)).query_type
        return simple_plan(query, query_type)

    @observe
    async def plan(self, query: str) -> QueryPlan:
        if not query or not query.strip():
            raise InvalidInputError("Query must not be blank")
        query = query.strip()

        try:
            prompt_value = await self._prompt.ainvoke({"query": query})
            raw = await self._model.ainvoke(prompt_value)
            decomposition = DecompositionResult.model_validate(raw)
        except ValidationError as e:
            logger.warning(f"Decomposition output failed validation, using simple plan: {e.error_count()} errors")
            return await self._simple(query)
        except Exception as e:
            logger.warning(f"Decomposition failed, using simple plan: {e}")
            return await self._simple(query)

        proposed = [p for p in decomposition.sub_queries if p.query and p.query.strip()]
        if not proposed:
            logger.info("No decomposition proposed, using simple plan")
            return await self._simple(query)

        plan = build_plan(query, normalize_sub_queries(proposed))
        logger.info(
            f"Planned {plan.size} sub-queries, order={plan.execution_order}"
            + (" (degraded: cyclic dependencies)" if plan.degraded else "")
        )
        return plan
