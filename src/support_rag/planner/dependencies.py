# src/support_rag/planner/dependencies.py
"""Dependency resolution for query plans.

Execution order comes from Kahn's algorithm. Edges pointing at ids outside
the plan are dropped with a warning. A cyclic graph is never an error for
callers: `resolve_execution_order` substitutes the sequential order and
flags the plan as degraded.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Dict, List, Sequence, Tuple

from support_rag.errors import CyclicDependencyError
from support_rag.planner.state import QueryPlan, SubQuery

logger = logging.getLogger(__name__)


def valid_dependencies(sub_query: SubQuery, n: int) -> List[int]:
    """Distinct in-range dependency ids, declaration order."""
    out: List[int] = []
    for dep in sub_query.dependencies:
        if 0 <= dep < n and dep not in out:
            out.append(dep)
    return out


def topological_order(sub_queries: Sequence[SubQuery]) -> List[int]:
    """Kahn's algorithm over declared dependencies.

    Raises CyclicDependencyError when not every node can be ordered.
    """
    n = len(sub_queries)
    adjacency: Dict[int, List[int]] = {i: [] for i in range(n)}
    in_degree = [0] * n

    for i, sq in enumerate(sub_queries):
        for dep in sq.dependencies:
            if not 0 <= dep < n:
                logger.warning(f"Sub-query {i} depends on unknown id {dep}; dropping edge")
        for dep in valid_dependencies(sq, n):
            adjacency[dep].append(i)
            in_degree[i] += 1

    queue = deque(i for i in range(n) if in_degree[i] == 0)
    order: List[int] = []
    while queue:
        node = queue.popleft()
        order.append(node)
        for nxt in adjacency[node]:
            in_degree[nxt] -= 1
            if in_degree[nxt] == 0:
                queue.append(nxt)

    if len(order) < n:
        raise CyclicDependencyError(resolved=len(order), total=n)
    return order


def resolve_execution_order(sub_queries: Sequence[SubQuery]) -> Tuple[List[int], bool]:
    """Return (order, degraded). Never raises."""
    n = len(sub_queries)
    if n <= 1:
        return [0], False
    try:
        return topological_order(sub_queries), False
    except CyclicDependencyError as e:
        logger.warning(f"{e}; using sequential order")
        return list(range(n)), True


def build_plan(original_query: str, sub_queries: Sequence[SubQuery]) -> QueryPlan:
    order, degraded = resolve_execution_order(sub_queries)
    return QueryPlan(
        original_query=original_query,
        sub_queries=list(sub_queries),
        execution_order=order,
        degraded=degraded,
    )


def is_valid_order(plan: QueryPlan) -> bool:
    """True when the execution order is a permutation with every dependency first."""
    n = plan.size
    if sorted(plan.execution_order) != list(range(n)):
        return False
    position = {sq_id: pos for pos, sq_id in enumerate(plan.execution_order)}
    for i, sq in enumerate(plan.sub_queries):
        for dep in valid_dependencies(sq, n):
            if position[dep] >= position[i]:
                return False
    return True


def dependency_levels(plan: QueryPlan) -> List[List[int]]:
    """Group sub-query ids by dependency level, each level in execution order.

    level(q) = 0 without dependencies, else 1 + max(level(dep)). Degraded
    (cyclic) plans run one sub-query per level in the sequential order. A
    hand-built plan whose order breaks its dependencies is re-resolved first.
    """
    n = plan.size
    if n == 0:
        return []
    if plan.degraded:
        return [[i] for i in plan.execution_order]

    order = plan.execution_order
    if not is_valid_order(plan):
        order, degraded = resolve_execution_order(plan.sub_queries)
        logger.warning(f"Plan order {plan.execution_order} breaks its dependencies; re-resolved to {order}")
        if degraded:
            return [[i] for i in order]

    memo: Dict[int, int] = {}
    visiting = set()

    def level(i: int) -> int:
        if i in memo:
            return memo[i]
        if i in visiting:
            raise CyclicDependencyError(resolved=len(memo), total=n)
        visiting.add(i)
        deps = valid_dependencies(plan.sub_queries[i], n)
        memo[i] = 0 if not deps else 1 + max(level(d) for d in deps)
        visiting.discard(i)
        return memo[i]

    levels: Dict[int, List[int]] = {}
    for sq_id in order:
        levels.setdefault(level(sq_id), []).append(sq_id)
    return [levels[k] for k in sorted(levels)]
