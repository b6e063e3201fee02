# tests/unit/planner/test_dependencies.py
"""Unit tests for dependency resolution."""

import pytest

from support_rag.errors import CyclicDependencyError
from support_rag.planner.dependencies import (
    build_plan,
    dependency_levels,
    is_valid_order,
    resolve_execution_order,
    topological_order,
    valid_dependencies,
)
from support_rag.planner.state import QueryPlan, SubQuery


def _subs(*deps):
    return [SubQuery(id=i, query=f"sub-query {i}", dependencies=list(d)) for i, d in enumerate(deps)]


class TestTopologicalOrder:
    """Tests for Kahn's algorithm."""

    def test_chain(self):
        assert topological_order(_subs([], [0], [1])) == [0, 1, 2]

    def test_dependencies_run_first(self):
        """Test a reversed chain still orders dependencies first."""
        order = topological_order(_subs([1], [2], []))
        assert order == [2, 1, 0]

    def test_independent_keep_id_order(self):
        assert topological_order(_subs([], [], [])) == [0, 1, 2]

    def test_diamond(self):
        order = topological_order(_subs([], [0], [0], [1, 2]))
        assert order == [0, 1, 2, 3]

    def test_cycle_raises(self):
        with pytest.raises(CyclicDependencyError) as exc:
            topological_order(_subs([1], [0], []))
        assert exc.value.resolved == 1
        assert exc.value.total == 3

    def test_unknown_dependency_ignored(self):
        assert topological_order(_subs([7], [0])) == [0, 1]

    def test_valid_dependencies(self):
        sub = SubQuery(id=2, query="q", dependencies=[1, 1, 9, 0])
        assert valid_dependencies(sub, 3) == [1, 0]


class TestResolveExecutionOrder:
    def test_cycle_degrades_to_sequential(self):
        order, degraded = resolve_execution_order(_subs([2], [0], [1]))
        assert order == [0, 1, 2]
        assert degraded

    def test_acyclic_not_degraded(self):
        order, degraded = resolve_execution_order(_subs([1], []))
        assert order == [1, 0]
        assert not degraded

    def test_single(self):
        assert resolve_execution_order(_subs([])) == ([0], False)

    def test_self_dependency_is_cycle(self):
        _, degraded = resolve_execution_order(_subs([], [1]))
        assert degraded


class TestBuildPlan:
    def test_plan_order_valid(self):
        plan = build_plan("q", _subs([], [0], [0], [1, 2]))
        assert is_valid_order(plan)
        assert not plan.degraded

    def test_is_valid_order_rejects_bad_orders(self):
        subs = _subs([], [0])
        assert not is_valid_order(QueryPlan(original_query="q", sub_queries=subs, execution_order=[1, 0]))
        assert not is_valid_order(QueryPlan(original_query="q", sub_queries=subs, execution_order=[0, 0]))


class TestDependencyLevels:
    """Tests for grouping into concurrently runnable levels."""

    def test_diamond_levels(self):
        plan = build_plan("q", _subs([], [0], [0], [1, 2]))
        assert dependency_levels(plan) == [[0], [1, 2], [3]]

    def test_independent_single_level(self):
        plan = build_plan("q", _subs([], [], []))
        assert dependency_levels(plan) == [[0, 1, 2]]

    def test_level_is_one_past_deepest_dependency(self):
        plan = build_plan("q", _subs([], [0], [1], [0]))
        assert dependency_levels(plan) == [[0], [1, 3], [2]]

    def test_degraded_plan_runs_sequentially(self):
        plan = build_plan("q", _subs([1], [0], []))
        assert plan.degraded
        assert dependency_levels(plan) == [[0], [1], [2]]

    def test_empty(self):
        assert dependency_levels(QueryPlan(original_query="q")) == []

    def test_hand_built_order_is_re_resolved(self):
        """Test an order that runs a sub-query before its dependency is fixed up."""
        plan = QueryPlan(original_query="q", sub_queries=_subs([], [0]), execution_order=[1, 0])
        assert dependency_levels(plan) == [[0], [1]]

    def test_missing_order_is_re_resolved(self):
        plan = QueryPlan(original_query="q", sub_queries=_subs([], []))
        assert dependency_levels(plan) == [[0, 1]]

    def test_undetected_cycle_runs_sequentially(self):
        plan = QueryPlan(original_query="q", sub_queries=_subs([1], [0]), execution_order=[0, 1])
        assert not plan.degraded
        assert dependency_levels(plan) == [[0], [1]]
