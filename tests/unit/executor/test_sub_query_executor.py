# tests/unit/executor/test_sub_query_executor.py
"""Unit tests for SubQueryExecutor."""

import asyncio
from unittest.mock import patch

import pytest

from support_rag.context import ExecutionContext
from support_rag.errors import InvalidInputError
from support_rag.executor.executor import SubQueryExecutor, augment_query, dependency_digest
from support_rag.executor.state import FAILED_SUB_QUERY_PREFIX, SubQueryResult
from support_rag.planner.dependencies import build_plan
from support_rag.planner.planner import simple_plan
from support_rag.planner.state import QueryPlan, SubQuery
from support_rag.retrieval.state import RetrievalOutcome


def _plan(*specs, original="original question"):
    subs = [SubQuery(id=i, query=q, dependencies=list(d)) for i, (q, d) in enumerate(specs)]
    return build_plan(original, subs)


class TestDependencyDigest:
    def test_empty(self):
        assert dependency_digest([]) == ""
        assert augment_query("q", []) == "q"

    def test_digest_format(self):
        dep = SubQueryResult(sub_query_id=0, query="What is the return policy?", response="30 days.")
        augmented = augment_query("How do I start a return?", [dep])

        assert augmented == (
            "Previous answers:\n\n"
            "Q: What is the return policy?\nA: 30 days.\n\n"
            "\nCurrent question: How do I start a return?"
        )


class TestSubQueryExecutor:
    """Tests for level-by-level plan execution."""

    async def test_simple_plan(self, mock_retriever, mock_synthesizer):
        executor = SubQueryExecutor(mock_retriever, mock_synthesizer, top_k=4)

        report = await executor.execute(simple_plan("What is the return policy?"))

        assert len(report.results) == 1
        assert report.results[0].response == "answer: What is the return policy?"
        assert report.results[0].sources[0].document_id == "doc:What is the return policy?"
        assert mock_retriever.retrieve.await_args.args[1] == 4
        assert not report.fell_back

    async def test_dependent_query_sees_previous_answer(self, mock_retriever, mock_synthesizer):
        """Test sub-query 1 is retrieved with sub-query 0's answer in its text."""
        plan = _plan(("What is the return policy?", []), ("How do I start a return?", [0]))
        executor = SubQueryExecutor(mock_retriever, mock_synthesizer)

        report = await executor.execute(plan)

        second_call = mock_retriever.retrieve.await_args_list[1].args[0]
        assert "Q: What is the return policy?" in second_call
        assert "A: answer: What is the return policy?" in second_call
        assert second_call.endswith("Current question: How do I start a return?")
        # synthesis uses the plain sub-query text
        assert report.results[1].response == "answer: How do I start a return?"

    async def test_levels_and_result_order(self, mock_retriever, mock_synthesizer):
        plan = _plan(("c", [1, 2]), ("a", []), ("b", []))
        executor = SubQueryExecutor(mock_retriever, mock_synthesizer)

        report = await executor.execute(plan)

        assert report.levels == [[1, 2], [0]]
        assert [r.sub_query_id for r in report.results] == plan.execution_order == [1, 2, 0]

    async def test_same_level_runs_concurrently(self, mock_synthesizer):
        """Test two independent sub-queries are in flight at the same time."""
        first_started = asyncio.Event()
        second_started = asyncio.Event()

        class Retriever:
            async def retrieve(self, query, top_k, filters=None, *, use_multi_hop=False, context=None):
                mine, other = (first_started, second_started) if query == "a" else (second_started, first_started)
                mine.set()
                await asyncio.wait_for(other.wait(), timeout=2)
                return RetrievalOutcome(documents=[], method="hybrid_search")

        executor = SubQueryExecutor(Retriever(), mock_synthesizer)

        report = await executor.execute(_plan(("a", []), ("b", [])))

        assert all(r.success for r in report.results)

    async def test_failed_sub_query_contained(self, mock_retriever, mock_synthesizer):
        """Test one failure becomes a success=False result and others still run."""
        plan = _plan(("boom question", []), ("fine question", []), ("follow-up", [0]))
        executor = SubQueryExecutor(mock_retriever, mock_synthesizer)

        report = await executor.execute(plan)

        by_id = {r.sub_query_id: r for r in report.results}
        assert not by_id[0].success
        assert by_id[0].response.startswith(FAILED_SUB_QUERY_PREFIX)
        assert by_id[1].success
        assert by_id[2].success
        # failed dependencies are left out of the digest
        third_call = mock_retriever.retrieve.await_args_list[-1].args[0]
        assert third_call == "follow-up"
        assert not report.fell_back

    async def test_child_contexts(self, mock_retriever, mock_synthesizer):
        context = ExecutionContext(configuration={"use_multi_hop": False})
        executor = SubQueryExecutor(mock_retriever, mock_synthesizer)

        await executor.execute(_plan(("a", []), ("b", [])), context=context)

        children = [c.kwargs["context"] for c in mock_retriever.retrieve.await_args_list]
        assert all(c is not context for c in children)
        assert children[0].execution_id != children[1].execution_id
        assert all(c.get_config("use_multi_hop") is False for c in children)

    async def test_filters_and_top_k_override(self, mock_retriever, mock_synthesizer):
        executor = SubQueryExecutor(mock_retriever, mock_synthesizer, top_k=10)

        await executor.execute(simple_plan("q"), {"category": "returns"}, top_k=3)

        assert mock_retriever.retrieve.await_args.args == ("q", 3, {"category": "returns"})

    async def test_empty_plan_rejected(self, mock_retriever, mock_synthesizer):
        executor = SubQueryExecutor(mock_retriever, mock_synthesizer)
        with pytest.raises(InvalidInputError):
            await executor.execute(QueryPlan(original_query="q"))


class TestExecutorFallback:
    """Tests for falling back to the original question."""

    async def test_plan_failure_runs_original_query(self, mock_retriever, mock_synthesizer):
        plan = _plan(("a", []), ("b", [0]), original="a and then b")
        executor = SubQueryExecutor(mock_retriever, mock_synthesizer)

        with patch("support_rag.executor.executor.dependency_levels", side_effect=RuntimeError("bad plan")):
            report = await executor.execute(plan)

        assert report.fell_back
        assert len(report.results) == 1
        assert report.results[0].query == "a and then b"

    async def test_fallback_failure_propagates(self, mock_retriever, mock_synthesizer):
        executor = SubQueryExecutor(mock_retriever, mock_synthesizer)

        with pytest.raises(RuntimeError, match="vector store timeout"):
            await executor.execute(simple_plan("boom"))
