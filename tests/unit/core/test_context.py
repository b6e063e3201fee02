# tests/unit/core/test_context.py
"""Unit tests for ExecutionContext."""

from support_rag.context import ExecutionContext


class TestExecutionContext:
    def test_defaults(self):
        context = ExecutionContext()

        assert context.execution_id
        assert context.max_retries == 3
        assert context.timeout_seconds == 30.0
        assert context.shared_data == {}

    def test_ids_are_unique(self):
        assert ExecutionContext().execution_id != ExecutionContext().execution_id

    def test_config_and_shared_access(self):
        context = ExecutionContext(configuration={"max_hops": 2})

        assert context.get_config("max_hops") == 2
        assert context.get_config("use_multi_hop", True) is True
        assert context.has_config("max_hops")
        assert not context.has_shared("tokens_used")

        context.set_shared("tokens_used", 42)

        assert context.get_shared("tokens_used") == 42
        assert context.get_shared("missing", "n/a") == "n/a"

    def test_create_child(self):
        """Test a child keeps the settings but gets its own id and shared data."""
        parent = ExecutionContext(
            session_id="s-1",
            user_id="u-1",
            configuration={"use_reranking": False},
            max_retries=1,
            timeout_seconds=5.0,
            debug=True,
        )
        parent.set_shared("hop_queries", ["q"])

        child = parent.create_child()
        child.configuration["use_reranking"] = True
        child.set_shared("tokens_used", 7)

        assert child.execution_id != parent.execution_id
        assert child.session_id == "s-1"
        assert child.user_id == "u-1"
        assert child.max_retries == 1
        assert child.timeout_seconds == 5.0
        assert child.debug is True
        assert child.shared_data == {"tokens_used": 7}
        assert parent.get_config("use_reranking") is False
        assert parent.shared_data == {"hop_queries": ["q"]}
