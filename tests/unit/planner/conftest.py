# tests/unit/planner/conftest.py
"""Shared fixtures for planner module unit tests."""

import os
from unittest.mock import AsyncMock, MagicMock

import pytest

from support_rag.planner.state import ProposedSubQuery

# Disable Langfuse for unit tests
os.environ["LANGFUSE_ENABLED"] = "0"


@pytest.fixture
def mock_llm():
    """Mock LLM whose structured-output chains are kept per schema name.

    `mock_llm.chains["DecompositionResult"].ainvoke` is an AsyncMock the test
    configures.
    """
    llm = MagicMock()
    llm.chains = {}

    def with_structured_output(schema, **kwargs):
        chain = llm.chains.get(schema.__name__)
        if chain is None:
            chain = MagicMock()
            chain.ainvoke = AsyncMock()
            llm.chains[schema.__name__] = chain
        return chain

    llm.with_structured_output = MagicMock(side_effect=with_structured_output)
    return llm


@pytest.fixture
def return_policy_proposal():
    """Two-step decomposition where the second step needs the first."""
    return [
        ProposedSubQuery(id=0, query="What is the return policy?", dependencies=[], query_type="FACTUAL"),
        ProposedSubQuery(id=1, query="How do I start a return?", dependencies=[0], query_type="PROCEDURAL"),
    ]
