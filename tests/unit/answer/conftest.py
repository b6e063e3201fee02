# tests/unit/answer/conftest.py
"""Shared fixtures for answer module unit tests."""

import os
from unittest.mock import AsyncMock, MagicMock

import pytest
from langchain_core.messages import AIMessage

# Disable Langfuse for unit tests
os.environ["LANGFUSE_ENABLED"] = "0"


@pytest.fixture
def mock_llm():
    """Mock chat model; configure `mock_llm.ainvoke` per test."""
    llm = MagicMock()
    llm.model_name = "mock-model"
    llm.ainvoke = AsyncMock(return_value=AIMessage(content="ok"))
    return llm


@pytest.fixture
def policy_docs(make_doc):
    return [
        make_doc(
            "returns",
            "Items can be returned within 30 days of delivery. Refunds are issued to the original payment method.",
            title="Return policy",
        ),
        make_doc("shipping", "Standard shipping takes 3 to 5 business days.", title="Shipping"),
    ]
