# tests/unit/retrieval/conftest.py
"""Shared fixtures for retrieval unit tests."""

import os
from unittest.mock import AsyncMock, MagicMock

import pytest

from support_rag.retrieval.state import KeywordHit

# Disable Langfuse for unit tests
os.environ["LANGFUSE_ENABLED"] = "0"


@pytest.fixture
def vector_docs(make_doc):
    """Vector branch results A, B, C (best first)."""
    return [
        make_doc("A", "Items can be returned within 30 days.", title="Returns"),
        make_doc("B", "Refunds go to the original payment method.", title="Refunds"),
        make_doc("C", "Shipping takes 3 to 5 days.", title="Shipping"),
    ]


@pytest.fixture
def keyword_hits():
    """Keyword branch results B, D (best first)."""
    return [
        KeywordHit(id="B", content="Refunds go to the original payment method.", title="Refunds", source="kb", score=7.5),
        KeywordHit(id="D", content="Start a return from the Orders page.", title="Start a return", source="kb", score=4.0),
    ]


@pytest.fixture
def mock_vector(vector_docs):
    """Mock VectorSearchAdapter."""
    vector = MagicMock()
    vector.search = AsyncMock(return_value=vector_docs)
    return vector


@pytest.fixture
def mock_keyword(keyword_hits):
    """Mock KeywordSearchAdapter."""
    keyword = MagicMock()
    keyword.search = AsyncMock(return_value=keyword_hits)
    return keyword


@pytest.fixture
def mock_extractor():
    """Mock EntityExtractor returning no entities."""
    extractor = MagicMock()
    extractor.extract = AsyncMock(return_value=[])
    return extractor
