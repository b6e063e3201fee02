# tests/unit/compression/conftest.py
"""Shared fixtures for compression unit tests."""

import os

import pytest

from support_rag.compression.compressor import ContextCompressor
from support_rag.compression.tokens import TokenBudgetManager

# Disable Langfuse for unit tests
os.environ["LANGFUSE_ENABLED"] = "0"


@pytest.fixture
def token_manager(whitespace_encoding):
    """Token manager counting one token per word."""
    return TokenBudgetManager(encoding=whitespace_encoding)


@pytest.fixture
def compressor(keyword_embeddings, token_manager):
    return ContextCompressor(keyword_embeddings, token_manager)


@pytest.fixture
def return_policy_doc(make_doc):
    return make_doc(
        "returns",
        "Our return policy allows returns within 30 days. "
        "The office cat is named Max. "
        "A refund is issued after the return is received.",
        title="Return policy",
    )
