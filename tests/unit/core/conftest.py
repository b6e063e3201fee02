# tests/unit/core/conftest.py
"""Shared fixtures for config, context and schema tests."""

import os

import pytest

# Disable Langfuse for unit tests
os.environ["LANGFUSE_ENABLED"] = "0"


@pytest.fixture
def env(monkeypatch):
    """Process environment with SUPPORT_RAG_* overrides for several sections."""
    values = {
        "SUPPORT_RAG_RETRIEVAL__RRF_K": "30",
        "SUPPORT_RAG_WORKFLOW__MAX_RETRIES": "5",
        "SUPPORT_RAG_MULTI_HOP__ENABLED": "false",
        "SUPPORT_RAG_COMPRESSION__MAX_TOKENS": "2000",
        "SUPPORT_RAG_CHAT_MODEL": "openai:gpt-4o-mini",
        "UNRELATED": "x",
    }
    for name, value in values.items():
        monkeypatch.setenv(name, value)
    return values
