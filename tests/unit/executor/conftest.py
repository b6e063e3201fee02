# tests/unit/executor/conftest.py
"""Shared fixtures for executor module unit tests."""

import os
from unittest.mock import AsyncMock, MagicMock

import pytest

from support_rag.answer.state import Source, SynthesisResult
from support_rag.retrieval.state import RetrievalOutcome, RetrievedDocument

# Disable Langfuse for unit tests
os.environ["LANGFUSE_ENABLED"] = "0"


def _last_line(query: str) -> str:
    return query.rsplit("Current question: ", 1)[-1]


@pytest.fixture
def mock_retriever():
    """Retriever returning one document per call, id derived from the question."""
    retriever = MagicMock()

    async def _retrieve(query, top_k, filters=None, *, use_multi_hop=False, context=None):
        if "boom" in query:
            raise RuntimeError("vector store timeout")
        question = _last_line(query)
        doc = RetrievedDocument(id=f"doc:{question}", content=f"Content for {question}", metadata={"title": question})
        return RetrievalOutcome(documents=[doc], method="hybrid_search", hop_queries=[query])

    retriever.retrieve = AsyncMock(side_effect=_retrieve)
    return retriever


@pytest.fixture
def mock_synthesizer():
    """Synthesizer answering 'answer: <query>' with the documents as sources."""
    synthesizer = MagicMock()

    async def _synthesize(query, documents, compressed_context=None):
        return SynthesisResult(
            response=f"answer: {query}",
            sources=[Source.from_document(d) for d in documents],
            tokens_used=10,
            model_used="test-model",
        )

    synthesizer.synthesize = AsyncMock(side_effect=_synthesize)
    return synthesizer
