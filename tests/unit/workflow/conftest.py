# tests/unit/workflow/conftest.py
"""Shared fixtures for workflow unit tests."""

import os
import random
from unittest.mock import AsyncMock, MagicMock

import pytest
from langchain_core.messages import AIMessage

from support_rag.compression.compressor import ContextCompressor
from support_rag.compression.tokens import TokenBudgetManager
from support_rag.retrieval.adapters import InMemoryKeywordSearch
from support_rag.retrieval.hybrid_search import HybridSearchService
from support_rag.retrieval.reranker import EmbeddingReranker
from support_rag.retrieval.retriever import DocumentRetriever
from support_rag.retrieval.similarity import cosine_similarity
from support_rag.workflow.fsm import WorkflowEvent, WorkflowStateMachine, WorkflowStatus
from support_rag.workflow.retry import RetryableStageExecutor

# Disable Langfuse for unit tests
os.environ["LANGFUSE_ENABLED"] = "0"

GROUNDED_ANSWER = "Items can be returned within 30 days of delivery [Source: Return policy]."

# events that walk a fresh machine forward to each status
_PATH = {
    WorkflowStatus.INITIALIZED: [],
    WorkflowStatus.PLANNING: [WorkflowEvent.START],
    WorkflowStatus.RETRIEVING: [WorkflowEvent.START, WorkflowEvent.PLANNING_COMPLETE],
    WorkflowStatus.COMPRESSING: [WorkflowEvent.START, WorkflowEvent.PLANNING_COMPLETE, WorkflowEvent.RETRIEVAL_COMPLETE],
    WorkflowStatus.GENERATING: [
        WorkflowEvent.START,
        WorkflowEvent.PLANNING_COMPLETE,
        WorkflowEvent.RETRIEVAL_COMPLETE,
        WorkflowEvent.COMPRESSION_COMPLETE,
    ],
    WorkflowStatus.VALIDATING: [
        WorkflowEvent.START,
        WorkflowEvent.PLANNING_COMPLETE,
        WorkflowEvent.RETRIEVAL_COMPLETE,
        WorkflowEvent.COMPRESSION_COMPLETE,
        WorkflowEvent.GENERATION_COMPLETE,
    ],
}


class RecordingSleep:
    """Stand-in for asyncio.sleep that records the requested delays."""

    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


class KeywordVectorSearch:
    """VectorSearchAdapter ranking a fixed corpus by embedding cosine."""

    def __init__(self, documents, embeddings):
        self.documents = list(documents)
        self.embeddings = embeddings
        self.calls = []

    async def search(self, query, k, filters=None):
        self.calls.append((query, k, filters))
        query_vec = await self.embeddings.aembed_query(query)
        doc_vecs = await self.embeddings.aembed_documents([d.content for d in self.documents])
        scored = [
            (cosine_similarity(query_vec, vec), i, doc) for i, (doc, vec) in enumerate(zip(self.documents, doc_vecs))
        ]
        scored.sort(key=lambda t: (-t[0], t[1]))
        return [doc.with_metadata(vector_score=score) for score, _, doc in scored[:k]]


@pytest.fixture
def machine_at():
    """Factory for a state machine already in the given status."""

    def _make(status, max_retries=3):
        machine = WorkflowStateMachine(max_retries=max_retries)
        for event in _PATH[status]:
            assert machine.send(event)
        return machine

    return _make


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def stage_executor(recording_sleep):
    """Retry executor that never really sleeps."""
    return RetryableStageExecutor(sleep=recording_sleep, rng=random.Random(7))


@pytest.fixture
def corpus(make_doc):
    return [
        make_doc(
            "returns",
            "Items can be returned within 30 days of delivery. Refunds are issued to the original payment method.",
            title="Return policy",
            source="kb",
        ),
        make_doc(
            "start-return",
            "To start a return, open the order page and select Return item. Print the prepaid return label for the return.",
            title="Start a return",
            source="kb",
        ),
        make_doc("shipping", "Standard shipping takes 3 to 5 business days.", title="Shipping", source="kb"),
    ]


@pytest.fixture
def vector_search(corpus, keyword_embeddings):
    return KeywordVectorSearch(corpus, keyword_embeddings)


@pytest.fixture
def retriever(vector_search, corpus, keyword_embeddings):
    hybrid = HybridSearchService(
        vector_search,
        InMemoryKeywordSearch(corpus),
        reranker=EmbeddingReranker(keyword_embeddings),
    )
    return DocumentRetriever(hybrid)


@pytest.fixture
def compressor(keyword_embeddings, whitespace_encoding):
    return ContextCompressor(keyword_embeddings, TokenBudgetManager(encoding=whitespace_encoding))


@pytest.fixture
def answer_llm():
    """Chat model mock that always answers with GROUNDED_ANSWER."""
    llm = MagicMock()
    llm.model_name = "mock-model"
    llm.ainvoke = AsyncMock(return_value=AIMessage(content=GROUNDED_ANSWER))
    return llm
