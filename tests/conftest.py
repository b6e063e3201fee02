# tests/conftest.py
"""Test doubles shared by all unit test packages."""

import os
import re
from typing import List, Sequence

import pytest
from langchain_core.embeddings import Embeddings

# Disable Langfuse for unit tests (must happen before support_rag is imported)
os.environ["LANGFUSE_ENABLED"] = "0"

from support_rag.retrieval.state import RetrievedDocument  # noqa: E402

_WORD = re.compile(r"[a-z0-9]+")


class KeywordEmbeddings(Embeddings):
    """Bag-of-words vectors over a fixed vocabulary.

    Texts sharing vocabulary words get a high cosine; texts with no
    vocabulary words embed to the zero vector.
    """

    def __init__(self, vocabulary: Sequence[str]):
        self.vocabulary = [w.lower() for w in vocabulary]
        self.calls: List[str] = []

    def _embed(self, text: str) -> List[float]:
        words = _WORD.findall(text.lower())
        return [float(words.count(v)) for v in self.vocabulary]

    def embed_query(self, text: str) -> List[float]:
        self.calls.append(text)
        return self._embed(text)

    def embed_documents(self, texts: List[str]) -> List[List[float]]:
        self.calls.extend(texts)
        return [self._embed(t) for t in texts]

    async def aembed_query(self, text: str) -> List[float]:
        return self.embed_query(text)

    async def aembed_documents(self, texts: List[str]) -> List[List[float]]:
        return self.embed_documents(texts)


class WhitespaceEncoding:
    """One token per whitespace-separated word."""

    def encode(self, text: str) -> list:
        return text.split()

    def decode(self, tokens: list) -> str:
        return " ".join(tokens)


class BrokenEncoding:
    def encode(self, text: str) -> list:
        raise RuntimeError("tokenizer unavailable")

    def decode(self, tokens: list) -> str:
        raise RuntimeError("tokenizer unavailable")


@pytest.fixture
def support_vocabulary():
    return ["return", "refund", "policy", "days", "order", "shipping", "label", "plan", "price", "account"]


@pytest.fixture
def keyword_embeddings(support_vocabulary):
    return KeywordEmbeddings(support_vocabulary)


@pytest.fixture
def whitespace_encoding():
    return WhitespaceEncoding()


@pytest.fixture
def broken_encoding():
    return BrokenEncoding()


@pytest.fixture
def make_doc():
    """Factory for RetrievedDocument values."""

    def _make(doc_id, content="Sample content.", title=None, **metadata):
        meta = dict(metadata)
        meta["title"] = title or f"Title {doc_id}"
        return RetrievedDocument(id=doc_id, content=content, metadata=meta)

    return _make
