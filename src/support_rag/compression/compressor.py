# src/support_rag/compression/compressor.py

from __future__ import annotations

import logging
import re
import uuid
from typing import List, Optional, Sequence, Tuple

from langchain_core.embeddings import Embeddings

from support_rag.compression.constants import DEFAULT_SIMILARITY_THRESHOLD
from support_rag.compression.state import CompressionResult, ScoredSentence
from support_rag.compression.tokens import TokenBudgetManager
from support_rag.config import CompressionConfig
from support_rag.context import ExecutionContext
from support_rag.errors import InvalidInputError
from support_rag.retrieval.similarity import cosine_similarity
from support_rag.retrieval.state import RetrievedDocument
from support_rag.utils import gather_or_cancel, observe

logger = logging.getLogger(__name__)

_SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?])\s+")


def split_sentences(text: str) -> List[str]:
    return [s.strip() for s in _SENTENCE_SPLIT_RE.split(text or "") if s.strip()]


def jaccard_similarity(a: str, b: str) -> float:
    words_a = set(a.lower().split())
    words_b = set(b.lower().split())
    union = words_a | words_b
    if not union:
        return 0.0
    return len(words_a & words_b) / len(union)


def deduplicate_sentences(
    sentences: Sequence[ScoredSentence],
    threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
) -> List[ScoredSentence]:
    """Greedy near-duplicate removal; input must already be in score order."""
    kept: List[ScoredSentence] = []
    for sentence in sentences:
        if any(jaccard_similarity(sentence.text, k.text) >= threshold for k in kept):
            continue
        kept.append(sentence)
    return kept


class ContextCompressor:
    """Selects the most query-relevant sentences that fit a token budget.

    Steps: split documents into sentences, score each against the query by
    embedding cosine, keep those above the relevance threshold (or the top
    few when none pass), drop near-duplicates, then fill the budget in score
    order, truncating the last sentence when enough budget is left.
    """

    def __init__(
        self,
        embeddings: Embeddings,
        token_manager: Optional[TokenBudgetManager] = None,
        config: Optional[CompressionConfig] = None,
    ):
        self.embeddings = embeddings
        self.config = config or CompressionConfig()
        self.tokens = token_manager or TokenBudgetManager(encoding_name=self.config.encoding_name)

    async def _score(self, query: str, sentences: List[Tuple[str, str, int]]) -> List[ScoredSentence]:
        query_vec, sentence_vecs = await gather_or_cancel(
            self.embeddings.aembed_query(query),
            self.embeddings.aembed_documents([s[0] for s in sentences]),
        )
        scored = [
            ScoredSentence(text=text, score=cosine_similarity(query_vec, vec), document_id=doc_id, position=pos)
            for (text, doc_id, pos), vec in zip(sentences, sentence_vecs)
        ]
        scored.sort(key=lambda s: (-s.score, s.position))
        return scored

    def _select_within_budget(self, sentences: Sequence[ScoredSentence], max_tokens: int) -> List[Tuple[str, str]]:
        selected: List[Tuple[str, str]] = []
        used = 0
        for sentence in sentences:
            cost = self.tokens.count_tokens(sentence.text)
            if used + cost <= max_tokens:
                selected.append((sentence.text, sentence.document_id))
                used += cost
                continue
            remaining = max_tokens - used
            if remaining > self.config.min_partial_tokens:
                partial = self.tokens.truncate_to_tokens(sentence.text, remaining)
                if partial:
                    selected.append((partial, sentence.document_id))
            break
        return selected

    @observe
    async def compress(
        self,
        documents: Sequence[RetrievedDocument],
        query: str,
        max_tokens: Optional[int] = None,
        *,
        context: Optional[ExecutionContext] = None,
    ) -> CompressionResult:
        if not query or not query.strip():
            raise InvalidInputError("Compression query must not be blank")

        query_id = str(uuid.uuid4())
        max_tokens = int(self.config.max_tokens if max_tokens is None else max_tokens)
        if max_tokens < 1:
            raise InvalidInputError(f"max_tokens must be >= 1, got {max_tokens}")

        if not documents:
            return CompressionResult(compressed_context="", compression_ratio=1.0, query_id=query_id)

        original_tokens = self.tokens.count_tokens([d.content for d in documents])

        sentences: List[Tuple[str, str, int]] = []
        for doc in documents:
            for text in split_sentences(doc.content):
                sentences.append((text, doc.dedup_key, len(sentences)))
        if not sentences:
            return CompressionResult(
                compressed_context="", compression_ratio=1.0, original_tokens=original_tokens, query_id=query_id
            )

        scored = await self._score(query, sentences)

        threshold = self.config.relevance_threshold
        relevant = [s for s in scored if s.score >= threshold]
        if not relevant:
            relevant = scored[: self.config.fallback_sentence_count]
            logger.info(f"No sentence reached relevance {threshold}; keeping top {len(relevant)} by score")

        unique = deduplicate_sentences(relevant, self.config.similarity_threshold)
        selected = self._select_within_budget(unique, max_tokens)

        text = self.tokens.enforce_token_budget(" ".join(t for t, _ in selected), max_tokens)
        if not text:
            # first sentence alone exceeds a small budget
            text = self.tokens.truncate_to_tokens(unique[0].text, max_tokens)
            selected = [(text, unique[0].document_id)]

        doc_ids: List[str] = []
        for _, doc_id in selected:
            if doc_id not in doc_ids:
                doc_ids.append(doc_id)

        compressed_tokens = self.tokens.count_tokens(text)
        metrics = self.tokens.log_compression_ratio(query_id, original_tokens, compressed_tokens)
        if context is not None:
            context.set_shared("compression_ratio", metrics.compression_ratio)

        logger.info(
            f"Compressed {len(documents)} documents / {len(sentences)} sentences to "
            f"{len(selected)} sentences ({compressed_tokens} tokens)"
        )
        return CompressionResult(
            compressed_context=text,
            compression_ratio=metrics.compression_ratio,
            source_document_ids=doc_ids,
            original_tokens=original_tokens,
            compressed_tokens=compressed_tokens,
            query_id=query_id,
        )
