# src/support_rag/retrieval/reranker.py

from __future__ import annotations

import logging
from typing import List, Sequence

from langchain_core.embeddings import Embeddings

from support_rag.retrieval.constants import (
    DEFAULT_RERANK_CONCURRENCY,
    RERANK_BASE_WEIGHT,
    RERANK_LENGTH_NORM,
    RERANK_LENGTH_WEIGHT,
    RERANK_SCORE_KEY,
)
from support_rag.retrieval.similarity import cosine_similarity
from support_rag.retrieval.state import RetrievedDocument
from support_rag.utils import bounded_gather, observe

logger = logging.getLogger(__name__)


def rerank_score(cosine: float, content_length: int) -> float:
    """Cosine similarity with a mild boost for longer documents."""
    length_factor = min(1.0, content_length / RERANK_LENGTH_NORM)
    return cosine * (RERANK_BASE_WEIGHT + RERANK_LENGTH_WEIGHT * length_factor)


class EmbeddingReranker:
    """Similarity-plus-length rerank over embeddings.

    Output length is always min(final_top_k, len(documents)). Any scoring
    failure degrades to the first `final_top_k` input documents unchanged.
    """

    def __init__(
        self,
        embeddings: Embeddings,
        *,
        enabled: bool = True,
        concurrency: int = DEFAULT_RERANK_CONCURRENCY,
    ):
        self._embeddings = embeddings
        self.enabled = enabled
        self._concurrency = concurrency

    @observe
    async def rerank(
        self,
        query: str,
        documents: Sequence[RetrievedDocument],
        final_top_k: int,
    ) -> List[RetrievedDocument]:
        final_top_k = max(0, int(final_top_k))
        docs = list(documents)
        if not self.enabled or not docs:
            return docs[:final_top_k]

        try:
            query_vec = await self._embeddings.aembed_query(query)
            doc_vecs = await bounded_gather(
                lambda d: self._embeddings.aembed_query(d.content),
                docs,
                limit=self._concurrency,
            )
            scored = [
                (rerank_score(cosine_similarity(query_vec, vec), len(doc.content)), idx, doc)
                for idx, (doc, vec) in enumerate(zip(docs, doc_vecs))
            ]
        except Exception as e:
            logger.warning(f"Rerank failed, keeping fused order: {e}")
            return docs[:final_top_k]

        scored.sort(key=lambda t: (-t[0], t[1]))
        out = [doc.with_metadata(**{RERANK_SCORE_KEY: score}) for score, _, doc in scored[:final_top_k]]
        logger.info(f"Reranked {len(docs)} documents, kept {len(out)}")
        return out
