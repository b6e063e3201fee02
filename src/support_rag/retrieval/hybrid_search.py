# src/support_rag/retrieval/hybrid_search.py

from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional

from support_rag.config import RetrievalConfig
from support_rag.errors import InvalidInputError
from support_rag.retrieval.adapters import KeywordSearchAdapter, VectorSearchAdapter
from support_rag.retrieval.constants import RETRIEVAL_K_MULTIPLIER
from support_rag.retrieval.fusion import reciprocal_rank_fusion
from support_rag.retrieval.reranker import EmbeddingReranker
from support_rag.retrieval.state import RetrievedDocument
from support_rag.utils import gather_or_cancel, observe

logger = logging.getLogger(__name__)


class HybridSearchService:
    """Vector + keyword search merged with weighted Reciprocal Rank Fusion.

    Both branches run concurrently and request 2 * top_k candidates. The
    fused list is reranked when a reranker is enabled, otherwise cut to
    top_k. If either branch fails the service answers with vector-only
    results for top_k.
    """

    def __init__(
        self,
        vector: VectorSearchAdapter,
        keyword: KeywordSearchAdapter,
        *,
        reranker: Optional[EmbeddingReranker] = None,
        config: Optional[RetrievalConfig] = None,
    ):
        self.vector = vector
        self.keyword = keyword
        self.reranker = reranker
        self.config = config or RetrievalConfig()

    def _rerank_enabled(self, use_reranking: Optional[bool]) -> bool:
        if self.reranker is None or not self.reranker.enabled:
            return False
        if use_reranking is None:
            return self.config.use_reranking
        return use_reranking

    @observe
    async def search(
        self,
        query: str,
        top_k: int,
        filters: Optional[Mapping[str, Any]] = None,
        *,
        use_reranking: Optional[bool] = None,
    ) -> List[RetrievedDocument]:
        if not query or not query.strip():
            raise InvalidInputError("Search query must not be blank")
        if top_k < 1:
            raise InvalidInputError(f"top_k must be >= 1, got {top_k}")

        retrieval_k = RETRIEVAL_K_MULTIPLIER * top_k

        try:
            vector_docs, keyword_hits = await gather_or_cancel(
                self.vector.search(query, retrieval_k, filters),
                self.keyword.search(query, retrieval_k),
            )
            keyword_docs = [hit.to_document() for hit in keyword_hits]

            fused = reciprocal_rank_fusion(
                [(vector_docs, self.config.vector_weight), (keyword_docs, self.config.keyword_weight)],
                k=self.config.rrf_k,
                limit=retrieval_k,
            )
            logger.info(
                f"Fused {len(vector_docs)} vector + {len(keyword_docs)} keyword results into {len(fused)} documents"
            )

            if self._rerank_enabled(use_reranking):
                return await self.reranker.rerank(query, fused, top_k)
            return fused[:top_k]
        except Exception as e:
            logger.warning(f"Hybrid search failed, falling back to vector-only results: {e}")
            docs = await self.vector.search(query, top_k, filters)
            return list(docs)[:top_k]
