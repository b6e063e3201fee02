# src/support_rag/retrieval/retriever.py

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from support_rag.context import ExecutionContext
from support_rag.retrieval.constants import RETRIEVAL_METHOD_HYBRID, RETRIEVAL_METHOD_MULTI_HOP
from support_rag.retrieval.hybrid_search import HybridSearchService
from support_rag.retrieval.multi_hop import MultiHopRetriever
from support_rag.retrieval.state import RetrievalOutcome

logger = logging.getLogger(__name__)


class DocumentRetriever:
    """Single entry point used by the workflow and the sub-query executor.

    Routes to multi-hop retrieval when asked for and available, otherwise to
    hybrid search. Per-request overrides are read from the context
    configuration (`use_multi_hop`, `max_hops`, `use_reranking`).
    """

    def __init__(self, hybrid: HybridSearchService, multi_hop: Optional[MultiHopRetriever] = None):
        self.hybrid = hybrid
        self.multi_hop = multi_hop

    def _multi_hop_allowed(self, requested: bool, context: Optional[ExecutionContext]) -> bool:
        if not requested or self.multi_hop is None or not self.multi_hop.config.enabled:
            return False
        if context is not None:
            return bool(context.get_config("use_multi_hop", True))
        return True

    async def retrieve(
        self,
        query: str,
        top_k: int,
        filters: Optional[Mapping[str, Any]] = None,
        *,
        use_multi_hop: bool = False,
        context: Optional[ExecutionContext] = None,
    ) -> RetrievalOutcome:
        if self._multi_hop_allowed(use_multi_hop, context):
            max_hops = context.get_config("max_hops") if context else None
            result = await self.multi_hop.retrieve(query, filters, max_hops=max_hops)
            outcome = RetrievalOutcome(
                documents=result.documents[:top_k],
                method=RETRIEVAL_METHOD_MULTI_HOP,
                hops_performed=result.hops_performed,
                hop_queries=list(result.hop_queries),
            )
        else:
            use_reranking = context.get_config("use_reranking") if context else None
            docs = await self.hybrid.search(query, top_k, filters, use_reranking=use_reranking)
            outcome = RetrievalOutcome(
                documents=docs,
                method=RETRIEVAL_METHOD_HYBRID,
                hops_performed=1,
                hop_queries=[query],
            )

        if context is not None:
            context.set_shared("retrieved_document_count", len(outcome.documents))
            context.set_shared("hops_performed", outcome.hops_performed)
            context.set_shared("hop_queries", outcome.hop_queries)

        logger.info(
            f"Retrieved {len(outcome.documents)} documents via {outcome.method} ({outcome.hops_performed} hops)"
        )
        return outcome
