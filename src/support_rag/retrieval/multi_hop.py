# src/support_rag/retrieval/multi_hop.py

from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional

from support_rag.config import MultiHopConfig
from support_rag.errors import InvalidInputError
from support_rag.retrieval.adapters import VectorSearchAdapter
from support_rag.retrieval.entities import EntityExtractor
from support_rag.retrieval.state import MultiHopResult, RetrievedDocument
from support_rag.utils import observe

logger = logging.getLogger(__name__)


class _DocumentCollector:
    """Accumulates documents across hops, first-seen wins."""

    def __init__(self):
        self._seen = set()
        self.documents: List[RetrievedDocument] = []

    def add(self, docs) -> int:
        added = 0
        for doc in docs:
            key = doc.dedup_key
            if key in self._seen:
                continue
            self._seen.add(key)
            self.documents.append(doc)
            added += 1
        return added


class MultiHopRetriever:
    """Iterative retrieval seeded by entities found in the first hop.

    Hop 1 retrieves for the original query. Each extracted entity (up to
    max_hops - 1 of them) yields a follow-up query "<entity> <query>". A
    failure mid-way returns what the completed hops collected.
    """

    def __init__(
        self,
        search: VectorSearchAdapter,
        extractor: EntityExtractor,
        config: Optional[MultiHopConfig] = None,
    ):
        self.search = search
        self.extractor = extractor
        self.config = config or MultiHopConfig()

    @observe
    async def retrieve(
        self,
        query: str,
        filters: Optional[Mapping[str, Any]] = None,
        *,
        max_hops: Optional[int] = None,
        enabled: Optional[bool] = None,
    ) -> MultiHopResult:
        if not query or not query.strip():
            raise InvalidInputError("Multi-hop query must not be blank")

        enabled = self.config.enabled if enabled is None else enabled
        max_hops = max(1, int(max_hops or self.config.max_hops))
        k = self.config.top_k_per_hop

        collector = _DocumentCollector()
        hop_queries = [query]

        if not enabled:
            collector.add(await self.search.search(query, k, filters))
            return MultiHopResult(documents=collector.documents, hops_performed=1, hop_queries=hop_queries)

        hops = 0
        try:
            collector.add(await self.search.search(query, k, filters))
            hops = 1
            logger.info(f"Hop 1: {len(collector.documents)} documents for original query")

            if max_hops <= 1:
                return MultiHopResult(documents=collector.documents, hops_performed=hops, hop_queries=hop_queries)

            entities = await self.extractor.extract(query, collector.documents)
            if not entities:
                logger.info("No entities extracted, stopping after hop 1")
                return MultiHopResult(documents=collector.documents, hops_performed=hops, hop_queries=hop_queries)

            for entity in entities[: max_hops - 1]:
                hop_query = f"{entity} {query}"
                added = collector.add(await self.search.search(hop_query, k, filters))
                hop_queries.append(hop_query)
                hops += 1
                logger.info(f"Hop {hops}: '{entity}' added {added} new documents")
        except Exception as e:
            if hops == 0:
                raise
            logger.warning(f"Multi-hop retrieval stopped after {hops} hops: {e}")

        return MultiHopResult(documents=collector.documents, hops_performed=hops, hop_queries=hop_queries)
