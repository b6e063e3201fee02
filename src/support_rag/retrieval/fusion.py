# src/support_rag/retrieval/fusion.py

from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Tuple

from support_rag.retrieval.constants import DEFAULT_RRF_K, RRF_SCORE_KEY
from support_rag.retrieval.state import RetrievedDocument


def rrf_contribution(rank: int, weight: float = 1.0, k: int = DEFAULT_RRF_K) -> float:
    """Score one 1-based rank adds to a document."""
    return weight / (k + rank)


def reciprocal_rank_fusion(
    ranked_lists: Sequence[Tuple[Sequence[RetrievedDocument], float]],
    *,
    k: int = DEFAULT_RRF_K,
    limit: Optional[int] = None,
) -> List[RetrievedDocument]:
    """Weighted Reciprocal Rank Fusion.

    ranked_lists: (documents best-first, weight) per branch.

    Contributions are summed per document id. The first-seen copy of a
    document is kept, so list order decides whose metadata wins. Ties keep
    first-seen order. Each returned document carries its fused score under
    `rrf_score`.
    """
    scores: Dict[str, float] = {}
    first_seen: Dict[str, RetrievedDocument] = {}
    order: Dict[str, int] = {}

    for docs, weight in ranked_lists:
        for rank, doc in enumerate(docs, start=1):
            key = doc.dedup_key
            scores[key] = scores.get(key, 0.0) + rrf_contribution(rank, weight, k)
            if key not in first_seen:
                first_seen[key] = doc
                order[key] = len(order)

    ranked = sorted(scores.items(), key=lambda kv: (-kv[1], order[kv[0]]))
    if limit is not None:
        ranked = ranked[: max(0, limit)]
    return [first_seen[key].with_metadata(**{RRF_SCORE_KEY: score}) for key, score in ranked]
