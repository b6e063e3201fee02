# src/support_rag/retrieval/constants.py

# Hybrid search
DEFAULT_TOP_K = 10
RETRIEVAL_K_MULTIPLIER = 2  # each branch fetches 2 * top_k candidates
DEFAULT_RRF_K = 60
DEFAULT_VECTOR_WEIGHT = 0.6
DEFAULT_KEYWORD_WEIGHT = 0.4

# Rerank
RERANK_BASE_WEIGHT = 0.9
RERANK_LENGTH_WEIGHT = 0.1
RERANK_LENGTH_NORM = 1000  # characters at which the length boost saturates
DEFAULT_RERANK_CONCURRENCY = 8

# Multi-hop
DEFAULT_MAX_HOPS = 3
DEFAULT_TOP_K_PER_HOP = 10
MAX_ENTITIES = 5
ENTITY_DOC_LIMIT = 5  # documents shown to the entity extractor
ENTITY_DOC_CHARS = 500
MIN_ENTITY_LENGTH = 3

# Metadata keys
RRF_SCORE_KEY = "rrf_score"
RERANK_SCORE_KEY = "rerank_score"
VECTOR_SCORE_KEY = "vector_score"
KEYWORD_SCORE_KEY = "keyword_score"

RETRIEVAL_METHOD_HYBRID = "hybrid_search"
RETRIEVAL_METHOD_MULTI_HOP = "multi_hop_retrieval"
