# src/support_rag/compression/constants.py

DEFAULT_MAX_CONTEXT_TOKENS = 4000
DEFAULT_MAX_RESPONSE_TOKENS = 1000
SAFETY_MARGIN_TOKENS = 100
WORDS_PER_TOKEN = 0.75  # heuristic used when the tokenizer fails

DEFAULT_ENCODING = "cl100k_base"

DEFAULT_RELEVANCE_THRESHOLD = 0.5
DEFAULT_SIMILARITY_THRESHOLD = 0.85  # Jaccard, near-duplicate sentences
FALLBACK_SENTENCE_COUNT = 10
MIN_PARTIAL_TOKENS = 50  # remaining budget needed to truncate instead of drop
