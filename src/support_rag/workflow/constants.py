# src/support_rag/workflow/constants.py

from langgraph.types import RetryPolicy

from support_rag.errors import is_retryable

STAGE_PLANNING = "planning"
STAGE_RETRIEVAL = "retrieval"
STAGE_COMPRESSION = "compression"
STAGE_GENERATION = "generation"
STAGE_VALIDATION = "validation"

JITTER_MIN = 0.8
JITTER_MAX = 1.2

# Per-stage retry policies. Delays are in seconds.
STAGE_RETRY_POLICIES = {
    STAGE_PLANNING: RetryPolicy(
        initial_interval=1.0, backoff_factor=2.0, max_interval=10.0, max_attempts=3, retry_on=is_retryable
    ),
    STAGE_RETRIEVAL: RetryPolicy(
        initial_interval=1.0, backoff_factor=2.0, max_interval=10.0, max_attempts=3, retry_on=is_retryable
    ),
    STAGE_COMPRESSION: RetryPolicy(
        initial_interval=0.5, backoff_factor=2.0, max_interval=5.0, max_attempts=2, retry_on=is_retryable
    ),
    STAGE_GENERATION: RetryPolicy(
        initial_interval=1.0, backoff_factor=2.0, max_interval=10.0, max_attempts=3, retry_on=is_retryable
    ),
    STAGE_VALIDATION: RetryPolicy(
        initial_interval=0.5, backoff_factor=2.0, max_interval=5.0, max_attempts=3, retry_on=is_retryable
    ),
}
DEFAULT_RETRY_POLICY = STAGE_RETRY_POLICIES[STAGE_RETRIEVAL]

GENERATION_FALLBACK_RESPONSE = (
    "I apologize, but I'm unable to generate a response at this time due to a technical issue. "
    "Please try again later or rephrase your question."
)
GENERATION_FALLBACK_MODEL = "fallback"
VALIDATION_FALLBACK_CONFIDENCE = 50.0
VALIDATION_FALLBACK_REASON = "Validation service unavailable"
RETRIEVAL_METHOD_FALLBACK = "fallback"

RECURSION_LIMIT = 64
