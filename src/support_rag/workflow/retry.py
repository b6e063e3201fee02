# src/support_rag/workflow/retry.py
"""Bounded retry with exponential backoff, jitter and stage fallbacks."""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, Generic, List, Optional, TypeVar

from langgraph.types import RetryPolicy

from support_rag.workflow.constants import DEFAULT_RETRY_POLICY, JITTER_MAX, JITTER_MIN, STAGE_RETRY_POLICIES

logger = logging.getLogger(__name__)

T = TypeVar("T")


def backoff_delay(policy: RetryPolicy, attempt: int, rng: Optional[random.Random] = None) -> float:
    """Delay before retry number `attempt` (1-based): exponential, jittered, capped."""
    delay = policy.initial_interval * (policy.backoff_factor ** (attempt - 1))
    if policy.jitter:
        delay *= (rng or random).uniform(JITTER_MIN, JITTER_MAX)
    return min(delay, policy.max_interval)


def matches_retry_on(policy: RetryPolicy, exc: BaseException) -> bool:
    retry_on = policy.retry_on
    if isinstance(retry_on, type):
        return isinstance(exc, retry_on)
    if isinstance(retry_on, (tuple, list)):
        return isinstance(exc, tuple(retry_on))
    return bool(retry_on(exc))


def should_retry(policy: RetryPolicy, exc: BaseException, attempt: int) -> bool:
    return attempt < policy.max_attempts and matches_retry_on(policy, exc)


@dataclass
class StageOutcome(Generic[T]):
    value: T
    attempts: int
    fell_back: bool = False
    errors: List[BaseException] = field(default_factory=list)


class RetryableStageExecutor:
    """Runs a stage call under its retry policy and falls back on exhaustion.

    Each attempt is bounded by `timeout`; a timeout counts as a transient
    failure. Caller-misuse errors are not retried. The fallback result is
    returned, never an exception, unless the fallback itself raises.
    """

    def __init__(
        self,
        policies: Optional[Dict[str, RetryPolicy]] = None,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: Optional[random.Random] = None,
    ):
        self.policies = {**STAGE_RETRY_POLICIES, **(policies or {})}
        self._sleep = sleep
        self._rng = rng

    def policy_for(self, stage: str) -> RetryPolicy:
        return self.policies.get(stage, DEFAULT_RETRY_POLICY)

    async def execute(
        self,
        stage: str,
        call: Callable[[], Awaitable[T]],
        fallback: Callable[[BaseException], T],
        *,
        timeout: Optional[float] = None,
        on_error: Optional[Callable[[BaseException, int], None]] = None,
        on_retry: Optional[Callable[[int], None]] = None,
    ) -> StageOutcome[T]:
        policy = self.policy_for(stage)
        errors: List[BaseException] = []
        attempt = 0

        while True:
            attempt += 1
            try:
                if timeout is not None:
                    value = await asyncio.wait_for(call(), timeout=timeout)
                else:
                    value = await call()
                if errors:
                    logger.info(f"Stage {stage} succeeded on attempt {attempt}")
                return StageOutcome(value=value, attempts=attempt, errors=errors)
            except Exception as e:
                if isinstance(e, asyncio.TimeoutError):
                    e = asyncio.TimeoutError(f"Stage {stage} timed out after {timeout}s")
                errors.append(e)
                if on_error is not None:
                    on_error(e, attempt)
                if not should_retry(policy, e, attempt):
                    break
                delay = backoff_delay(policy, attempt, self._rng)
                logger.warning(
                    f"Stage {stage} attempt {attempt}/{policy.max_attempts} failed: {e!r}; retrying in {delay:.2f}s"
                )
                await self._sleep(delay)
                if on_retry is not None:
                    on_retry(attempt)

        last = errors[-1]
        logger.error(f"Stage {stage} gave up after {attempt} attempts ({type(last).__name__}: {last}); using fallback")
        value = fallback(last)
        return StageOutcome(value=value, attempts=attempt, fell_back=True, errors=errors)
