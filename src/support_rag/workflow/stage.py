# src/support_rag/workflow/stage.py

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar

from support_rag.errors import error_record
from support_rag.workflow.fsm import WorkflowEvent, WorkflowStateMachine, WorkflowStatus
from support_rag.workflow.retry import RetryableStageExecutor, StageOutcome

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class StageRun:
    """Result of one supervised stage: the outcome (None if the run failed) and diagnostics."""

    outcome: Optional[StageOutcome]
    errors: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def failed(self) -> bool:
        return self.outcome is None

    @property
    def fell_back(self) -> bool:
        return self.outcome is not None and self.outcome.fell_back

    @property
    def value(self) -> Any:
        return self.outcome.value if self.outcome is not None else None


class StageRunner:
    """Drives one stage through the retry layer and mirrors it on the state machine.

    Each failed attempt sends ERROR (stage -> RETRYING) and each retry sends
    RETRY (back to the stage). After a fallback the stage is re-entered with
    RETRY, or left with SKIP when `skip_on_fallback` is set. If the fallback
    itself raises, the run is sent to FAILED.
    """

    def __init__(self, executor: Optional[RetryableStageExecutor] = None):
        self.executor = executor or RetryableStageExecutor()

    async def run(
        self,
        machine: WorkflowStateMachine,
        *,
        stage: str,
        call: Callable[[], Awaitable[T]],
        fallback: Callable[[BaseException], T],
        complete_event: Optional[WorkflowEvent] = None,
        timeout: Optional[float] = None,
        skip_on_fallback: bool = False,
    ) -> StageRun:
        errors: List[Dict[str, Any]] = []

        def on_error(exc: BaseException, attempt: int) -> None:
            errors.append(error_record(stage, exc, details={"attempt": attempt}))
            machine.send(WorkflowEvent.ERROR)

        def on_retry(attempt: int) -> None:
            machine.send(WorkflowEvent.RETRY)

        try:
            outcome = await self.executor.execute(
                stage, call, fallback, timeout=timeout, on_error=on_error, on_retry=on_retry
            )
        except Exception as e:
            logger.exception(f"Fallback for stage {stage} failed: {e}")
            errors.append(error_record(stage, e, error_type="fallback_failed"))
            if machine.status != WorkflowStatus.RETRYING:
                machine.send(WorkflowEvent.ERROR)
            machine.exhaust_retries()
            machine.send(WorkflowEvent.FAIL)
            return StageRun(outcome=None, errors=errors)

        if outcome.fell_back and machine.status == WorkflowStatus.RETRYING:
            if not (skip_on_fallback and machine.send(WorkflowEvent.SKIP)):
                machine.send(WorkflowEvent.RETRY)
                if complete_event is not None:
                    machine.send(complete_event)
        elif complete_event is not None:
            machine.send(complete_event)

        return StageRun(outcome=outcome, errors=errors)
