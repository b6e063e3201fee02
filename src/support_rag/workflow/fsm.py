# src/support_rag/workflow/fsm.py
"""Workflow state machine.

States and events are plain enums; `transition` is a pure function of the
current state, the event and the run's extended state (retry_count,
previous_state, max_retries). `WorkflowStateMachine` owns one run's status
and extended state and logs every accepted transition.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)


class WorkflowStatus(str, Enum):
    INITIALIZED = "INITIALIZED"
    PLANNING = "PLANNING"
    RETRIEVING = "RETRIEVING"
    COMPRESSING = "COMPRESSING"
    GENERATING = "GENERATING"
    VALIDATING = "VALIDATING"
    RETRYING = "RETRYING"
    COMPLETE = "COMPLETE"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (WorkflowStatus.COMPLETE, WorkflowStatus.FAILED)


class WorkflowEvent(str, Enum):
    START = "START"
    PLANNING_COMPLETE = "PLANNING_COMPLETE"
    RETRIEVAL_COMPLETE = "RETRIEVAL_COMPLETE"
    COMPRESSION_COMPLETE = "COMPRESSION_COMPLETE"
    GENERATION_COMPLETE = "GENERATION_COMPLETE"
    VALIDATION_COMPLETE = "VALIDATION_COMPLETE"
    NEEDS_RETRIEVAL = "NEEDS_RETRIEVAL"
    ERROR = "ERROR"
    RETRY = "RETRY"
    SKIP = "SKIP"
    FAIL = "FAIL"


S = WorkflowStatus
E = WorkflowEvent

Guard = Callable[[Mapping[str, Any]], bool]

RETRY_COUNT = "retry_count"
PREVIOUS_STATE = "previous_state"
MAX_RETRIES = "max_retries"
DEFAULT_MAX_RETRIES = 3

STAGE_STATES = (S.PLANNING, S.RETRIEVING, S.COMPRESSING, S.GENERATING, S.VALIDATING)


def _retries_left(ext: Mapping[str, Any]) -> bool:
    return int(ext.get(RETRY_COUNT, 0)) < int(ext.get(MAX_RETRIES, DEFAULT_MAX_RETRIES))


def _retries_exhausted(ext: Mapping[str, Any]) -> bool:
    return not _retries_left(ext)


def _previous_is(status: WorkflowStatus) -> Guard:
    def guard(ext: Mapping[str, Any]) -> bool:
        prev = ext.get(PREVIOUS_STATE)
        return prev is not None and WorkflowStatus(prev) == status

    return guard


@dataclass(frozen=True)
class Transition:
    source: WorkflowStatus
    event: WorkflowEvent
    target: WorkflowStatus
    guard: Optional[Guard] = None


def _build_transitions() -> Dict[Tuple[WorkflowStatus, WorkflowEvent], List[Transition]]:
    rows: List[Transition] = [
        Transition(S.INITIALIZED, E.START, S.PLANNING),
        Transition(S.PLANNING, E.PLANNING_COMPLETE, S.RETRIEVING),
        Transition(S.RETRIEVING, E.RETRIEVAL_COMPLETE, S.COMPRESSING),
        Transition(S.COMPRESSING, E.COMPRESSION_COMPLETE, S.GENERATING),
        Transition(S.GENERATING, E.GENERATION_COMPLETE, S.VALIDATING),
        Transition(S.VALIDATING, E.VALIDATION_COMPLETE, S.COMPLETE),
        Transition(S.VALIDATING, E.NEEDS_RETRIEVAL, S.RETRIEVING, _retries_left),
        Transition(S.VALIDATING, E.FAIL, S.FAILED, _retries_exhausted),
        Transition(S.RETRYING, E.SKIP, S.GENERATING, _previous_is(S.COMPRESSING)),
        Transition(S.RETRYING, E.FAIL, S.FAILED, _retries_exhausted),
    ]
    for stage in STAGE_STATES:
        rows.append(Transition(stage, E.ERROR, S.RETRYING))
        rows.append(Transition(S.RETRYING, E.RETRY, stage, _previous_is(stage)))

    table: Dict[Tuple[WorkflowStatus, WorkflowEvent], List[Transition]] = {}
    for row in rows:
        table.setdefault((row.source, row.event), []).append(row)
    return table


TRANSITIONS = _build_transitions()


def transition(
    current: WorkflowStatus,
    event: WorkflowEvent,
    extended: Mapping[str, Any],
) -> Optional[WorkflowStatus]:
    """Target state for `event`, or None when no transition accepts it."""
    for row in TRANSITIONS.get((WorkflowStatus(current), WorkflowEvent(event)), []):
        if row.guard is None or row.guard(extended):
            return row.target
    return None


@dataclass
class StateChange:
    source: WorkflowStatus
    event: WorkflowEvent
    target: WorkflowStatus


@dataclass
class WorkflowStateMachine:
    """Status plus extended state for a single workflow run."""

    max_retries: int = DEFAULT_MAX_RETRIES
    status: WorkflowStatus = WorkflowStatus.INITIALIZED
    extended: Dict[str, Any] = field(default_factory=dict)
    history: List[StateChange] = field(default_factory=list)

    def __post_init__(self):
        self.extended.setdefault(RETRY_COUNT, 0)
        self.extended.setdefault(MAX_RETRIES, self.max_retries)

    @property
    def retry_count(self) -> int:
        return int(self.extended.get(RETRY_COUNT, 0))

    @property
    def previous_state(self) -> Optional[WorkflowStatus]:
        prev = self.extended.get(PREVIOUS_STATE)
        return WorkflowStatus(prev) if prev is not None else None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def can_send(self, event: WorkflowEvent) -> bool:
        return transition(self.status, event, self.extended) is not None

    def send(self, event: WorkflowEvent) -> bool:
        """Apply `event`; returns False (and stays put) when it is not accepted."""
        target = transition(self.status, event, self.extended)
        if target is None:
            logger.debug(f"Event {event.value} not accepted in state {self.status.value}")
            return False
        if event == WorkflowEvent.ERROR:
            self.extended[PREVIOUS_STATE] = self.status.value
        self.history.append(StateChange(self.status, event, target))
        logger.info(f"State transition: {self.status.value} -> {target.value} ({event.value})")
        self.status = target
        return True

    def increment_retry(self) -> int:
        self.extended[RETRY_COUNT] = self.retry_count + 1
        return self.retry_count

    def exhaust_retries(self) -> None:
        """Mark the run as having no recovery path left."""
        self.extended[RETRY_COUNT] = max(self.retry_count, int(self.extended.get(MAX_RETRIES, self.max_retries)))
