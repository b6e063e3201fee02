# tests/unit/workflow/test_fsm.py
"""Unit tests for the workflow state machine."""

import logging

import pytest

from support_rag.workflow.fsm import (
    MAX_RETRIES,
    PREVIOUS_STATE,
    RETRY_COUNT,
    STAGE_STATES,
    WorkflowEvent,
    WorkflowStateMachine,
    WorkflowStatus,
    transition,
)

S = WorkflowStatus
E = WorkflowEvent


class TestTransitionFunction:
    """Tests for the pure transition table."""

    @pytest.mark.parametrize(
        "source,event,target",
        [
            (S.INITIALIZED, E.START, S.PLANNING),
            (S.PLANNING, E.PLANNING_COMPLETE, S.RETRIEVING),
            (S.RETRIEVING, E.RETRIEVAL_COMPLETE, S.COMPRESSING),
            (S.COMPRESSING, E.COMPRESSION_COMPLETE, S.GENERATING),
            (S.GENERATING, E.GENERATION_COMPLETE, S.VALIDATING),
            (S.VALIDATING, E.VALIDATION_COMPLETE, S.COMPLETE),
        ],
    )
    def test_happy_path(self, source, event, target):
        assert transition(source, event, {}) == target

    @pytest.mark.parametrize("stage", STAGE_STATES)
    def test_error_from_any_stage(self, stage):
        assert transition(stage, E.ERROR, {}) == S.RETRYING

    @pytest.mark.parametrize("stage", STAGE_STATES)
    def test_retry_returns_to_previous_stage_only(self, stage):
        assert transition(S.RETRYING, E.RETRY, {PREVIOUS_STATE: stage.value}) == stage
        others = [s for s in STAGE_STATES if s != stage]
        for other in others:
            assert transition(S.RETRYING, E.RETRY, {PREVIOUS_STATE: other.value}) != stage

    def test_retry_without_previous_state(self):
        assert transition(S.RETRYING, E.RETRY, {}) is None

    def test_skip_only_after_compression(self):
        assert transition(S.RETRYING, E.SKIP, {PREVIOUS_STATE: "COMPRESSING"}) == S.GENERATING
        assert transition(S.RETRYING, E.SKIP, {PREVIOUS_STATE: "RETRIEVING"}) is None

    def test_needs_retrieval_guard(self):
        assert transition(S.VALIDATING, E.NEEDS_RETRIEVAL, {RETRY_COUNT: 2, MAX_RETRIES: 3}) == S.RETRIEVING
        assert transition(S.VALIDATING, E.NEEDS_RETRIEVAL, {RETRY_COUNT: 3, MAX_RETRIES: 3}) is None

    def test_fail_requires_exhausted_retries(self):
        assert transition(S.VALIDATING, E.FAIL, {RETRY_COUNT: 1, MAX_RETRIES: 3}) is None
        assert transition(S.VALIDATING, E.FAIL, {RETRY_COUNT: 3, MAX_RETRIES: 3}) == S.FAILED
        assert transition(S.RETRYING, E.FAIL, {RETRY_COUNT: 0, MAX_RETRIES: 3}) is None
        assert transition(S.RETRYING, E.FAIL, {RETRY_COUNT: 3, MAX_RETRIES: 3}) == S.FAILED

    @pytest.mark.parametrize("terminal", [S.COMPLETE, S.FAILED])
    def test_terminal_states_accept_nothing(self, terminal):
        ext = {RETRY_COUNT: 0, PREVIOUS_STATE: "PLANNING"}
        assert all(transition(terminal, event, ext) is None for event in E)

    def test_unlisted_event_rejected(self):
        assert transition(S.INITIALIZED, E.ERROR, {}) is None
        assert transition(S.PLANNING, E.RETRIEVAL_COMPLETE, {}) is None


class TestWorkflowStateMachine:
    """Tests for the stateful machine wrapper."""

    def test_happy_path_run(self):
        machine = WorkflowStateMachine()
        for event in (
            E.START,
            E.PLANNING_COMPLETE,
            E.RETRIEVAL_COMPLETE,
            E.COMPRESSION_COMPLETE,
            E.GENERATION_COMPLETE,
            E.VALIDATION_COMPLETE,
        ):
            assert machine.send(event)
        assert machine.status == S.COMPLETE
        assert machine.is_terminal
        assert len(machine.history) == 6

    def test_error_records_previous_state(self, machine_at):
        machine = machine_at(S.RETRIEVING)

        assert machine.send(E.ERROR)

        assert machine.status == S.RETRYING
        assert machine.previous_state == S.RETRIEVING
        assert not machine.can_send(E.SKIP)
        assert machine.send(E.RETRY)
        assert machine.status == S.RETRIEVING

    def test_rejected_event_keeps_state(self, machine_at):
        machine = machine_at(S.PLANNING)

        assert not machine.send(E.GENERATION_COMPLETE)

        assert machine.status == S.PLANNING
        assert len(machine.history) == 1

    def test_retry_budget(self, machine_at):
        machine = machine_at(S.VALIDATING, max_retries=2)

        assert machine.send(E.NEEDS_RETRIEVAL)
        assert machine.increment_retry() == 1
        for event in (E.RETRIEVAL_COMPLETE, E.COMPRESSION_COMPLETE, E.GENERATION_COMPLETE):
            machine.send(event)
        assert machine.send(E.NEEDS_RETRIEVAL)
        assert machine.increment_retry() == 2
        for event in (E.RETRIEVAL_COMPLETE, E.COMPRESSION_COMPLETE, E.GENERATION_COMPLETE):
            machine.send(event)

        assert not machine.can_send(E.NEEDS_RETRIEVAL)
        assert machine.send(E.FAIL)
        assert machine.status == S.FAILED

    def test_exhaust_retries_enables_fail(self, machine_at):
        machine = machine_at(S.GENERATING)
        machine.send(E.ERROR)
        assert not machine.can_send(E.FAIL)

        machine.exhaust_retries()

        assert machine.retry_count == 3
        assert machine.send(E.FAIL)
        assert machine.status == S.FAILED

    def test_transition_logged(self, caplog):
        machine = WorkflowStateMachine()
        with caplog.at_level(logging.INFO, logger="support_rag.workflow.fsm"):
            machine.send(E.START)
        assert "State transition: INITIALIZED -> PLANNING (START)" in caplog.text

    def test_status_values_are_strings(self):
        assert S.COMPLETE == "COMPLETE"
        assert not S.RETRYING.is_terminal
