"""
Tests for the payment state machine.

The transition table is checked exhaustively: every (state, trigger)
pair is either the one legal target or an InvalidTransitionError.
"""

import itertools

import pytest

from payments.exceptions import InvalidTransitionError
from payments.state_machines import (
    CLIENT_TRIGGERS,
    TERMINAL_STATES,
    PaymentState,
    PaymentTrigger,
    allowed_triggers,
    attempt_transition,
    is_terminal,
    target_state,
)

LEGAL = {
    (PaymentState.CREATED, PaymentTrigger.REQUIRE_ACTION): PaymentState.REQUIRES_ACTION,
    (PaymentState.CREATED, PaymentTrigger.START_PROCESSING): PaymentState.PROCESSING,
    (PaymentState.CREATED, PaymentTrigger.CANCEL): PaymentState.CANCELED,
    (PaymentState.REQUIRES_ACTION, PaymentTrigger.START_PROCESSING): PaymentState.PROCESSING,
    (PaymentState.REQUIRES_ACTION, PaymentTrigger.FAIL): PaymentState.FAILED,
    (PaymentState.REQUIRES_ACTION, PaymentTrigger.CANCEL): PaymentState.CANCELED,
    (PaymentState.PROCESSING, PaymentTrigger.SUCCEED): PaymentState.SUCCEEDED,
    (PaymentState.PROCESSING, PaymentTrigger.FAIL): PaymentState.FAILED,
    (PaymentState.PROCESSING, PaymentTrigger.CANCEL): PaymentState.CANCELED,
}

ILLEGAL = [
    pair
    for pair in itertools.product(PaymentState, PaymentTrigger)
    if pair not in LEGAL
]


class TestAttemptTransition:
    """Tests for attempt_transition()."""

    @pytest.mark.parametrize(("source", "trigger"), list(LEGAL))
    def test_legal_transitions(self, source, trigger):
        """Each legal pair leads to exactly its target."""
        assert attempt_transition(source, trigger) == LEGAL[(source, trigger)]

    @pytest.mark.parametrize(("source", "trigger"), ILLEGAL)
    def test_illegal_transitions_raise(self, source, trigger):
        """Every other pair is refused."""
        with pytest.raises(InvalidTransitionError):
            attempt_transition(source, trigger)

    @pytest.mark.parametrize("state", sorted(TERMINAL_STATES))
    @pytest.mark.parametrize("trigger", list(PaymentTrigger))
    def test_terminal_states_are_absorbing(self, state, trigger):
        """No trigger leaves succeeded, failed or canceled."""
        with pytest.raises(InvalidTransitionError) as exc_info:
            attempt_transition(state, trigger)

        assert "terminal" in exc_info.value.message
        assert exc_info.value.details["allowed_triggers"] == []

    @pytest.mark.parametrize("terminal", sorted(TERMINAL_STATES))
    def test_created_never_jumps_to_terminal_except_cancel(self, terminal):
        """created can only reach a terminal state by being canceled."""
        reachable = {
            target
            for (source, _), target in LEGAL.items()
            if source == PaymentState.CREATED
        }
        if terminal == PaymentState.CANCELED:
            assert terminal in reachable
        else:
            assert terminal not in reachable

    def test_accepts_plain_strings(self):
        """Stored values are plain strings; they work the same as enums."""
        assert attempt_transition("processing", "succeed") == PaymentState.SUCCEEDED

    def test_error_details(self):
        """The error names the state, trigger and what would be allowed."""
        with pytest.raises(InvalidTransitionError) as exc_info:
            attempt_transition(PaymentState.CREATED, PaymentTrigger.SUCCEED)

        details = exc_info.value.details
        assert details["current_state"] == "created"
        assert details["trigger"] == "succeed"
        assert details["allowed_triggers"] == ["require_action", "start_processing", "cancel"]
        assert exc_info.value.error_code == "INVALID_STATE_TRANSITION"

    @pytest.mark.parametrize(
        ("state", "trigger"),
        [
            ("refunded", "succeed"),
            ("processing", "refund"),
            ("", ""),
        ],
    )
    def test_unknown_values_are_rejected(self, state, trigger):
        with pytest.raises(InvalidTransitionError):
            attempt_transition(state, trigger)


class TestHelpers:
    """Tests for the table helpers."""

    def test_terminal_states(self):
        assert TERMINAL_STATES == {
            PaymentState.SUCCEEDED,
            PaymentState.FAILED,
            PaymentState.CANCELED,
        }

    @pytest.mark.parametrize("state", list(PaymentState))
    def test_is_terminal(self, state):
        assert is_terminal(state) == (state in TERMINAL_STATES)

    def test_is_terminal_unknown_state(self):
        assert is_terminal("refunded") is False

    def test_allowed_triggers_from_processing(self):
        assert allowed_triggers(PaymentState.PROCESSING) == [
            PaymentTrigger.SUCCEED,
            PaymentTrigger.FAIL,
            PaymentTrigger.CANCEL,
        ]

    @pytest.mark.parametrize(
        "trigger, expected",
        [
            (PaymentTrigger.REQUIRE_ACTION, PaymentState.REQUIRES_ACTION),
            (PaymentTrigger.START_PROCESSING, PaymentState.PROCESSING),
            (PaymentTrigger.SUCCEED, PaymentState.SUCCEEDED),
            (PaymentTrigger.FAIL, PaymentState.FAILED),
            (PaymentTrigger.CANCEL, PaymentState.CANCELED),
        ],
    )
    def test_target_state(self, trigger, expected):
        assert target_state(trigger) == expected
        assert target_state(str(trigger)) == expected

    def test_target_state_unknown_trigger(self):
        assert target_state("refund") is None

    def test_each_trigger_has_one_target(self):
        """Every source a trigger is legal from leads to the same state."""
        for (_, trigger), target in LEGAL.items():
            assert target_state(trigger) == target

    def test_client_triggers_never_reach_terminal_states(self):
        """Client-drivable triggers only lead to pre-confirmation states."""
        for (_, trigger), target in LEGAL.items():
            if trigger in CLIENT_TRIGGERS:
                assert target not in TERMINAL_STATES

    def test_state_membership(self):
        """The lifecycle has exactly six states."""
        assert set(PaymentState.values) == {
            "created",
            "requires_action",
            "processing",
            "succeeded",
            "failed",
            "canceled",
        }
