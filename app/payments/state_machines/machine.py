"""
Pure transition rules for the Payment lifecycle.

attempt_transition() is the single authority on which state a trigger
leads to. It holds no state, performs no I/O and never touches the
database, so it is safe to call from any worker on any instance.

Usage:
    from payments.state_machines import PaymentState, PaymentTrigger, attempt_transition

    new_state = attempt_transition(PaymentState.CREATED, PaymentTrigger.REQUIRE_ACTION)
    assert new_state == PaymentState.REQUIRES_ACTION

    attempt_transition(PaymentState.CREATED, PaymentTrigger.SUCCEED)
    # raises InvalidTransitionError: capture was never observed
"""

from __future__ import annotations

from payments.exceptions import InvalidTransitionError
from payments.state_machines.states import PaymentState, PaymentTrigger

# (source, trigger) -> target. Anything absent is illegal.
TRANSITIONS: dict[tuple[PaymentState, PaymentTrigger], PaymentState] = {
    (PaymentState.CREATED, PaymentTrigger.REQUIRE_ACTION): PaymentState.REQUIRES_ACTION,
    (PaymentState.CREATED, PaymentTrigger.START_PROCESSING): PaymentState.PROCESSING,
    (PaymentState.REQUIRES_ACTION, PaymentTrigger.START_PROCESSING): PaymentState.PROCESSING,
    (PaymentState.REQUIRES_ACTION, PaymentTrigger.FAIL): PaymentState.FAILED,
    (PaymentState.PROCESSING, PaymentTrigger.SUCCEED): PaymentState.SUCCEEDED,
    (PaymentState.PROCESSING, PaymentTrigger.FAIL): PaymentState.FAILED,
    (PaymentState.CREATED, PaymentTrigger.CANCEL): PaymentState.CANCELED,
    (PaymentState.REQUIRES_ACTION, PaymentTrigger.CANCEL): PaymentState.CANCELED,
    (PaymentState.PROCESSING, PaymentTrigger.CANCEL): PaymentState.CANCELED,
}

TERMINAL_STATES: frozenset[PaymentState] = frozenset(
    {PaymentState.SUCCEEDED, PaymentState.FAILED, PaymentState.CANCELED}
)

# Triggers client-facing code may drive. Everything else is webhook-only.
CLIENT_TRIGGERS: frozenset[PaymentTrigger] = frozenset(
    {PaymentTrigger.REQUIRE_ACTION, PaymentTrigger.START_PROCESSING}
)

# Every trigger leads to the same state whatever the source
TRIGGER_TARGETS: dict[PaymentTrigger, PaymentState] = {
    trigger: target for (_source, trigger), target in TRANSITIONS.items()
}


def _coerce_state(value: str) -> PaymentState | None:
    try:
        return PaymentState(value)
    except ValueError:
        return None


def _coerce_trigger(value: str) -> PaymentTrigger | None:
    try:
        return PaymentTrigger(value)
    except ValueError:
        return None


def attempt_transition(current_state: str, trigger: str) -> PaymentState:
    """
    Decide the state a trigger leads to from the current state.

    Args:
        current_state: The payment's committed state
        trigger: The requested transition trigger

    Returns:
        The new PaymentState

    Raises:
        InvalidTransitionError: If (current_state, trigger) is not a legal
            transition. This covers leaving a terminal state, skipping an
            intermediate state, and unknown state or trigger values.
    """
    state = _coerce_state(current_state)
    requested = _coerce_trigger(trigger)

    target = None
    if state is not None and requested is not None:
        target = TRANSITIONS.get((state, requested))

    if target is None:
        if state is not None and state in TERMINAL_STATES:
            reason = f"'{state!s}' is terminal"
        else:
            reason = f"'{trigger}' is not allowed from '{current_state}'"
        raise InvalidTransitionError(
            f"Cannot apply trigger '{trigger}' to payment in state '{current_state}': {reason}",
            details={
                "current_state": str(current_state),
                "trigger": str(trigger),
                "allowed_triggers": [str(t) for t in allowed_triggers(current_state)],
            },
        )

    return target


def is_terminal(state: str) -> bool:
    """Return True if no transition is legal out of ``state``."""
    coerced = _coerce_state(state)
    return coerced is not None and coerced in TERMINAL_STATES


def allowed_triggers(state: str) -> list[PaymentTrigger]:
    """Triggers that are legal from ``state``, in declaration order."""
    coerced = _coerce_state(state)
    if coerced is None:
        return []
    return [trigger for (source, trigger) in TRANSITIONS if source == coerced]


def target_state(trigger: str) -> PaymentState | None:
    """
    The state ``trigger`` leads to, or None for an unknown trigger.

    A payment already in this state has nothing left to learn from an
    event carrying the trigger: the event corroborates what is stored.
    """
    requested = _coerce_trigger(trigger)
    if requested is None:
        return None
    return TRIGGER_TARGETS.get(requested)
