"""
State machine enums and transition rules for the payment lifecycle.

The enums are Django TextChoices used by the models; the transition table
and attempt_transition() are plain Python and never touch the database.
"""

from payments.state_machines.machine import (
    CLIENT_TRIGGERS,
    TERMINAL_STATES,
    TRANSITIONS,
    TRIGGER_TARGETS,
    allowed_triggers,
    attempt_transition,
    is_terminal,
    target_state,
)
from payments.state_machines.states import (
    PaymentState,
    PaymentTrigger,
    WebhookDisposition,
    WebhookEventOutcome,
)

__all__ = [
    "CLIENT_TRIGGERS",
    "PaymentState",
    "PaymentTrigger",
    "TERMINAL_STATES",
    "TRANSITIONS",
    "TRIGGER_TARGETS",
    "WebhookDisposition",
    "WebhookEventOutcome",
    "allowed_triggers",
    "attempt_transition",
    "is_terminal",
    "target_state",
]
