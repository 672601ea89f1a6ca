"""
State enums for payment models.

These are Django TextChoices for database storage and admin integration.

State Machines Overview:

Payment States:
    created → requires_action → processing → succeeded
    created → processing → succeeded
    requires_action → failed
    processing → failed
    created/requires_action/processing → canceled

    succeeded, failed and canceled are terminal.

ProcessedWebhookEvent Outcomes:
    claimed (uncommitted) → applied
    claimed (uncommitted) → rejected
    claimed (uncommitted) → corroborated
"""

from django.db import models


class PaymentState(models.TextChoices):
    """
    States for the Payment model lifecycle.

    Terminal states: SUCCEEDED, FAILED, CANCELED

    State Flow (no authentication step):
        CREATED → PROCESSING → SUCCEEDED

    State Flow (3-D Secure or similar):
        CREATED → REQUIRES_ACTION → PROCESSING → SUCCEEDED

    Failure Flow:
        REQUIRES_ACTION → FAILED (authentication failed or expired)
        PROCESSING → FAILED (declined or processor error)

    Cancellation Flow:
        CREATED/REQUIRES_ACTION/PROCESSING → CANCELED
    """

    CREATED = "created", "Created"
    REQUIRES_ACTION = "requires_action", "Requires Action"
    PROCESSING = "processing", "Processing"
    SUCCEEDED = "succeeded", "Succeeded"
    FAILED = "failed", "Failed"
    CANCELED = "canceled", "Canceled"


class PaymentTrigger(models.TextChoices):
    """
    Transition triggers understood by the payment state machine.

    A trigger names what the processor (or the client) reported; the
    state machine decides which target state, if any, it leads to from
    the payment's current state.
    """

    REQUIRE_ACTION = "require_action", "Additional authentication required"
    START_PROCESSING = "start_processing", "Submitted for capture"
    SUCCEED = "succeed", "Funds captured"
    FAIL = "fail", "Declined or authentication failed"
    CANCEL = "cancel", "Canceled"


class WebhookEventOutcome(models.TextChoices):
    """
    Outcome recorded on a ProcessedWebhookEvent row.

    CLAIMED only ever exists inside the unit of work that inserted the
    row. Committed rows are APPLIED, REJECTED or CORROBORATED. An event is
    CORROBORATED when the payment was already in the state it reports,
    which is how the second of the payment_intent.* and charge.* events
    Stripe sends for one outcome is recorded.
    """

    CLAIMED = "claimed", "Claimed"
    APPLIED = "applied", "Applied"
    REJECTED = "rejected", "Rejected"
    CORROBORATED = "corroborated", "Corroborated"


class WebhookDisposition(models.TextChoices):
    """
    What the webhook pipeline did with one delivery.

    Every disposition is acknowledged to the processor. Deliveries that
    must be rejected or redelivered surface as exceptions instead.
    """

    APPLIED = "applied", "Transition applied"
    DUPLICATE = "duplicate", "Already processed"
    IGNORED = "ignored", "Not relevant to the payment lifecycle"
    REJECTED = "rejected", "Transition rejected by the state machine"
    CORROBORATED = "corroborated", "Payment already in the reported state"


__all__ = [
    "PaymentState",
    "PaymentTrigger",
    "WebhookDisposition",
    "WebhookEventOutcome",
]
