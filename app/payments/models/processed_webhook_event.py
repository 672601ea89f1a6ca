"""
ProcessedWebhookEvent model - the processed-event ledger.

One row per distinct processor event id whose effects have been committed.
The unique constraint on processor_event_id is the only synchronization
primitive the webhook pipeline relies on: two instances inserting the same
id at the same moment cannot both succeed, whatever process or host they
run in.

Usage:
    from payments.ledger import ProcessedEventLedger

    with transaction.atomic():
        claim = ProcessedEventLedger().claim("evt_123", "payment_intent.succeeded")
        if not claim.claimed:
            return  # duplicate delivery
        ...
        ProcessedEventLedger().record_applied(claim.entry, payment=payment, ...)
"""

from __future__ import annotations

from django.db import models
from django.utils import timezone

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin

from payments.state_machines import (
    PaymentState,
    PaymentTrigger,
    WebhookEventOutcome,
)


class ProcessedWebhookEvent(UUIDPrimaryKeyMixin, BaseModel):
    """
    Records that a processor event has been applied (or deliberately
    rejected) exactly once.

    Processing Flow:
        1. Webhook arrives and passes signature verification
        2. Row inserted with outcome CLAIMED inside the unit of work
        3. Target payment located and transition attempted
        4. Row finalized as APPLIED, REJECTED or CORROBORATED in the same
           transaction
        5. Commit makes row and payment update visible together

    If anything between 2 and 5 fails, the transaction rolls back and the
    row disappears, so a legitimate redelivery is not blocked.

    Fields:
        processor_event_id: Unique Stripe Event ID (evt_xxx)
        event_type: Processor event type
        received_at: When the claim was made
        payment: Payment the event targeted
        applied_transition: Trigger applied (empty when rejected)
        outcome: APPLIED, REJECTED or CORROBORATED once committed
        from_state / to_state: Payment state before and after
        detail: Why a transition was rejected

    Note:
        No version field - committed rows are never modified.
    """

    processor_event_id = models.CharField(
        max_length=255,
        unique=True,
        help_text="Stripe Event ID (evt_xxx) - unique constraint for idempotency",
    )

    event_type = models.CharField(
        max_length=100,
        db_index=True,
        help_text="Stripe event type (e.g., 'payment_intent.succeeded')",
    )

    received_at = models.DateTimeField(
        default=timezone.now,
        help_text="When the event was first claimed",
    )

    payment = models.ForeignKey(
        "payments.Payment",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="processed_webhook_events",
        help_text="Payment the event targeted",
    )

    applied_transition = models.CharField(
        max_length=32,
        choices=PaymentTrigger.choices,
        null=True,
        blank=True,
        help_text="Trigger applied to the payment (null when rejected)",
    )

    outcome = models.CharField(
        max_length=16,
        choices=WebhookEventOutcome.choices,
        default=WebhookEventOutcome.CLAIMED,
        db_index=True,
        help_text="Applied, rejected or corroborated; claimed only inside the unit of work",
    )

    from_state = models.CharField(
        max_length=50,
        choices=PaymentState.choices,
        null=True,
        blank=True,
        help_text="Payment state when the event was evaluated",
    )

    to_state = models.CharField(
        max_length=50,
        choices=PaymentState.choices,
        null=True,
        blank=True,
        help_text="Payment state after the event (null when rejected)",
    )

    detail = models.TextField(
        null=True,
        blank=True,
        help_text="Why the transition was rejected, or what the event corroborated",
    )

    class Meta:
        ordering = ["-received_at"]
        verbose_name = "Processed Webhook Event"
        verbose_name_plural = "Processed Webhook Events"
        indexes = [
            models.Index(
                fields=["payment", "received_at"],
                name="payments_pr_payment_8d41a7_idx",
            ),
            models.Index(
                fields=["outcome", "received_at"],
                name="payments_pr_outcome_5b9e3c_idx",
            ),
        ]

    def __str__(self) -> str:
        """Return string representation with event ID and outcome."""
        return f"ProcessedWebhookEvent({self.processor_event_id}, {self.outcome!s})"

    @property
    def was_applied(self) -> bool:
        """Check if the event changed the payment's state."""
        return self.outcome == WebhookEventOutcome.APPLIED

    @property
    def was_rejected(self) -> bool:
        """Check if the state machine refused the event's transition."""
        return self.outcome == WebhookEventOutcome.REJECTED

    @property
    def was_corroborated(self) -> bool:
        """Check if the payment was already in the state the event reported."""
        return self.outcome == WebhookEventOutcome.CORROBORATED
