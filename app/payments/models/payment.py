"""
Payment model for payment lifecycle management.

Payment is the aggregate the webhook pipeline reconciles against the
processor. It is created in the CREATED state by the checkout flow, gets a
processor intent id attached once, and is then moved through its lifecycle
only by version-checked writes (see payments.repositories).

Usage:
    from payments.models import Payment
    from payments.repositories import PaymentRecordStore

    payment = PaymentRecordStore().create(amount_cents=5000, currency="usd")
    payment = PaymentRecordStore().get_by_intent_id("pi_123")
"""

from __future__ import annotations

from django.db import models

from django_fsm import FSMField

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin

from payments.state_machines import TERMINAL_STATES, PaymentState


class Payment(UUIDPrimaryKeyMixin, BaseModel):
    """
    A single payment attempt tracked from creation to a terminal state.

    State Flow:
        CREATED -> [REQUIRES_ACTION ->] PROCESSING -> SUCCEEDED
        REQUIRES_ACTION/PROCESSING -> FAILED
        CREATED/REQUIRES_ACTION/PROCESSING -> CANCELED

    Fields:
        processor_intent_id: Stripe PaymentIntent ID, immutable once set
        amount_cents: Payment amount in smallest currency unit
        currency: ISO 4217 currency code
        state: Current lifecycle state
        version: Optimistic locking version, +1 per transition
        last_transition_at: When state last changed
        failure_reason: Processor-supplied reason for FAILED/CANCELED
        metadata: Flexible JSON storage

    Note:
        state is a protected FSMField: it cannot be assigned on a loaded
        instance. Transitions are written with a conditional UPDATE by
        PaymentRecordStore.save_with_expected_version(), which is also
        what bumps version. Model.save() is only used for the initial
        insert.
    """

    # ==========================================================================
    # Processor Integration
    # ==========================================================================

    processor_intent_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        unique=True,
        help_text="Stripe PaymentIntent ID (pi_xxx); set once",
    )

    # ==========================================================================
    # Amount & Currency
    # ==========================================================================

    amount_cents = models.PositiveBigIntegerField(
        help_text="Payment amount in smallest currency unit (e.g., cents)",
    )

    currency = models.CharField(
        max_length=3,
        default="usd",
        help_text="ISO 4217 currency code (lowercase)",
    )

    # ==========================================================================
    # State
    # ==========================================================================

    state = FSMField(
        default=PaymentState.CREATED,
        choices=PaymentState.choices,
        db_index=True,
        protected=True,  # No direct assignment outside the store
        help_text="Current lifecycle state",
    )

    # ==========================================================================
    # Concurrency Control
    # ==========================================================================

    version = models.PositiveIntegerField(
        default=1,
        help_text="Version for optimistic locking - incremented on each transition",
    )

    # ==========================================================================
    # Audit
    # ==========================================================================

    last_transition_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the state last changed",
    )

    failure_reason = models.TextField(
        null=True,
        blank=True,
        help_text="Reason reported by the processor for a failure or cancellation",
    )

    metadata = models.JSONField(
        default=dict,
        blank=True,
        help_text="Arbitrary JSON metadata for extensibility",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Payment"
        verbose_name_plural = "Payments"
        indexes = [
            models.Index(
                fields=["state", "last_transition_at"],
                name="payments_pa_state_2c1f0b_idx",
            ),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount_cents__gt=0),
                name="payment_amount_positive",
            ),
            models.CheckConstraint(
                condition=models.Q(state__in=PaymentState.values),
                name="payment_state_valid",
            ),
        ]

    def __str__(self) -> str:
        """Return string representation with ID, state, and amount."""
        amount_display = f"{self.amount_cents / 100:.2f} {self.currency.upper()}"
        return f"Payment({self.id}, {self.state!s}, {amount_display})"

    @property
    def is_terminal(self) -> bool:
        """True once the payment has succeeded, failed or been canceled."""
        return self.state in TERMINAL_STATES
