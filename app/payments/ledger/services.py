"""
Processed-event ledger service.

The ledger answers one question for the webhook pipeline: has this
processor event id already had its effects committed? It answers it
without any in-process state, using only the unique constraint on
ProcessedWebhookEvent.processor_event_id, so the answer holds across
every worker and every server instance sharing the database.

All writes must happen inside the caller's transaction.atomic() block.
The claim is then committed or rolled back together with the payment
update it guards.

Usage:
    from django.db import transaction
    from payments.ledger import ledger

    with transaction.atomic():
        claim = ledger.claim("evt_123", "payment_intent.succeeded")
        if not claim.claimed:
            return  # duplicate delivery
        ...
        ledger.record_applied(
            claim.entry,
            payment=payment,
            trigger=PaymentTrigger.SUCCEED,
            from_state=PaymentState.PROCESSING,
            to_state=PaymentState.SUCCEEDED,
        )
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django.db import IntegrityError, transaction

from payments.models import ProcessedWebhookEvent
from payments.state_machines import WebhookEventOutcome

from .types import ClaimResult

if TYPE_CHECKING:
    from payments.models import Payment

logger = logging.getLogger(__name__)


class ProcessedEventLedger:
    """
    Service class for processed-event ledger operations.

    Key features:
    - Atomic insert-if-absent claim (unique constraint, no locks)
    - Claim disappears if the enclosing transaction rolls back
    - Finalized rows are never modified again

    All methods are static - no instance state is maintained.
    """

    @staticmethod
    def claim(processor_event_id: str, event_type: str) -> ClaimResult:
        """
        Claim a processor event id for the current unit of work.

        The insert runs in a savepoint so that a unique-constraint
        violation leaves the enclosing transaction usable.

        On PostgreSQL a concurrent claim of the same id blocks on the
        unique index until the first transaction finishes: it then fails
        if the first committed, or succeeds if the first rolled back.

        Args:
            processor_event_id: Stripe Event ID (evt_xxx)
            event_type: Stripe event type, kept for audit

        Returns:
            ClaimResult with claimed=True and the new row, or
            claimed=False if the id is already in the ledger
        """
        try:
            with transaction.atomic():
                entry = ProcessedWebhookEvent.objects.create(
                    processor_event_id=processor_event_id,
                    event_type=event_type,
                    outcome=WebhookEventOutcome.CLAIMED,
                )
        except IntegrityError:
            # Another delivery of the same event got there first
            logger.info(
                "Processor event already claimed",
                extra={
                    "processor_event_id": processor_event_id,
                    "event_type": event_type,
                },
            )
            return ClaimResult(claimed=False)

        return ClaimResult(claimed=True, entry=entry)

    @staticmethod
    def record_applied(
        entry: ProcessedWebhookEvent,
        payment: Payment,
        trigger: str,
        from_state: str,
        to_state: str,
    ) -> ProcessedWebhookEvent:
        """
        Finalize a claimed row for an event whose transition was written.

        Args:
            entry: Row returned by claim()
            payment: Payment the transition was applied to
            trigger: Trigger that was applied
            from_state: State before the transition
            to_state: State after the transition

        Returns:
            The updated row
        """
        entry.payment = payment
        entry.applied_transition = trigger
        entry.outcome = WebhookEventOutcome.APPLIED
        entry.from_state = from_state
        entry.to_state = to_state
        entry.detail = None
        entry.save(
            update_fields=[
                "payment",
                "applied_transition",
                "outcome",
                "from_state",
                "to_state",
                "detail",
                "updated_at",
            ]
        )
        return entry

    @staticmethod
    def record_rejected(
        entry: ProcessedWebhookEvent,
        payment: Payment,
        trigger: str,
        from_state: str,
        detail: str,
    ) -> ProcessedWebhookEvent:
        """
        Finalize a claimed row for an event the state machine refused.

        The event counts as processed: redeliveries are acknowledged as
        duplicates and the payment is left as it was.

        Args:
            entry: Row returned by claim()
            payment: Payment the event targeted
            trigger: Trigger that was refused (stored in detail only)
            from_state: State the payment was in
            detail: Human-readable reason from InvalidTransitionError

        Returns:
            The updated row
        """
        entry.payment = payment
        entry.applied_transition = None
        entry.outcome = WebhookEventOutcome.REJECTED
        entry.from_state = from_state
        entry.to_state = None
        entry.detail = f"{trigger!s}: {detail}"
        entry.save(
            update_fields=[
                "payment",
                "applied_transition",
                "outcome",
                "from_state",
                "to_state",
                "detail",
                "updated_at",
            ]
        )
        return entry

    @staticmethod
    def record_corroborated(
        entry: ProcessedWebhookEvent,
        payment: Payment,
        trigger: str,
        state: str,
    ) -> ProcessedWebhookEvent:
        """
        Finalize a claimed row for an event reporting the state the
        payment is already in.

        Nothing is written to the payment. from_state and to_state are
        both the current state, and the trigger is kept in detail.
        """
        entry.payment = payment
        entry.applied_transition = None
        entry.outcome = WebhookEventOutcome.CORROBORATED
        entry.from_state = state
        entry.to_state = state
        entry.detail = f"{trigger!s}: payment already {state!s}"
        entry.save(
            update_fields=[
                "payment",
                "applied_transition",
                "outcome",
                "from_state",
                "to_state",
                "detail",
                "updated_at",
            ]
        )
        return entry

    @staticmethod
    def is_processed(processor_event_id: str) -> bool:
        """Check whether a processor event id is in the ledger."""
        return ProcessedWebhookEvent.objects.filter(
            processor_event_id=processor_event_id,
        ).exists()


# Module-level singleton
ledger = ProcessedEventLedger()
