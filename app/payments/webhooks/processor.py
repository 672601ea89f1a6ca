"""
Idempotent application of verified Stripe events to payments.

Pipeline for one delivery:

    verify -> route -> [ claim -> load -> transition -> write ] -> commit
                       |_______ one transaction.atomic() _______|

Everything inside the brackets commits together or not at all. A claim
that was rolled back never blocks a later redelivery, and a committed
claim always has its recorded effect committed with it.

Stripe reports most outcomes twice, once as a payment_intent.* event and
once as a charge.* event. Whichever arrives second finds the payment
already in the state it reports; it is recorded as corroborated and
acknowledged without the rejection signal, which stays reserved for real
reordering or modeling gaps.

An event for an intent no payment carries is normally transient (checkout
has not committed the intent id yet) and is refused so Stripe redelivers.
Once the event is older than PAYMENTS_WEBHOOK_UNKNOWN_INTENT_GRACE_SECONDS
it is acknowledged as ignored instead, so intents created outside this
system do not keep the endpoint failing.

Coordination between workers and instances happens only in the
database: the unique processor_event_id index decides which delivery of
an event wins, and the version-checked UPDATE decides which of two
different events for the same payment is written first. The loser of
the second race reloads the payment and re-evaluates the transition from
what was actually committed.

Usage:
    from payments.webhooks.processor import WebhookProcessor

    result = WebhookProcessor().process(request.body, request.headers.get("Stripe-Signature"))
    result.disposition  # applied, corroborated, duplicate, ignored or rejected
"""

from __future__ import annotations

import logging
import time
from functools import partial
from typing import TYPE_CHECKING

from django.conf import settings
from django.db import DatabaseError, transaction
from django.utils import timezone

from payments.exceptions import (
    ConcurrentModificationError,
    InvalidTransitionError,
    PaymentNotFoundError,
    StoreUnavailableError,
)
from payments.ledger import ledger as default_ledger
from payments.repositories import PaymentRecordStore
from payments.signals import transition_applied, transition_rejected
from payments.state_machines import (
    PaymentTrigger,
    WebhookDisposition,
    attempt_transition,
    target_state,
)
from payments.webhooks.events import WebhookResult
from payments.webhooks.router import route
from payments.webhooks.verifier import StripeEventVerifier

if TYPE_CHECKING:
    from payments.ledger import ProcessedEventLedger
    from payments.webhooks.events import RoutedEvent

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONFLICT_RETRIES = 3
DEFAULT_UNKNOWN_INTENT_GRACE_SECONDS = 24 * 60 * 60

# Triggers whose processor-supplied reason is stored on the payment
REASON_TRIGGERS = frozenset({PaymentTrigger.FAIL, PaymentTrigger.CANCEL})


class WebhookProcessor:
    """
    Applies each processor event's effects to its payment exactly once.

    Args:
        verifier: Signature verifier (defaults to StripeEventVerifier())
        store: Full payment store; this is the only component that holds one
        event_ledger: Processed-event ledger
        max_conflict_retries: Reload-and-retry budget after a version
            conflict (defaults to settings.PAYMENTS_WEBHOOK_MAX_CONFLICT_RETRIES)
        unknown_intent_grace_seconds: Age after which an event for an
            unknown intent is acknowledged instead of refused (defaults to
            settings.PAYMENTS_WEBHOOK_UNKNOWN_INTENT_GRACE_SECONDS)
    """

    def __init__(
        self,
        verifier: StripeEventVerifier | None = None,
        store: PaymentRecordStore | None = None,
        event_ledger: ProcessedEventLedger | None = None,
        max_conflict_retries: int | None = None,
        unknown_intent_grace_seconds: int | None = None,
    ):
        if max_conflict_retries is None:
            max_conflict_retries = getattr(
                settings,
                "PAYMENTS_WEBHOOK_MAX_CONFLICT_RETRIES",
                DEFAULT_MAX_CONFLICT_RETRIES,
            )
        if unknown_intent_grace_seconds is None:
            unknown_intent_grace_seconds = getattr(
                settings,
                "PAYMENTS_WEBHOOK_UNKNOWN_INTENT_GRACE_SECONDS",
                DEFAULT_UNKNOWN_INTENT_GRACE_SECONDS,
            )
        self.verifier = verifier or StripeEventVerifier()
        self.store = store or PaymentRecordStore()
        self.ledger = event_ledger or default_ledger
        self.max_conflict_retries = max_conflict_retries
        self.unknown_intent_grace_seconds = unknown_intent_grace_seconds

    def process(self, payload: bytes, signature: str | None) -> WebhookResult:
        """
        Process one delivery.

        Args:
            payload: Raw request body
            signature: Stripe-Signature header value

        Returns:
            WebhookResult for deliveries that should be acknowledged

        Raises:
            SignatureInvalidError: Delivery is not authentic
            MalformedPayloadError: Authentic but unparseable
            PaymentNotFoundError: No payment carries the intent id yet and
                the event is still inside the grace window
            ConcurrentModificationError: Version conflicts outlasted the
                retry budget
            StoreUnavailableError: Database failure or timeout

        Nothing is persisted when an exception is raised.
        """
        start_time = time.monotonic()
        event = self.verifier.verify(payload, signature)

        log_context = {
            "processor_event_id": event.processor_event_id,
            "event_type": event.event_type,
            "processor_intent_id": event.processor_intent_id,
        }

        routed = route(event)
        if routed is None:
            logger.info("Webhook event ignored", extra=log_context)
            return WebhookResult(
                disposition=WebhookDisposition.IGNORED,
                processor_event_id=event.processor_event_id,
            )

        try:
            with transaction.atomic():
                result = self._apply(routed)
        except PaymentNotFoundError:
            if not self._past_unknown_intent_grace(event):
                raise
            logger.warning(
                "No payment for intent after the grace window, acknowledging",
                extra={**log_context, "occurred_at": event.occurred_at.isoformat()},
            )
            return WebhookResult(
                disposition=WebhookDisposition.IGNORED,
                processor_event_id=event.processor_event_id,
            )
        except DatabaseError as e:
            logger.error(
                "Webhook unit of work failed in the database",
                extra={**log_context, "error": str(e)},
            )
            raise StoreUnavailableError(
                "Payment store is unavailable",
                details={"processor_event_id": event.processor_event_id, "error": str(e)},
            ) from e

        duration_ms = (time.monotonic() - start_time) * 1000
        logger.info(
            f"Webhook event {result.disposition}",
            extra={
                **log_context,
                "payment_id": result.payment_id,
                "from_state": result.from_state,
                "to_state": result.to_state,
                "attempts": result.attempts,
                "duration_ms": round(duration_ms, 2),
            },
        )
        return result

    def _apply(self, routed: RoutedEvent) -> WebhookResult:
        """Claim, then load/transition/write until the write sticks."""
        event = routed.event

        claim = self.ledger.claim(event.processor_event_id, event.event_type)
        if not claim.claimed:
            return WebhookResult(
                disposition=WebhookDisposition.DUPLICATE,
                processor_event_id=event.processor_event_id,
            )

        attempts = 0
        while True:
            attempts += 1
            payment = self.store.get_by_intent_id(routed.processor_intent_id)
            from_state = str(payment.state)

            try:
                new_state = attempt_transition(from_state, routed.trigger)
            except InvalidTransitionError as e:
                if target_state(routed.trigger) == from_state:
                    return self._corroborate(routed, claim.entry, payment, from_state, attempts)
                return self._reject(routed, claim.entry, payment, from_state, e, attempts)

            failure_reason = routed.failure_reason if routed.trigger in REASON_TRIGGERS else None

            try:
                updated = self.store.save_with_expected_version(
                    payment,
                    new_state=new_state,
                    expected_version=payment.version,
                    failure_reason=failure_reason,
                )
            except ConcurrentModificationError:
                if attempts > self.max_conflict_retries:
                    logger.error(
                        "Version conflicts exhausted the retry budget",
                        extra={
                            "processor_event_id": event.processor_event_id,
                            "payment_id": str(payment.id),
                            "attempts": attempts,
                        },
                    )
                    raise
                logger.info(
                    "Payment changed underneath us, reloading",
                    extra={
                        "processor_event_id": event.processor_event_id,
                        "payment_id": str(payment.id),
                        "attempt": attempts,
                    },
                )
                continue

            self.ledger.record_applied(
                claim.entry,
                payment=updated,
                trigger=routed.trigger,
                from_state=from_state,
                to_state=new_state,
            )
            transaction.on_commit(
                partial(
                    transition_applied.send,
                    sender=self.__class__,
                    payment_id=str(updated.id),
                    processor_event_id=event.processor_event_id,
                    trigger=str(routed.trigger),
                    from_state=from_state,
                    to_state=str(new_state),
                )
            )
            return WebhookResult(
                disposition=WebhookDisposition.APPLIED,
                processor_event_id=event.processor_event_id,
                payment_id=str(updated.id),
                from_state=from_state,
                to_state=str(new_state),
                attempts=attempts,
            )

    def _past_unknown_intent_grace(self, event) -> bool:
        age = timezone.now() - event.occurred_at
        return age.total_seconds() > self.unknown_intent_grace_seconds

    def _corroborate(self, routed, entry, payment, state, attempts) -> WebhookResult:
        # The other event family already moved the payment here
        event = routed.event
        self.ledger.record_corroborated(
            entry,
            payment=payment,
            trigger=routed.trigger,
            state=state,
        )
        logger.info(
            "Webhook event corroborates stored state",
            extra={
                "processor_event_id": event.processor_event_id,
                "event_type": event.event_type,
                "payment_id": str(payment.id),
                "state": state,
            },
        )
        return WebhookResult(
            disposition=WebhookDisposition.CORROBORATED,
            processor_event_id=event.processor_event_id,
            payment_id=str(payment.id),
            from_state=state,
            to_state=state,
            attempts=attempts,
        )

    def _reject(self, routed, entry, payment, from_state, error, attempts) -> WebhookResult:
        # Out-of-order or impossible event: consume it, leave the payment alone
        event = routed.event
        self.ledger.record_rejected(
            entry,
            payment=payment,
            trigger=routed.trigger,
            from_state=from_state,
            detail=error.message,
        )
        transaction.on_commit(
            partial(
                transition_rejected.send,
                sender=self.__class__,
                payment_id=str(payment.id),
                processor_event_id=event.processor_event_id,
                trigger=str(routed.trigger),
                from_state=from_state,
                detail=error.message,
            )
        )
        return WebhookResult(
            disposition=WebhookDisposition.REJECTED,
            processor_event_id=event.processor_event_id,
            payment_id=str(payment.id),
            from_state=from_state,
            attempts=attempts,
        )
