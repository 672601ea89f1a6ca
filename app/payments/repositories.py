"""
Persistence interfaces for the Payment aggregate.

Two stores share one implementation but expose different capabilities:

    PaymentRecordStore
        Full read/write access. Constructed by the webhook processor, which
        is the only code allowed to move a payment into a terminal state.

    ClientPaymentStore
        What checkout code gets. It can create payments, attach the
        processor intent id and write the pre-confirmation states
        (requires_action, processing). Anything else raises
        TransitionNotPermittedError.

State is never written through Model.save(). Every transition is a single
conditional UPDATE filtered on the version the caller read, so two writers
racing on the same payment cannot both succeed:

    UPDATE payments_payment
       SET state = %s, version = version + 1, ...
     WHERE id = %s AND version = %s

Usage:
    from payments.repositories import PaymentRecordStore

    store = PaymentRecordStore()
    payment = store.get_by_intent_id("pi_123")
    payment = store.save_with_expected_version(
        payment,
        new_state=PaymentState.SUCCEEDED,
        expected_version=payment.version,
    )
"""

from __future__ import annotations

import logging
import re
from contextlib import contextmanager
from typing import TYPE_CHECKING

from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from payments.exceptions import (
    ConcurrentModificationError,
    IntentAlreadyAttachedError,
    IntentNotAttachedError,
    PaymentNotFoundError,
    PaymentValidationError,
    StoreUnavailableError,
    TransitionNotPermittedError,
)
from payments.models import Payment
from payments.state_machines import TERMINAL_STATES, PaymentState

if TYPE_CHECKING:
    import uuid
    from collections.abc import Generator
    from typing import Any

logger = logging.getLogger(__name__)

CURRENCY_PATTERN = re.compile(r"^[a-z]{3}$")

# States checkout code may write before the processor confirms anything
PRE_CONFIRMATION_STATES: frozenset[PaymentState] = frozenset(
    {PaymentState.REQUIRES_ACTION, PaymentState.PROCESSING}
)


@contextmanager
def translate_store_errors(operation: str) -> Generator[None, None, None]:
    """
    Re-raise database failures as StoreUnavailableError.

    Covers lost connections, statement_timeout and lock_timeout
    cancellations. IntegrityError is left alone: callers that expect one
    handle it themselves.
    """
    try:
        yield
    except IntegrityError:
        raise
    except DatabaseError as e:
        logger.error(
            "Payment store operation failed",
            extra={"operation": operation, "error": str(e)},
        )
        raise StoreUnavailableError(
            "Payment store is unavailable",
            details={"operation": operation, "error": str(e)},
        ) from e


class PaymentRecordStore:
    """
    Create, read and version-checked update of Payment records.

    Only the webhook processor should construct this class. Client-facing
    code uses ClientPaymentStore.
    """

    def create(
        self,
        amount_cents: int,
        currency: str = "usd",
        metadata: dict[str, Any] | None = None,
    ) -> Payment:
        """
        Create a payment in the CREATED state with version 1.

        Args:
            amount_cents: Amount in smallest currency unit, must be positive
            currency: Three-letter ISO 4217 code (any case)
            metadata: Optional free-form JSON metadata

        Returns:
            The new Payment

        Raises:
            PaymentValidationError: Non-positive amount or bad currency
            StoreUnavailableError: Database failure
        """
        if isinstance(amount_cents, bool) or not isinstance(amount_cents, int) or amount_cents <= 0:
            raise PaymentValidationError(
                "Amount must be a positive integer number of cents",
                details={"amount_cents": amount_cents},
            )

        normalized_currency = (currency or "").lower()
        if not CURRENCY_PATTERN.match(normalized_currency):
            raise PaymentValidationError(
                "Currency must be a three-letter ISO 4217 code",
                details={"currency": currency},
            )

        with translate_store_errors("create"):
            payment = Payment.objects.create(
                amount_cents=amount_cents,
                currency=normalized_currency,
                metadata=metadata or {},
            )

        logger.info(
            "Payment created",
            extra={
                "payment_id": str(payment.id),
                "amount_cents": amount_cents,
                "currency": normalized_currency,
            },
        )
        return payment

    def get(self, payment_id: uuid.UUID | str) -> Payment:
        """
        Load a payment by its id.

        Raises:
            PaymentNotFoundError: No payment with this id
            StoreUnavailableError: Database failure
        """
        with translate_store_errors("get"):
            payment = Payment.objects.filter(pk=payment_id).first()

        if payment is None:
            raise PaymentNotFoundError(
                f"Payment {payment_id} not found",
                details={"payment_id": str(payment_id)},
            )
        return payment

    def get_by_intent_id(self, processor_intent_id: str) -> Payment:
        """
        Load a payment by its processor intent id.

        Raises:
            PaymentNotFoundError: No payment carries this intent id yet
            StoreUnavailableError: Database failure
        """
        with translate_store_errors("get_by_intent_id"):
            payment = Payment.objects.filter(processor_intent_id=processor_intent_id).first()

        if payment is None:
            raise PaymentNotFoundError(
                f"No payment for intent {processor_intent_id}",
                details={"processor_intent_id": processor_intent_id},
            )
        return payment

    def save_with_expected_version(
        self,
        payment: Payment,
        new_state: str,
        expected_version: int,
        failure_reason: str | None = None,
    ) -> Payment:
        """
        Write a new state if the stored version still equals expected_version.

        The version is incremented by exactly one in the same statement.
        The passed instance is not modified; a freshly loaded one is
        returned.

        Args:
            payment: Payment being transitioned
            new_state: Target state, already approved by the state machine
            expected_version: Version the caller read
            failure_reason: Stored for FAILED/CANCELED transitions

        Returns:
            The payment as stored after the write

        Raises:
            IntentNotAttachedError: Payment has no processor intent id
            ConcurrentModificationError: Stored version differs
            StoreUnavailableError: Database failure
        """
        if not payment.processor_intent_id:
            raise IntentNotAttachedError(
                "Payment has no processor intent id and cannot leave the created state",
                details={"payment_id": str(payment.id), "new_state": str(new_state)},
            )

        now = timezone.now()
        changes: dict[str, Any] = {
            "state": new_state,
            "version": F("version") + 1,
            "last_transition_at": now,
            "updated_at": now,
        }
        if failure_reason is not None:
            changes["failure_reason"] = failure_reason

        with translate_store_errors("save_with_expected_version"):
            updated = Payment.objects.filter(
                pk=payment.pk,
                version=expected_version,
            ).update(**changes)

        if updated == 0:
            raise ConcurrentModificationError(
                f"Payment {payment.id} was modified concurrently",
                details={
                    "payment_id": str(payment.id),
                    "expected_version": expected_version,
                },
            )

        logger.info(
            "Payment state written",
            extra={
                "payment_id": str(payment.id),
                "new_state": str(new_state),
                "version": expected_version + 1,
            },
        )
        return self.get(payment.pk)

    def attach_intent(self, payment: Payment, processor_intent_id: str) -> Payment:
        """
        Set the processor intent id on a payment that has none.

        Attaching the id the payment already carries is a no-op. The
        version is not changed because the state is not.

        Raises:
            PaymentValidationError: Empty intent id
            IntentAlreadyAttachedError: Payment already has a different id,
                or the id belongs to another payment
            StoreUnavailableError: Database failure
        """
        if not processor_intent_id:
            raise PaymentValidationError(
                "Processor intent id is required",
                details={"payment_id": str(payment.id)},
            )

        if payment.processor_intent_id == processor_intent_id:
            return payment

        if payment.processor_intent_id:
            raise IntentAlreadyAttachedError(
                f"Payment {payment.id} already has intent {payment.processor_intent_id}",
                details={
                    "payment_id": str(payment.id),
                    "processor_intent_id": payment.processor_intent_id,
                    "requested_intent_id": processor_intent_id,
                },
            )

        try:
            with translate_store_errors("attach_intent"), transaction.atomic():
                updated = Payment.objects.filter(
                    pk=payment.pk,
                    processor_intent_id__isnull=True,
                ).update(processor_intent_id=processor_intent_id, updated_at=timezone.now())
        except IntegrityError as e:
            raise IntentAlreadyAttachedError(
                f"Intent {processor_intent_id} is attached to another payment",
                details={
                    "payment_id": str(payment.id),
                    "requested_intent_id": processor_intent_id,
                },
            ) from e

        current = self.get(payment.pk)
        if updated == 0 and current.processor_intent_id != processor_intent_id:
            raise IntentAlreadyAttachedError(
                f"Payment {payment.id} already has intent {current.processor_intent_id}",
                details={
                    "payment_id": str(payment.id),
                    "processor_intent_id": current.processor_intent_id,
                    "requested_intent_id": processor_intent_id,
                },
            )

        logger.info(
            "Processor intent attached",
            extra={"payment_id": str(payment.id), "processor_intent_id": processor_intent_id},
        )
        return current


class ClientPaymentStore:
    """
    The mutation interface handed to checkout code.

    Wraps a PaymentRecordStore and only lets through writes that do not
    depend on processor confirmation. It has no way to write SUCCEEDED,
    FAILED or CANCELED.
    """

    def __init__(self) -> None:
        self._store = PaymentRecordStore()

    def create(
        self,
        amount_cents: int,
        currency: str = "usd",
        metadata: dict[str, Any] | None = None,
    ) -> Payment:
        return self._store.create(amount_cents, currency=currency, metadata=metadata)

    def get(self, payment_id: uuid.UUID | str) -> Payment:
        return self._store.get(payment_id)

    def attach_intent(self, payment: Payment, processor_intent_id: str) -> Payment:
        return self._store.attach_intent(payment, processor_intent_id)

    def save_pre_confirmation_state(
        self,
        payment: Payment,
        new_state: str,
        expected_version: int,
    ) -> Payment:
        """
        Version-checked write restricted to requires_action and processing.

        Raises:
            TransitionNotPermittedError: Target is terminal or otherwise
                reserved for verified processor events
            IntentNotAttachedError: Payment has no processor intent id
            ConcurrentModificationError: Stored version differs
        """
        if new_state in TERMINAL_STATES or new_state not in PRE_CONFIRMATION_STATES:
            logger.warning(
                "Client store refused state write",
                extra={"payment_id": str(payment.id), "new_state": str(new_state)},
            )
            raise TransitionNotPermittedError(
                f"State '{new_state}' can only be written from verified processor events",
                details={"payment_id": str(payment.id), "new_state": str(new_state)},
            )

        return self._store.save_with_expected_version(
            payment,
            new_state=new_state,
            expected_version=expected_version,
        )
