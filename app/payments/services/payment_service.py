"""
Checkout-side payment operations.

PaymentService is what client-facing code (checkout views, tasks, shell)
uses to work with payments. It only ever holds a ClientPaymentStore, so
nothing reachable from here can mark a payment succeeded, failed or
canceled. Those states come exclusively from verified Stripe webhooks.

Usage:
    from payments.services import PaymentService

    result = PaymentService.create_payment(amount_cents=5000, currency="usd")
    if not result.success:
        return JsonResponse(result.to_response(), status=400)

    result = PaymentService.initiate_intent(result.data.id)
    client_secret = result.data.client_secret
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from core.services import BaseService, ServiceResult

from payments.adapters import (
    CreatePaymentIntentParams,
    IdempotencyKeyGenerator,
    StripeAdapter,
)
from payments.exceptions import (
    ConcurrentModificationError,
    IntentAlreadyAttachedError,
    IntentNotAttachedError,
    InvalidTransitionError,
    PaymentNotFoundError,
    PaymentValidationError,
    StoreUnavailableError,
    StripeError,
    TransitionNotPermittedError,
)
from payments.repositories import ClientPaymentStore
from payments.state_machines import CLIENT_TRIGGERS, attempt_transition

if TYPE_CHECKING:
    import uuid
    from typing import Any

    from payments.models import Payment


# =============================================================================
# Result Types
# =============================================================================


@dataclass
class InitiatedPayment:
    """
    A payment with a freshly created processor intent.

    Attributes:
        payment: The Payment, now carrying processor_intent_id
        client_secret: Secret the browser uses to confirm the intent
    """

    payment: Payment
    client_secret: str | None


# =============================================================================
# Payment Service
# =============================================================================


class PaymentService(BaseService):
    """
    Entry point for checkout-side payment operations.

    Expected failures (bad input, unknown payment, Stripe declines, lost
    races) come back as failed ServiceResults. Asking for a transition that
    only webhooks may perform raises TransitionNotPermittedError.

    All methods are class methods - no instance state is maintained.
    """

    @classmethod
    def create_payment(
        cls,
        amount_cents: int,
        currency: str = "usd",
        metadata: dict[str, Any] | None = None,
    ) -> ServiceResult[Payment]:
        """
        Create a payment in the created state.

        Returns:
            ServiceResult containing the Payment, or a failure with
            PAYMENT_VALIDATION_ERROR / STORE_UNAVAILABLE
        """
        try:
            payment = ClientPaymentStore().create(
                amount_cents,
                currency=currency,
                metadata=metadata,
            )
        except PaymentValidationError as e:
            cls.get_logger().info(
                "Rejected payment creation",
                extra={"error": e.message, **e.details},
            )
            return ServiceResult.from_exception(e)
        except StoreUnavailableError as e:
            return ServiceResult.from_exception(e)

        return ServiceResult.success(payment)

    @classmethod
    def initiate_intent(cls, payment_id: uuid.UUID | str) -> ServiceResult[InitiatedPayment]:
        """
        Create the Stripe PaymentIntent for a payment and attach its id.

        The idempotency key is derived from the payment id, so calling this
        again after a timeout returns the same intent instead of creating a
        second one.

        Returns:
            ServiceResult containing InitiatedPayment on success
        """
        store = ClientPaymentStore()
        logger = cls.get_logger()

        try:
            payment = store.get(payment_id)
        except (PaymentNotFoundError, StoreUnavailableError) as e:
            return ServiceResult.from_exception(e)

        if payment.processor_intent_id:
            return ServiceResult.failure(
                f"Payment {payment.id} already has intent {payment.processor_intent_id}",
                error_code=IntentAlreadyAttachedError.default_error_code,
            )

        params = CreatePaymentIntentParams(
            amount_cents=payment.amount_cents,
            currency=payment.currency,
            idempotency_key=IdempotencyKeyGenerator.generate(
                operation="create_intent",
                entity_id=payment.id,
            ),
            metadata={"payment_id": str(payment.id)},
        )

        try:
            intent = StripeAdapter.create_payment_intent(params)
        except StripeError as e:
            logger.error(
                "Failed to create payment intent",
                extra={
                    "payment_id": str(payment.id),
                    "error_code": e.error_code,
                    "is_retryable": e.is_retryable,
                },
            )
            return ServiceResult.from_exception(e)

        try:
            payment = store.attach_intent(payment, intent.id)
        except (IntentAlreadyAttachedError, StoreUnavailableError) as e:
            # The intent exists on Stripe but not here; it expires unused
            logger.error(
                "Created intent could not be attached",
                extra={"payment_id": str(payment.id), "processor_intent_id": intent.id},
            )
            return ServiceResult.from_exception(e)

        logger.info(
            "Payment intent initiated",
            extra={"payment_id": str(payment.id), "processor_intent_id": intent.id},
        )
        return ServiceResult.success(
            InitiatedPayment(payment=payment, client_secret=intent.client_secret)
        )

    @classmethod
    def attach_intent(
        cls,
        payment_id: uuid.UUID | str,
        processor_intent_id: str,
    ) -> ServiceResult[Payment]:
        """
        Attach an intent id created elsewhere (e.g. by a Stripe Checkout
        session) to a payment.
        """
        store = ClientPaymentStore()
        try:
            payment = store.get(payment_id)
            payment = store.attach_intent(payment, processor_intent_id)
        except (
            PaymentNotFoundError,
            PaymentValidationError,
            IntentAlreadyAttachedError,
            StoreUnavailableError,
        ) as e:
            return ServiceResult.from_exception(e)

        return ServiceResult.success(payment)

    @classmethod
    def confirm_client_transition(
        cls,
        payment_id: uuid.UUID | str,
        trigger: str,
    ) -> ServiceResult[Payment]:
        """
        Apply a pre-confirmation transition reported by the client.

        Used when the browser learns, before any webhook arrives, that the
        intent needs 3-D Secure (require_action) or was submitted
        (start_processing). The same version check as the webhook path
        applies, so a webhook that got there first wins.

        Raises:
            TransitionNotPermittedError: Trigger is reserved for webhooks

        Returns:
            ServiceResult containing the updated Payment, or a failure with
            INVALID_STATE_TRANSITION, CONCURRENT_MODIFICATION, ...
        """
        if trigger not in CLIENT_TRIGGERS:
            cls.get_logger().warning(
                "Client attempted a webhook-only transition",
                extra={"payment_id": str(payment_id), "trigger": str(trigger)},
            )
            raise TransitionNotPermittedError(
                f"Trigger '{trigger}' can only be applied from verified processor events",
                details={"payment_id": str(payment_id), "trigger": str(trigger)},
            )

        store = ClientPaymentStore()
        try:
            with cls.atomic():
                payment = store.get(payment_id)
                new_state = attempt_transition(payment.state, trigger)
                payment = store.save_pre_confirmation_state(
                    payment,
                    new_state=new_state,
                    expected_version=payment.version,
                )
        except (
            PaymentNotFoundError,
            InvalidTransitionError,
            IntentNotAttachedError,
            ConcurrentModificationError,
            StoreUnavailableError,
        ) as e:
            cls.get_logger().info(
                "Client transition not applied",
                extra={
                    "payment_id": str(payment_id),
                    "trigger": str(trigger),
                    "error_code": e.error_code,
                },
            )
            return ServiceResult.from_exception(e)

        return ServiceResult.success(payment)
