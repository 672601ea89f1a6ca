"""
Payment-specific exceptions for the payment lifecycle and webhook pipeline.

Every class states whether the failed operation may be retried. The
webhook endpoint uses that to pick between "permanently rejected" (400)
and "please redeliver" (503).

Exception Hierarchy:
    PaymentError (base for payment domain)
    ├── WebhookRejectedError - Delivery rejected, never retried
    │   ├── SignatureInvalidError - Authenticity check failed (fails closed)
    │   └── MalformedPayloadError - Payload cannot be parsed
    ├── PaymentNotFoundError - No payment for the intent id (retryable)
    ├── PaymentValidationError - Invalid amount, currency, etc.
    ├── IntentAlreadyAttachedError - processor_intent_id is immutable
    ├── IntentNotAttachedError - Transition before an intent id exists
    ├── TransitionNotPermittedError - Client code asked for a webhook-only write
    ├── StoreUnavailableError - Database error or timeout (retryable)
    └── StripeError - Failures from the thin intent-initiation adapter
        ├── StripeInvalidRequestError - Invalid request params (permanent)
        ├── StripeCardDeclinedError - Card declined (permanent)
        ├── StripeRateLimitError - Rate limited (transient)
        └── StripeAPIUnavailableError - API unreachable (transient)

    InvalidTransitionError - Trigger not legal from the current state (ConflictError)
    ConcurrentModificationError - Version check failed (ConflictError, retryable)

Usage:
    from payments.exceptions import InvalidTransitionError, ConcurrentModificationError

    try:
        new_state = attempt_transition(payment.state, trigger)
    except InvalidTransitionError as e:
        logger.warning("Rejected transition", extra=e.details)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import (
    BaseApplicationError,
    ConflictError,
    ExternalServiceError,
    PermissionDeniedError,
)

if TYPE_CHECKING:
    from typing import Any


# =============================================================================
# Payment Domain Exceptions
# =============================================================================


class PaymentError(BaseApplicationError):
    """
    Base exception for all payment operations.

    All payment-specific exceptions inherit from this class, which itself
    inherits from BaseApplicationError for consistent error bodies.
    """

    default_error_code: str = "PAYMENT_ERROR"


class PaymentNotFoundError(PaymentError):
    """
    Raised when no Payment matches a lookup.

    From the webhook pipeline this is treated as transient: the checkout
    flow may not have committed the intent id yet, so the delivery is
    refused and the processor redelivers later.

    Example:
        payment = Payment.objects.filter(processor_intent_id=intent_id).first()
        if payment is None:
            raise PaymentNotFoundError(
                f"No payment for intent {intent_id}",
                details={"processor_intent_id": intent_id},
            )
    """

    default_error_code: str = "PAYMENT_NOT_FOUND"
    is_retryable: bool = True


class PaymentValidationError(PaymentError):
    """
    Raised when payment creation input is invalid.

    Use for:
    - Non-positive amount
    - Currency that is not a three-letter ISO 4217 code
    """

    default_error_code: str = "PAYMENT_VALIDATION_ERROR"


class IntentAlreadyAttachedError(PaymentError):
    """
    Raised when a different processor intent id is attached to a payment
    that already has one. The intent id is immutable after first set; a
    new amount or a new attempt means a new Payment.
    """

    default_error_code: str = "INTENT_ALREADY_ATTACHED"


class IntentNotAttachedError(PaymentError):
    """
    Raised when a payment without a processor intent id would leave the
    created state. The intent id must exist at or before the first
    transition.
    """

    default_error_code: str = "INTENT_NOT_ATTACHED"


class TransitionNotPermittedError(PaymentError, PermissionDeniedError):
    """
    Raised when client-facing code requests a write it has no capability
    for, such as a trigger or target state reserved for verified webhook
    events.

    Example:
        ClientPaymentStore().save_pre_confirmation_state(
            payment, PaymentState.SUCCEEDED, expected_version=1
        )
        # raises TransitionNotPermittedError
    """

    default_error_code: str = "TRANSITION_NOT_PERMITTED"


class StoreUnavailableError(PaymentError, ExternalServiceError):
    """
    Raised when the database fails or a statement exceeds its timeout.

    The unit of work has been rolled back in full, so no claim and no
    payment update survive. The processor is asked to redeliver.
    """

    default_error_code: str = "STORE_UNAVAILABLE"
    is_retryable: bool = True


# =============================================================================
# Webhook Rejections
# =============================================================================


class WebhookRejectedError(PaymentError):
    """
    Base for deliveries that are rejected outright.

    These never reach the ledger or the state machine, and the pipeline
    never retries them internally.
    """

    default_error_code: str = "WEBHOOK_REJECTED"
    is_retryable: bool = False


class SignatureInvalidError(WebhookRejectedError):
    """
    Raised when a delivery fails the authenticity check.

    Covers a missing header, an unconfigured secret, a malformed header,
    a signature mismatch, and a timestamp outside the tolerance window.
    """

    default_error_code: str = "SIGNATURE_INVALID"


class MalformedPayloadError(WebhookRejectedError):
    """
    Raised when an authentic delivery cannot be parsed into an event.

    Example:
        raise MalformedPayloadError(
            "Event payload is not valid JSON",
            details={"error": str(exc)},
        )
    """

    default_error_code: str = "MALFORMED_PAYLOAD"


# =============================================================================
# Stripe Adapter Exceptions
# =============================================================================


class StripeError(PaymentError):
    """
    Base exception for failures calling the Stripe API.

    Attributes:
        stripe_code: Stripe's internal error code
        decline_code: Card decline code (if applicable)
    """

    default_error_code: str = "STRIPE_ERROR"
    is_retryable: bool = False

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        stripe_code: str | None = None,
        decline_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if stripe_code:
            details["stripe_code"] = stripe_code
        if decline_code:
            details["decline_code"] = decline_code
        super().__init__(message, error_code=error_code, details=details)
        self.stripe_code = stripe_code
        self.decline_code = decline_code


class StripeInvalidRequestError(StripeError):
    """
    Invalid request parameters sent to Stripe.

    Permanent: the same request will never succeed. Usually a bug on
    our side, so log for developer investigation.
    """

    default_error_code: str = "INVALID_STRIPE_REQUEST"


class StripeCardDeclinedError(StripeError):
    """Card was declined while creating or confirming the intent."""

    default_error_code: str = "CARD_DECLINED"


class StripeRateLimitError(StripeError):
    """Rate limited by the Stripe API. Retry with backoff."""

    default_error_code: str = "STRIPE_RATE_LIMITED"
    is_retryable: bool = True


class StripeAPIUnavailableError(StripeError):
    """
    Stripe API is temporarily unreachable.

    Covers network failures, timeouts and Stripe 5xx responses. The
    operation may have succeeded remotely, so retries must reuse the same
    idempotency key.
    """

    default_error_code: str = "STRIPE_UNAVAILABLE"
    is_retryable: bool = True


# =============================================================================
# State & Concurrency Exceptions
# =============================================================================


class InvalidTransitionError(ConflictError):
    """
    Raised when a trigger is not legal from the payment's current state.

    From the webhook pipeline this is not a delivery failure: the event is
    still recorded as processed (outcome "rejected") so the processor
    stops redelivering it, and the anomaly is logged and signalled.

    Attributes:
        details: Contains current_state, trigger and allowed_triggers
    """

    default_error_code: str = "INVALID_STATE_TRANSITION"


class ConcurrentModificationError(ConflictError):
    """
    Raised when a version-checked write finds the payment already changed.

    The webhook processor retries from a fresh read a bounded number of
    times. If the bound is exhausted the error escapes, the unit of work
    rolls back, and the processor is asked to redeliver.

    Attributes:
        details: Contains payment_id and expected_version
    """

    default_error_code: str = "CONCURRENT_MODIFICATION"
    is_retryable: bool = True


# =============================================================================
# Exports
# =============================================================================

__all__ = [
    # Payment domain
    "PaymentError",
    "PaymentNotFoundError",
    "PaymentValidationError",
    "IntentAlreadyAttachedError",
    "IntentNotAttachedError",
    "TransitionNotPermittedError",
    "StoreUnavailableError",
    # Webhook rejections
    "WebhookRejectedError",
    "SignatureInvalidError",
    "MalformedPayloadError",
    # Stripe adapter
    "StripeError",
    "StripeInvalidRequestError",
    "StripeCardDeclinedError",
    "StripeRateLimitError",
    "StripeAPIUnavailableError",
    # State & concurrency
    "InvalidTransitionError",
    "ConcurrentModificationError",
]
