"""
Stripe API adapter for creating PaymentIntents.

The adapter is the only place this project calls the Stripe API. It is
deliberately thin: it creates the intent a checkout needs and translates
Stripe SDK exceptions into payment domain exceptions. Everything that
happens to the intent afterwards arrives through webhooks.

Configuration (via settings):
- STRIPE_SECRET_KEY: Stripe API secret key
- STRIPE_API_TIMEOUT_SECONDS: API call timeout (default: 10)
- STRIPE_MAX_RETRIES: Network retries done by the SDK (default: 3)

Usage:
    from payments.adapters import StripeAdapter, CreatePaymentIntentParams

    result = StripeAdapter.create_payment_intent(
        CreatePaymentIntentParams(
            amount_cents=5000,
            currency='usd',
            metadata={'payment_id': str(payment.id)},
            idempotency_key=IdempotencyKeyGenerator.generate('create_intent', payment.id),
        )
    )
"""

from __future__ import annotations

import hashlib
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any

import stripe
from django.conf import settings

from payments.exceptions import (
    StripeAPIUnavailableError,
    StripeCardDeclinedError,
    StripeInvalidRequestError,
    StripeRateLimitError,
)


# =============================================================================
# Data Types
# =============================================================================


@dataclass
class CreatePaymentIntentParams:
    """
    Parameters for creating a Stripe PaymentIntent.

    Attributes:
        amount_cents: Payment amount in smallest currency unit (e.g., cents)
        currency: ISO 4217 currency code
        idempotency_key: Unique key for idempotent creation
        metadata: Key-value pairs to attach to the PaymentIntent
        capture_method: 'automatic' or 'manual' (default: 'automatic')
    """

    amount_cents: int
    currency: str
    idempotency_key: str
    metadata: dict[str, str] = field(default_factory=dict)
    capture_method: str = "automatic"

    def __post_init__(self) -> None:
        """Validate parameters after initialization."""
        if self.amount_cents <= 0:
            raise ValueError("amount_cents must be positive")
        if not self.idempotency_key:
            raise ValueError("idempotency_key is required")
        if not self.currency:
            raise ValueError("currency is required")


@dataclass
class PaymentIntentResult:
    """
    Result from Stripe PaymentIntent creation.

    Attributes:
        id: PaymentIntent ID (pi_xxx)
        status: Stripe's status for the intent (requires_payment_method, ...)
        amount_cents: Amount in cents
        currency: Currency code
        client_secret: Secret for client-side confirmation
        metadata: Attached metadata
    """

    id: str
    status: str
    amount_cents: int
    currency: str
    client_secret: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)


# =============================================================================
# Idempotency Key Generator
# =============================================================================


class IdempotencyKeyGenerator:
    """
    Generate idempotency keys for Stripe API calls.

    Format: "{operation}:{entity_id}:{attempt}:{hash}"

    The same inputs always give the same key, so retrying a call that may
    have succeeded remotely cannot create a second intent.

    Example:
        key = IdempotencyKeyGenerator.generate(
            operation='create_intent',
            entity_id=payment.id,
        )
        # Result: "create_intent:550e8400-e29b-41d4-a716-446655440000:1:a1b2c3d4"
    """

    @staticmethod
    def generate(
        operation: str,
        entity_id: uuid.UUID | str,
        attempt: int = 1,
    ) -> str:
        entity_str = str(entity_id)
        hash_input = f"{operation}:{entity_str}:{attempt}:{settings.SECRET_KEY}"
        short_hash = hashlib.sha256(hash_input.encode()).hexdigest()[:8]

        return f"{operation}:{entity_str}:{attempt}:{short_hash}"


# =============================================================================
# Stripe Adapter
# =============================================================================


class StripeAdapter:
    """
    Adapter for Stripe API operations.

    All methods are class methods - no instance state is maintained.

    Features:
    - Configurable timeouts on all API calls
    - Automatic error translation to domain exceptions
    - Structured logging with timing metrics
    - Idempotency support for safe retries
    """

    @staticmethod
    def _configure_stripe() -> None:
        """Configure Stripe client with API key, timeout and retries."""
        stripe.api_key = settings.STRIPE_SECRET_KEY
        timeout = getattr(settings, "STRIPE_API_TIMEOUT_SECONDS", 10)
        stripe.max_network_retries = getattr(settings, "STRIPE_MAX_RETRIES", 3)
        stripe.default_http_client = stripe.RequestsClient(timeout=timeout)

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """Get logger for this adapter."""
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    def create_payment_intent(
        cls,
        params: CreatePaymentIntentParams,
    ) -> PaymentIntentResult:
        """
        Create a Stripe PaymentIntent.

        Args:
            params: Parameters for creating the PaymentIntent

        Returns:
            PaymentIntentResult including the client_secret

        Raises:
            StripeCardDeclinedError: Card was declined
            StripeInvalidRequestError: Invalid parameters or credentials
            StripeRateLimitError: Rate limited
            StripeAPIUnavailableError: Stripe unreachable or erroring
        """
        cls._configure_stripe()
        logger = cls.get_logger()

        log_context = {
            "operation": "create_payment_intent",
            "amount_cents": params.amount_cents,
            "currency": params.currency,
            "idempotency_key": params.idempotency_key,
        }

        start_time = time.time()
        logger.info("Starting Stripe operation", extra=log_context)

        try:
            intent = stripe.PaymentIntent.create(
                amount=params.amount_cents,
                currency=params.currency,
                metadata=params.metadata,
                capture_method=params.capture_method,
                idempotency_key=params.idempotency_key,
            )
        except stripe.StripeError as e:
            duration_ms = (time.time() - start_time) * 1000
            cls._handle_stripe_error(e, log_context, duration_ms)
            raise  # Never reached, but satisfies type checker

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            "Stripe operation completed",
            extra={
                **log_context,
                "payment_intent_id": intent.id,
                "status": intent.status,
                "duration_ms": duration_ms,
            },
        )

        return PaymentIntentResult(
            id=intent.id,
            status=intent.status,
            amount_cents=intent.amount,
            currency=intent.currency,
            client_secret=intent.client_secret,
            metadata=dict(intent.metadata or {}),
        )

    # =========================================================================
    # Error Handling
    # =========================================================================

    @classmethod
    def _handle_stripe_error(
        cls,
        error: stripe.StripeError,
        log_context: dict[str, Any],
        duration_ms: float,
    ) -> None:
        """
        Translate Stripe exceptions to domain exceptions.

        Raises:
            StripeCardDeclinedError: Card was declined
            StripeInvalidRequestError: Invalid request or authentication
            StripeRateLimitError: Rate limited
            StripeAPIUnavailableError: Connection or server errors
        """
        logger = cls.get_logger()
        log_context = {**log_context, "duration_ms": duration_ms}

        if isinstance(error, stripe.CardError):
            decline_code = getattr(error, "decline_code", None)
            logger.warning(
                "Card error from Stripe",
                extra={**log_context, "decline_code": decline_code},
            )
            raise StripeCardDeclinedError(
                str(error.user_message or error),
                stripe_code=error.code,
                decline_code=decline_code,
            ) from error

        if isinstance(error, stripe.InvalidRequestError):
            logger.error(
                "Invalid request to Stripe",
                extra={**log_context, "stripe_code": error.code},
            )
            raise StripeInvalidRequestError(
                str(error),
                stripe_code=error.code,
            ) from error

        if isinstance(error, stripe.AuthenticationError):
            logger.critical(
                "Stripe authentication failed - check API key",
                extra=log_context,
            )
            raise StripeInvalidRequestError(
                "Stripe authentication failed",
                stripe_code="authentication_error",
            ) from error

        if isinstance(error, stripe.RateLimitError):
            logger.warning("Rate limited by Stripe", extra=log_context)
            raise StripeRateLimitError(
                "Stripe rate limit exceeded. Please retry.",
                stripe_code="rate_limit",
            ) from error

        if isinstance(error, stripe.APIConnectionError):
            logger.error(
                "Connection error to Stripe",
                extra=log_context,
                exc_info=True,
            )
            raise StripeAPIUnavailableError(
                "Could not connect to Stripe. Please retry.",
                stripe_code="api_connection_error",
            ) from error

        logger.error(
            f"Stripe API error: {type(error).__name__}",
            extra=log_context,
            exc_info=True,
        )
        raise StripeAPIUnavailableError(
            "Stripe service error. Please retry.",
            stripe_code="api_error",
        ) from error
