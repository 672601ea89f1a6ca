"""
Payment adapters for external services.

All Stripe API calls go through StripeAdapter to ensure consistent error
handling, timeouts, idempotency, and observability.

Usage:
    from payments.adapters import StripeAdapter, CreatePaymentIntentParams

    result = StripeAdapter.create_payment_intent(
        CreatePaymentIntentParams(
            amount_cents=5000,
            currency='usd',
            idempotency_key='create_intent:payment_123:1:a1b2c3d4',
        )
    )
"""

from payments.adapters.stripe_adapter import (
    CreatePaymentIntentParams,
    IdempotencyKeyGenerator,
    PaymentIntentResult,
    StripeAdapter,
)

__all__ = [
    "CreatePaymentIntentParams",
    "IdempotencyKeyGenerator",
    "PaymentIntentResult",
    "StripeAdapter",
]
