"""
Payment services for checkout-side operations.

This module provides:
- PaymentService: create payments, initiate Stripe intents, apply
  client-reported pre-confirmation transitions

Usage:
    from payments.services import PaymentService

    result = PaymentService.create_payment(amount_cents=5000, currency="usd")
"""

from payments.services.payment_service import InitiatedPayment, PaymentService

__all__ = [
    "InitiatedPayment",
    "PaymentService",
]
