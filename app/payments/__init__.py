"""
Payments app: payment lifecycle and Stripe webhook reconciliation.

This app handles:
- The Payment aggregate and its state machine
- Checkout-side operations (create payment, initiate PaymentIntent)
- Verified, exactly-once application of Stripe webhook events
- The processed-event ledger that makes redelivery harmless

Only the webhook pipeline can move a payment into succeeded, failed or
canceled. Checkout code works through PaymentService, which holds the
narrower ClientPaymentStore.

Usage:
    from payments.services import PaymentService

    result = PaymentService.create_payment(amount_cents=5000, currency="usd")
    result = PaymentService.initiate_intent(result.data.id)

    # Stripe then drives the rest through POST /api/v1/payments/webhooks/stripe/
"""
