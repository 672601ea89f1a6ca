"""
Webhook handling for payment events from Stripe.

Deliveries are verified, routed to a state machine trigger and applied
exactly once inside a single database transaction.

Usage:
    # In urls.py
    from payments.webhooks.views import stripe_webhook

    urlpatterns = [
        path("webhooks/stripe/", stripe_webhook, name="stripe_webhook"),
    ]
"""

from payments.webhooks.processor import WebhookProcessor
from payments.webhooks.router import register_route, route
from payments.webhooks.views import stripe_webhook

__all__ = [
    "WebhookProcessor",
    "register_route",
    "route",
    "stripe_webhook",
]
