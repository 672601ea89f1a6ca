"""
Webhook endpoint view for Stripe.

The view does no work of its own: it hands the raw body and signature
header to WebhookProcessor and translates the outcome into the status
code Stripe acts on.

    200  Acknowledged: applied, corroborated, duplicate, ignored, or a
         transition the state machine refused. Stripe stops delivering
         the event.
    400  Not authentic or not parseable. Nothing was recorded.
    503  Temporary failure. Nothing was recorded and Stripe redelivers.

Unknown intents:
    An event for an intent no payment carries gets 503 while it is younger
    than PAYMENTS_WEBHOOK_UNKNOWN_INTENT_GRACE_SECONDS (default one day),
    since checkout may not have committed the intent id yet. Older events
    get 200 "ignored", so intents created by another integration on the
    same Stripe account do not fail until Stripe disables the endpoint.

Usage:
    # In urls.py
    from payments.webhooks.views import stripe_webhook

    urlpatterns = [
        path("webhooks/stripe/", stripe_webhook, name="stripe_webhook"),
    ]
"""

from __future__ import annotations

import logging

from django.http import HttpRequest, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from core.exceptions import BaseApplicationError
from payments.exceptions import WebhookRejectedError
from payments.webhooks.processor import WebhookProcessor

logger = logging.getLogger(__name__)


@csrf_exempt
@require_POST
def stripe_webhook(request: HttpRequest) -> JsonResponse:
    """
    Receive and apply a Stripe webhook event.

    Security:
    - Signature verification prevents spoofed webhooks
    - CSRF exemption required for external webhooks
    - Only POST requests accepted

    Idempotency:
    - ProcessedWebhookEvent.processor_event_id is unique
    - Duplicate deliveries return 200 without reapplying anything

    Example Stripe-Signature header:
        t=1614556800,v1=xxx,v0=yyy
    """
    signature = request.headers.get("Stripe-Signature")

    try:
        result = WebhookProcessor().process(request.body, signature)
    except WebhookRejectedError as e:
        logger.warning(
            "Webhook rejected",
            extra={"error_code": e.error_code, "error": e.message},
        )
        return JsonResponse({"error": e.message, "error_code": e.error_code}, status=400)
    except BaseApplicationError as e:
        if not e.is_retryable:
            logger.error(
                f"Unexpected non-retryable webhook failure: {type(e).__name__}",
                extra={"error_code": e.error_code, "details": e.details},
                exc_info=True,
            )
            raise
        logger.warning(
            "Webhook deferred, asking Stripe to redeliver",
            extra={"error_code": e.error_code, "details": e.details},
        )
        return JsonResponse({"error": e.message, "error_code": e.error_code}, status=503)

    return JsonResponse(result.to_dict(), status=200)
