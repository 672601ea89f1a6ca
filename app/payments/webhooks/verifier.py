"""
Authenticity check and parsing for inbound Stripe deliveries.

Nothing from a delivery is trusted until its Stripe-Signature header has
been verified against the raw request body with the shared signing
secret. Verification fails closed: a missing secret rejects everything.

Usage:
    from payments.webhooks.verifier import StripeEventVerifier

    event = StripeEventVerifier().verify(request.body, request.headers.get("Stripe-Signature"))
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone as dt_timezone
from typing import TYPE_CHECKING

from django.conf import settings

import stripe
from rest_framework import serializers

from payments.exceptions import MalformedPayloadError, SignatureInvalidError
from payments.webhooks.events import NormalizedEvent

if TYPE_CHECKING:
    from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE_SECONDS = 300


class StripeEventDataSerializer(serializers.Serializer):
    object = serializers.DictField()


class StripeEventEnvelopeSerializer(serializers.Serializer):
    """
    Shape check for the parts of a Stripe event the pipeline reads.

    Unknown keys are ignored so new Stripe API versions keep working.
    """

    id = serializers.CharField(max_length=255)
    type = serializers.CharField(max_length=100)
    created = serializers.IntegerField(min_value=0)
    data = StripeEventDataSerializer()


def extract_intent_id(data_object: dict[str, Any]) -> str | None:
    """
    PaymentIntent id referenced by an event's data.object.

    payment_intent objects carry it as their own id, charges reference it
    through the payment_intent field (a string, or an expanded object).
    """
    object_type = data_object.get("object")

    if object_type == "payment_intent":
        intent_id = data_object.get("id")
    elif object_type == "charge":
        intent_id = data_object.get("payment_intent")
        if isinstance(intent_id, dict):
            intent_id = intent_id.get("id")
    else:
        return None

    if isinstance(intent_id, str) and intent_id:
        return intent_id
    return None


class StripeEventVerifier:
    """
    Verifies the Stripe-Signature header and builds a NormalizedEvent.

    Args:
        secret: Signing secret (defaults to settings.STRIPE_WEBHOOK_SECRET)
        tolerance: Maximum timestamp age in seconds
            (defaults to settings.STRIPE_WEBHOOK_TOLERANCE_SECONDS)
    """

    def __init__(self, secret: str | None = None, tolerance: int | None = None):
        if secret is None:
            secret = getattr(settings, "STRIPE_WEBHOOK_SECRET", "")
        if tolerance is None:
            tolerance = getattr(settings, "STRIPE_WEBHOOK_TOLERANCE_SECONDS", DEFAULT_TOLERANCE_SECONDS)
        self.secret = secret
        self.tolerance = tolerance

    def verify(self, payload: bytes, signature: str | None) -> NormalizedEvent:
        """
        Authenticate and parse one delivery.

        Args:
            payload: Raw request body, exactly as received
            signature: Stripe-Signature header value

        Returns:
            NormalizedEvent

        Raises:
            SignatureInvalidError: Missing secret or header, bad header,
                signature mismatch, or timestamp outside the tolerance
            MalformedPayloadError: Body is not UTF-8 JSON in Stripe's
                event shape
        """
        if not self.secret:
            logger.error("Stripe webhook secret is not configured, rejecting delivery")
            raise SignatureInvalidError("Webhook signing secret is not configured")

        if not signature:
            raise SignatureInvalidError("Missing Stripe-Signature header")

        try:
            body = payload.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedPayloadError(
                "Event payload is not valid UTF-8",
                details={"error": str(e)},
            ) from e

        try:
            stripe.WebhookSignature.verify_header(body, signature, self.secret, self.tolerance)
        except stripe.SignatureVerificationError as e:
            logger.warning(
                "Stripe webhook signature verification failed",
                extra={"error": str(e)},
            )
            raise SignatureInvalidError(
                "Invalid webhook signature",
                details={"error": str(e)},
            ) from e

        return self.parse(body)

    def parse(self, body: str) -> NormalizedEvent:
        """
        Build a NormalizedEvent from an already-authenticated body.

        Raises:
            MalformedPayloadError: Invalid JSON or unexpected shape
        """
        try:
            raw = json.loads(body)
        except ValueError as e:
            raise MalformedPayloadError(
                "Event payload is not valid JSON",
                details={"error": str(e)},
            ) from e

        serializer = StripeEventEnvelopeSerializer(data=raw)
        if not serializer.is_valid():
            raise MalformedPayloadError(
                "Event payload does not look like a Stripe event",
                details={"errors": serializer.errors},
            )

        envelope = serializer.validated_data
        data_object = dict(envelope["data"]["object"])

        try:
            occurred_at = datetime.fromtimestamp(envelope["created"], tz=dt_timezone.utc)
        except (OverflowError, OSError, ValueError) as e:
            raise MalformedPayloadError(
                "Event creation timestamp is out of range",
                details={"created": envelope["created"]},
            ) from e

        return NormalizedEvent(
            processor_event_id=envelope["id"],
            event_type=envelope["type"],
            processor_intent_id=extract_intent_id(data_object),
            occurred_at=occurred_at,
            data_object=data_object,
        )
