"""
Tests for the event router.
"""

from datetime import datetime, timezone
from unittest.mock import patch

import pytest

from payments.state_machines import PaymentTrigger
from payments.webhooks.events import NormalizedEvent
from payments.webhooks.router import EVENT_ROUTES, register_route, route


def make_event(event_type, data_object=None, intent_id="pi_123"):
    if data_object is None:
        data_object = {"object": "payment_intent", "id": intent_id}
    return NormalizedEvent(
        processor_event_id="evt_123",
        event_type=event_type,
        processor_intent_id=intent_id,
        occurred_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
        data_object=data_object,
    )


class TestPaymentIntentRoutes:
    """payment_intent.* events map one-to-one onto triggers."""

    @pytest.mark.parametrize(
        ("event_type", "trigger"),
        [
            ("payment_intent.requires_action", PaymentTrigger.REQUIRE_ACTION),
            ("payment_intent.processing", PaymentTrigger.START_PROCESSING),
            ("payment_intent.succeeded", PaymentTrigger.SUCCEED),
            ("payment_intent.payment_failed", PaymentTrigger.FAIL),
            ("payment_intent.canceled", PaymentTrigger.CANCEL),
        ],
    )
    def test_maps_to_trigger(self, event_type, trigger):
        event = make_event(event_type)

        routed = route(event)

        assert routed.trigger == trigger
        assert routed.processor_intent_id == "pi_123"
        assert routed.event is event

    def test_payment_failed_reason(self):
        event = make_event(
            "payment_intent.payment_failed",
            {"object": "payment_intent", "id": "pi_123", "last_payment_error": {"message": "Your card was declined."}},
        )

        assert route(event).failure_reason == "Your card was declined."

    def test_payment_failed_default_reason(self):
        assert route(make_event("payment_intent.payment_failed")).failure_reason == "Payment failed"

    def test_canceled_reason(self):
        event = make_event(
            "payment_intent.canceled",
            {"object": "payment_intent", "id": "pi_123", "cancellation_reason": "abandoned"},
        )

        assert route(event).failure_reason == "abandoned"

    def test_canceled_default_reason(self):
        assert route(make_event("payment_intent.canceled")).failure_reason == "Payment canceled"

    def test_succeeded_has_no_reason(self):
        assert route(make_event("payment_intent.succeeded")).failure_reason is None


class TestChargeRoutes:
    """charge.* events reference the intent and sometimes need a closer look."""

    def charge(self, **fields):
        return {"object": "charge", "id": "ch_1", "payment_intent": "pi_123", **fields}

    def test_pending(self):
        assert route(make_event("charge.pending", self.charge())).trigger == PaymentTrigger.START_PROCESSING

    def test_failed(self):
        routed = route(make_event("charge.failed", self.charge(failure_message="Insufficient funds")))

        assert routed.trigger == PaymentTrigger.FAIL
        assert routed.failure_reason == "Insufficient funds"

    def test_failed_default_reason(self):
        assert route(make_event("charge.failed", self.charge())).failure_reason == "Charge failed"

    def test_captured_charge_succeeds(self):
        assert route(make_event("charge.succeeded", self.charge(captured=True))).trigger == PaymentTrigger.SUCCEED

    def test_uncaptured_charge_is_noop(self):
        """An authorization is not a capture; the payment is left alone."""
        assert route(make_event("charge.succeeded", self.charge(captured=False))) is None

    def test_charge_without_captured_flag_is_noop(self):
        """Ambiguous payloads are acknowledged rather than guessed at."""
        with patch("payments.webhooks.router.logger") as mock_logger:
            assert route(make_event("charge.succeeded", self.charge())) is None

        assert "captured flag" in mock_logger.warning.call_args[0][0]


class TestUnroutable:
    def test_unknown_event_type(self):
        assert route(make_event("customer.created", {"object": "customer", "id": "cus_1"}, intent_id=None)) is None

    def test_missing_intent_id(self):
        with patch("payments.webhooks.router.logger") as mock_logger:
            assert route(make_event("payment_intent.succeeded", intent_id=None)) is None

        mock_logger.warning.assert_called_once()


class TestRegisterRoute:
    def test_registers_and_resolves(self):
        @register_route("test.custom_event")
        def route_custom(event):
            return None

        try:
            assert EVENT_ROUTES["test.custom_event"] is route_custom
            assert route(make_event("test.custom_event")) is None
        finally:
            EVENT_ROUTES.pop("test.custom_event", None)

    def test_known_routes(self):
        assert set(EVENT_ROUTES) >= {
            "payment_intent.requires_action",
            "payment_intent.processing",
            "payment_intent.succeeded",
            "payment_intent.payment_failed",
            "payment_intent.canceled",
            "charge.pending",
            "charge.failed",
            "charge.succeeded",
        }
