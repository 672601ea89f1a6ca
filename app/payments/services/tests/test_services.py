"""
Tests for PaymentService.

StripeAdapter is patched at the point PaymentService imports it; the
store and state machine are real.
"""

from unittest.mock import patch

import pytest

from payments.adapters import PaymentIntentResult
from payments.exceptions import StripeAPIUnavailableError, TransitionNotPermittedError
from payments.models import Payment
from payments.services import InitiatedPayment, PaymentService
from payments.state_machines import PaymentState, PaymentTrigger

CREATE_INTENT = "payments.services.payment_service.StripeAdapter.create_payment_intent"


def intent_result(intent_id="pi_service"):
    return PaymentIntentResult(
        id=intent_id,
        status="requires_payment_method",
        amount_cents=5000,
        currency="usd",
        client_secret=f"{intent_id}_secret_123",
    )


class TestCreatePayment:
    def test_success(self, db):
        result = PaymentService.create_payment(amount_cents=5000, currency="EUR", metadata={"cart": "42"})

        assert result.success
        assert result.data.state == PaymentState.CREATED
        assert result.data.currency == "eur"
        assert Payment.objects.count() == 1

    def test_invalid_amount(self, db):
        result = PaymentService.create_payment(amount_cents=0)

        assert not result.success
        assert result.error_code == "PAYMENT_VALIDATION_ERROR"
        assert Payment.objects.count() == 0

    def test_invalid_currency(self, db):
        result = PaymentService.create_payment(amount_cents=100, currency="dollars")

        assert result.to_response()["error_code"] == "PAYMENT_VALIDATION_ERROR"


class TestInitiateIntent:
    """Tests for PaymentService.initiate_intent()."""

    def test_creates_and_attaches_intent(self, unattached_payment):
        with patch(CREATE_INTENT, return_value=intent_result()) as mock_create:
            result = PaymentService.initiate_intent(unattached_payment.id)

        assert result.success
        assert isinstance(result.data, InitiatedPayment)
        assert result.data.client_secret == "pi_service_secret_123"
        assert result.data.payment.processor_intent_id == "pi_service"
        assert Payment.objects.get(pk=unattached_payment.pk).processor_intent_id == "pi_service"

        params = mock_create.call_args[0][0]
        assert params.amount_cents == unattached_payment.amount_cents
        assert params.metadata == {"payment_id": str(unattached_payment.id)}
        assert params.idempotency_key.startswith(f"create_intent:{unattached_payment.id}:1:")

    def test_does_not_change_state_or_version(self, unattached_payment):
        with patch(CREATE_INTENT, return_value=intent_result()):
            PaymentService.initiate_intent(unattached_payment.id)

        payment = Payment.objects.get(pk=unattached_payment.pk)
        assert payment.state == PaymentState.CREATED
        assert payment.version == 1

    def test_already_attached(self, created_payment):
        with patch(CREATE_INTENT) as mock_create:
            result = PaymentService.initiate_intent(created_payment.id)

        assert not result.success
        assert result.error_code == "INTENT_ALREADY_ATTACHED"
        mock_create.assert_not_called()

    def test_unknown_payment(self, db):
        result = PaymentService.initiate_intent("00000000-0000-0000-0000-000000000000")

        assert result.error_code == "PAYMENT_NOT_FOUND"

    def test_stripe_failure(self, unattached_payment):
        with patch(CREATE_INTENT, side_effect=StripeAPIUnavailableError("Could not connect to Stripe")):
            result = PaymentService.initiate_intent(unattached_payment.id)

        assert not result.success
        assert result.error_code == "STRIPE_UNAVAILABLE"
        assert Payment.objects.get(pk=unattached_payment.pk).processor_intent_id is None

    def test_intent_owned_by_another_payment(self, unattached_payment, created_payment):
        with patch(CREATE_INTENT, return_value=intent_result("pi_test_created")):
            result = PaymentService.initiate_intent(unattached_payment.id)

        assert result.error_code == "INTENT_ALREADY_ATTACHED"


class TestAttachIntent:
    def test_success(self, unattached_payment):
        result = PaymentService.attach_intent(unattached_payment.id, "pi_checkout_session")

        assert result.success
        assert result.data.processor_intent_id == "pi_checkout_session"

    def test_immutable(self, created_payment):
        result = PaymentService.attach_intent(created_payment.id, "pi_replacement")

        assert result.error_code == "INTENT_ALREADY_ATTACHED"

    def test_empty(self, unattached_payment):
        assert PaymentService.attach_intent(unattached_payment.id, "").error_code == "PAYMENT_VALIDATION_ERROR"


class TestConfirmClientTransition:
    """Client-driven transitions stop short of any terminal state."""

    def test_require_action(self, created_payment):
        result = PaymentService.confirm_client_transition(created_payment.id, PaymentTrigger.REQUIRE_ACTION)

        assert result.success
        assert result.data.state == PaymentState.REQUIRES_ACTION
        assert result.data.version == 2

    def test_start_processing(self, requires_action_payment):
        result = PaymentService.confirm_client_transition(requires_action_payment.id, "start_processing")

        assert result.data.state == PaymentState.PROCESSING

    @pytest.mark.parametrize("trigger", [PaymentTrigger.SUCCEED, PaymentTrigger.FAIL, PaymentTrigger.CANCEL, "bogus"])
    def test_webhook_only_triggers_raise(self, processing_payment, trigger):
        with pytest.raises(TransitionNotPermittedError):
            PaymentService.confirm_client_transition(processing_payment.id, trigger)

        payment = Payment.objects.get(pk=processing_payment.pk)
        assert payment.state == PaymentState.PROCESSING
        assert payment.version == 2

    def test_illegal_from_current_state(self, succeeded_payment):
        result = PaymentService.confirm_client_transition(succeeded_payment.id, PaymentTrigger.START_PROCESSING)

        assert not result.success
        assert result.error_code == "INVALID_STATE_TRANSITION"

    def test_requires_intent(self, unattached_payment):
        result = PaymentService.confirm_client_transition(unattached_payment.id, PaymentTrigger.START_PROCESSING)

        assert result.error_code == "INTENT_NOT_ATTACHED"

    def test_unknown_payment(self, db):
        result = PaymentService.confirm_client_transition(
            "00000000-0000-0000-0000-000000000000",
            PaymentTrigger.REQUIRE_ACTION,
        )

        assert result.error_code == "PAYMENT_NOT_FOUND"
