"""
Tests for StripeAdapter.

The Stripe SDK is patched at stripe.PaymentIntent.create; no request
leaves the test process.
"""

from unittest.mock import MagicMock, patch

import pytest
import stripe

from payments.adapters import (
    CreatePaymentIntentParams,
    IdempotencyKeyGenerator,
    PaymentIntentResult,
    StripeAdapter,
)
from payments.exceptions import (
    StripeAPIUnavailableError,
    StripeCardDeclinedError,
    StripeInvalidRequestError,
    StripeRateLimitError,
)


@pytest.fixture
def params():
    return CreatePaymentIntentParams(
        amount_cents=5000,
        currency="usd",
        idempotency_key="create_intent:abc:1:deadbeef",
        metadata={"payment_id": "abc"},
    )


@pytest.fixture
def mock_create():
    with patch("stripe.PaymentIntent.create") as mock:
        yield mock


class TestCreatePaymentIntentParams:
    def test_valid(self, params):
        assert params.capture_method == "automatic"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"amount_cents": 0},
            {"amount_cents": -1},
            {"idempotency_key": ""},
            {"currency": ""},
        ],
    )
    def test_invalid(self, overrides):
        values = {"amount_cents": 100, "currency": "usd", "idempotency_key": "key", **overrides}

        with pytest.raises(ValueError):
            CreatePaymentIntentParams(**values)


class TestIdempotencyKeyGenerator:
    def test_deterministic(self):
        first = IdempotencyKeyGenerator.generate("create_intent", "payment-1")
        second = IdempotencyKeyGenerator.generate("create_intent", "payment-1")

        assert first == second
        assert first.startswith("create_intent:payment-1:1:")

    def test_attempt_changes_key(self):
        first = IdempotencyKeyGenerator.generate("create_intent", "payment-1", attempt=1)
        second = IdempotencyKeyGenerator.generate("create_intent", "payment-1", attempt=2)

        assert first != second

    def test_entity_changes_key(self):
        assert IdempotencyKeyGenerator.generate("create_intent", "a") != IdempotencyKeyGenerator.generate(
            "create_intent", "b"
        )


class TestCreatePaymentIntent:
    """Tests for StripeAdapter.create_payment_intent()."""

    def test_success(self, params, mock_create, settings):
        settings.STRIPE_SECRET_KEY = "sk_test_adapter"
        mock_create.return_value = MagicMock(
            id="pi_123",
            status="requires_payment_method",
            amount=5000,
            currency="usd",
            client_secret="pi_123_secret_xyz",
            metadata={"payment_id": "abc"},
        )

        result = StripeAdapter.create_payment_intent(params)

        assert result == PaymentIntentResult(
            id="pi_123",
            status="requires_payment_method",
            amount_cents=5000,
            currency="usd",
            client_secret="pi_123_secret_xyz",
            metadata={"payment_id": "abc"},
        )
        assert stripe.api_key == "sk_test_adapter"
        mock_create.assert_called_once_with(
            amount=5000,
            currency="usd",
            metadata={"payment_id": "abc"},
            capture_method="automatic",
            idempotency_key="create_intent:abc:1:deadbeef",
        )

    def test_card_declined(self, params, mock_create):
        mock_create.side_effect = stripe.CardError("Your card was declined.", param=None, code="card_declined")

        with pytest.raises(StripeCardDeclinedError) as exc_info:
            StripeAdapter.create_payment_intent(params)

        assert exc_info.value.stripe_code == "card_declined"
        assert exc_info.value.is_retryable is False

    def test_invalid_request(self, params, mock_create):
        mock_create.side_effect = stripe.InvalidRequestError("Invalid currency", param="currency", code="parameter_invalid")

        with pytest.raises(StripeInvalidRequestError) as exc_info:
            StripeAdapter.create_payment_intent(params)

        assert exc_info.value.stripe_code == "parameter_invalid"

    def test_authentication_error(self, params, mock_create):
        mock_create.side_effect = stripe.AuthenticationError("Invalid API key")

        with pytest.raises(StripeInvalidRequestError) as exc_info:
            StripeAdapter.create_payment_intent(params)

        assert exc_info.value.stripe_code == "authentication_error"

    def test_rate_limited(self, params, mock_create):
        mock_create.side_effect = stripe.RateLimitError("Too many requests")

        with pytest.raises(StripeRateLimitError) as exc_info:
            StripeAdapter.create_payment_intent(params)

        assert exc_info.value.is_retryable is True

    def test_connection_error(self, params, mock_create):
        mock_create.side_effect = stripe.APIConnectionError("Network down")

        with pytest.raises(StripeAPIUnavailableError) as exc_info:
            StripeAdapter.create_payment_intent(params)

        assert exc_info.value.is_retryable is True
        assert exc_info.value.stripe_code == "api_connection_error"

    def test_other_stripe_error(self, params, mock_create):
        mock_create.side_effect = stripe.APIError("Internal error")

        with pytest.raises(StripeAPIUnavailableError) as exc_info:
            StripeAdapter.create_payment_intent(params)

        assert exc_info.value.stripe_code == "api_error"
