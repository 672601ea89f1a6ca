"""
Pytest fixtures shared by all payments tests.

Fixtures provide payments in each lifecycle state and pin the webhook
settings so signed test deliveries verify regardless of the environment.

Usage:
    def test_succeeds(processing_payment):
        assert processing_payment.state == PaymentState.PROCESSING
"""

import pytest

from payments.state_machines import PaymentState
from payments.tests.factories import PaymentFactory
from payments.tests.stripe_events import TEST_WEBHOOK_SECRET


@pytest.fixture(autouse=True)
def webhook_settings(settings):
    """Known signing secret, retry budget and grace window for every payments test."""
    settings.STRIPE_WEBHOOK_SECRET = TEST_WEBHOOK_SECRET
    settings.STRIPE_WEBHOOK_TOLERANCE_SECONDS = 300
    settings.PAYMENTS_WEBHOOK_MAX_CONFLICT_RETRIES = 3
    settings.PAYMENTS_WEBHOOK_UNKNOWN_INTENT_GRACE_SECONDS = 24 * 60 * 60
    return settings


# =============================================================================
# Payment Fixtures
# =============================================================================


@pytest.fixture
def unattached_payment(db):
    """A payment in CREATED with no processor intent yet."""
    return PaymentFactory(processor_intent_id=None)


@pytest.fixture
def created_payment(db):
    """A payment in CREATED with its intent attached."""
    return PaymentFactory(processor_intent_id="pi_test_created")


@pytest.fixture
def requires_action_payment(db):
    """A payment waiting for 3-D Secure."""
    return PaymentFactory(
        processor_intent_id="pi_test_requires_action",
        state=PaymentState.REQUIRES_ACTION,
        version=2,
    )


@pytest.fixture
def processing_payment(db):
    """A payment Stripe is processing."""
    return PaymentFactory(
        processor_intent_id="pi_test_processing",
        state=PaymentState.PROCESSING,
        version=2,
    )


@pytest.fixture
def succeeded_payment(db):
    """A payment in a terminal state."""
    return PaymentFactory(
        processor_intent_id="pi_test_succeeded",
        state=PaymentState.SUCCEEDED,
        version=3,
    )
