"""
Factory Boy factories for payment test data.

Usage:
    from payments.tests.factories import PaymentFactory, ProcessedWebhookEventFactory

    # A payment waiting for its intent
    payment = PaymentFactory()

    # A payment Stripe is processing
    payment = PaymentFactory(state=PaymentState.PROCESSING, version=3)

    # A ledger row for an event already applied to it
    ProcessedWebhookEventFactory(payment=payment)
"""

import factory
from django.utils import timezone

from payments.models import Payment, ProcessedWebhookEvent
from payments.state_machines import (
    PaymentState,
    PaymentTrigger,
    WebhookEventOutcome,
)


class PaymentFactory(factory.django.DjangoModelFactory):
    """
    Factory for creating Payment instances.

    Payments get an intent id by default because almost every test needs
    one. Pass processor_intent_id=None for a freshly created payment.
    State can be set here because the protected field accepts a value on
    construction; it cannot be reassigned afterwards.
    """

    class Meta:
        model = Payment
        skip_postgeneration_save = True

    processor_intent_id = factory.Sequence(lambda n: f"pi_test_{n:06d}")
    amount_cents = 5000
    currency = "usd"
    state = PaymentState.CREATED
    version = 1
    metadata = factory.LazyFunction(dict)


class ProcessedWebhookEventFactory(factory.django.DjangoModelFactory):
    """Factory for committed ledger rows (outcome APPLIED by default)."""

    class Meta:
        model = ProcessedWebhookEvent
        skip_postgeneration_save = True

    processor_event_id = factory.Sequence(lambda n: f"evt_test_{n:06d}")
    event_type = "payment_intent.succeeded"
    received_at = factory.LazyFunction(timezone.now)
    payment = factory.SubFactory(PaymentFactory, state=PaymentState.SUCCEEDED, version=2)
    applied_transition = PaymentTrigger.SUCCEED
    outcome = WebhookEventOutcome.APPLIED
    from_state = PaymentState.PROCESSING
    to_state = PaymentState.SUCCEEDED
