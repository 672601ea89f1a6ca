"""
Django signals for the payment lifecycle.

Signals:
    transition_applied
        Sent after the transaction that wrote a new payment state has
        committed. Receivers never see a transition that later rolled back.
        kwargs: payment_id, processor_event_id, trigger, from_state, to_state

    transition_rejected
        Sent when a verified event asked for a transition the state machine
        refused (for example a late payment_intent.processing after the
        payment already succeeded). The event is still marked processed.
        kwargs: payment_id, processor_event_id, trigger, from_state, detail

Related files:
    - webhooks/processor.py: Sends both signals
    - apps.py: Signal registration

Usage:
    from django.dispatch import receiver
    from payments.signals import transition_applied

    @receiver(transition_applied)
    def on_payment_succeeded(sender, payment_id, to_state, **kwargs):
        if to_state == PaymentState.SUCCEEDED:
            ...
"""

from __future__ import annotations

import logging

from django.dispatch import Signal, receiver

logger = logging.getLogger(__name__)


transition_applied = Signal()
transition_rejected = Signal()


@receiver(transition_applied)
def log_transition_applied(sender, payment_id, processor_event_id, trigger, from_state, to_state, **kwargs):
    logger.info(
        f"Payment {payment_id} moved {from_state} -> {to_state}",
        extra={
            "payment_id": payment_id,
            "processor_event_id": processor_event_id,
            "trigger": trigger,
        },
    )


@receiver(transition_rejected)
def log_transition_rejected(sender, payment_id, processor_event_id, trigger, from_state, detail, **kwargs):
    """
    Record an out-of-order or otherwise illegal event.

    These are expected occasionally (Stripe does not guarantee delivery
    order) but a steady stream of them usually means a routing bug.
    """
    logger.warning(
        f"Rejected '{trigger}' for payment {payment_id} in state '{from_state}'",
        extra={
            "payment_id": payment_id,
            "processor_event_id": processor_event_id,
            "trigger": trigger,
            "from_state": from_state,
            "detail": detail,
        },
    )
