"""
Maps verified processor events to payment state machine triggers.

Routes are registered per event type with @register_route. A route
receives the NormalizedEvent and returns a RoutedEvent, or None when the
event should be acknowledged without touching any payment.

Event types with no registered route are ignored. Stripe sends many
events this system has no interest in, and answering them with anything
other than 200 would only make Stripe retry them.

payment_intent.* and charge.* events map onto the same triggers. Stripe
sends both for one card payment, and whichever is processed second finds
the payment already in its target state; the processor records that as
corroborated rather than as a refused transition.

Usage:
    from payments.webhooks.router import route

    routed = route(event)
    if routed is None:
        return  # acknowledged no-op
    new_state = attempt_transition(payment.state, routed.trigger)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable

from payments.state_machines import PaymentTrigger
from payments.webhooks.events import RoutedEvent

if TYPE_CHECKING:
    from payments.webhooks.events import NormalizedEvent

logger = logging.getLogger(__name__)


# =============================================================================
# Route Registry
# =============================================================================


RouteFunc = Callable[["NormalizedEvent"], "RoutedEvent | None"]

# Maps event type strings to route functions
EVENT_ROUTES: dict[str, RouteFunc] = {}


def register_route(event_type: str) -> Callable[[RouteFunc], RouteFunc]:
    """
    Decorator to register the route for a processor event type.

    Usage:
        @register_route("payment_intent.succeeded")
        def route_payment_intent_succeeded(event: NormalizedEvent) -> RoutedEvent | None:
            ...
    """

    def decorator(func: RouteFunc) -> RouteFunc:
        EVENT_ROUTES[event_type] = func
        logger.debug(f"Registered webhook route for {event_type}")
        return func

    return decorator


def route(event: NormalizedEvent) -> RoutedEvent | None:
    """
    Resolve the trigger and target intent for an event.

    Returns:
        RoutedEvent, or None for events that are acknowledged without
        effect (unknown types, authorization-only charges, events whose
        intent cannot be determined)
    """
    route_func = EVENT_ROUTES.get(event.event_type)

    if route_func is None:
        logger.info(
            f"No route for event type: {event.event_type}",
            extra={"processor_event_id": event.processor_event_id},
        )
        return None

    return route_func(event)


def _to_trigger(
    event: NormalizedEvent,
    trigger: PaymentTrigger,
    failure_reason: str | None = None,
) -> RoutedEvent | None:
    if not event.processor_intent_id:
        logger.warning(
            f"{event.event_type}: could not determine payment intent id",
            extra={"processor_event_id": event.processor_event_id},
        )
        return None

    return RoutedEvent(
        event=event,
        trigger=trigger,
        processor_intent_id=event.processor_intent_id,
        failure_reason=failure_reason,
    )


# =============================================================================
# Payment Intent Routes
# =============================================================================


@register_route("payment_intent.requires_action")
def route_payment_intent_requires_action(event: NormalizedEvent) -> RoutedEvent | None:
    return _to_trigger(event, PaymentTrigger.REQUIRE_ACTION)


@register_route("payment_intent.processing")
def route_payment_intent_processing(event: NormalizedEvent) -> RoutedEvent | None:
    return _to_trigger(event, PaymentTrigger.START_PROCESSING)


@register_route("payment_intent.succeeded")
def route_payment_intent_succeeded(event: NormalizedEvent) -> RoutedEvent | None:
    return _to_trigger(event, PaymentTrigger.SUCCEED)


@register_route("payment_intent.payment_failed")
def route_payment_intent_failed(event: NormalizedEvent) -> RoutedEvent | None:
    """Failure reason comes from last_payment_error.message when present."""
    last_error = event.data_object.get("last_payment_error") or {}
    reason = last_error.get("message") if isinstance(last_error, dict) else None
    return _to_trigger(event, PaymentTrigger.FAIL, failure_reason=reason or "Payment failed")


@register_route("payment_intent.canceled")
def route_payment_intent_canceled(event: NormalizedEvent) -> RoutedEvent | None:
    reason = event.data_object.get("cancellation_reason")
    return _to_trigger(event, PaymentTrigger.CANCEL, failure_reason=reason or "Payment canceled")


# =============================================================================
# Charge Routes
# =============================================================================


@register_route("charge.pending")
def route_charge_pending(event: NormalizedEvent) -> RoutedEvent | None:
    return _to_trigger(event, PaymentTrigger.START_PROCESSING)


@register_route("charge.failed")
def route_charge_failed(event: NormalizedEvent) -> RoutedEvent | None:
    reason = event.data_object.get("failure_message")
    return _to_trigger(event, PaymentTrigger.FAIL, failure_reason=reason or "Charge failed")


@register_route("charge.succeeded")
def route_charge_succeeded(event: NormalizedEvent) -> RoutedEvent | None:
    """
    A succeeded charge only means the funds are captured if the charge
    says so. Authorization-only charges (captured=false) leave the
    payment alone; a charge without the flag cannot be interpreted.
    """
    captured = event.data_object.get("captured")

    if captured is True:
        return _to_trigger(event, PaymentTrigger.SUCCEED)

    if captured is False:
        logger.info(
            "charge.succeeded for an uncaptured charge, nothing to apply",
            extra={
                "processor_event_id": event.processor_event_id,
                "processor_intent_id": event.processor_intent_id,
            },
        )
        return None

    logger.warning(
        "charge.succeeded without a captured flag, cannot decide trigger",
        extra={
            "processor_event_id": event.processor_event_id,
            "processor_intent_id": event.processor_intent_id,
        },
    )
    return None
