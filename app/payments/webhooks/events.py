"""
Value types passed between the webhook pipeline stages.

    NormalizedEvent - what the verifier produces from an authentic delivery
    RoutedEvent     - what the router produces when an event drives a transition
    WebhookResult   - what the processor reports for an acknowledged delivery
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from payments.state_machines import PaymentTrigger, WebhookDisposition

if TYPE_CHECKING:
    from datetime import datetime
    from typing import Any


@dataclass(frozen=True)
class NormalizedEvent:
    """
    An authenticated processor event, reduced to what the pipeline needs.

    Attributes:
        processor_event_id: Stripe Event ID (evt_xxx), the dedup key
        event_type: Stripe event type (e.g., 'payment_intent.succeeded')
        processor_intent_id: PaymentIntent the event concerns, if any
        occurred_at: When Stripe created the event
        data_object: The event's data.object, used by the router
    """

    processor_event_id: str
    event_type: str
    processor_intent_id: str | None
    occurred_at: datetime
    data_object: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)


@dataclass(frozen=True)
class RoutedEvent:
    """
    An event the router mapped to a state machine trigger.

    Attributes:
        event: The source event
        trigger: Trigger to apply to the payment
        processor_intent_id: Intent id used to locate the payment
        failure_reason: Processor-supplied reason for fail/cancel triggers
    """

    event: NormalizedEvent
    trigger: PaymentTrigger
    processor_intent_id: str
    failure_reason: str | None = None


@dataclass(frozen=True)
class WebhookResult:
    """
    Outcome of processing one acknowledged delivery.

    Attributes:
        disposition: applied, corroborated, duplicate, ignored or rejected
        processor_event_id: Stripe Event ID
        payment_id: Payment the event targeted (None when ignored/duplicate)
        from_state: Payment state before the event
        to_state: Payment state after the event (None unless applied or
            corroborated)
        attempts: Version-checked write attempts used
    """

    disposition: WebhookDisposition
    processor_event_id: str
    payment_id: str | None = None
    from_state: str | None = None
    to_state: str | None = None
    attempts: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Response body for the webhook endpoint."""
        return {
            "status": str(self.disposition),
            "event_id": self.processor_event_id,
        }
