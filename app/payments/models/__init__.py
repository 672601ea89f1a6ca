"""
Payment domain models.

- Payment: The aggregate whose lifecycle is reconciled against the processor
- ProcessedWebhookEvent: Ledger of processor events already applied
"""

from payments.models.payment import Payment
from payments.models.processed_webhook_event import ProcessedWebhookEvent

__all__ = [
    "Payment",
    "ProcessedWebhookEvent",
]
