"""
Processed-event ledger - exactly-once bookkeeping for webhook events.

Public API:
    Service:
        ledger - Singleton instance of ProcessedEventLedger
        ProcessedEventLedger - claim / record_applied / record_rejected /
            record_corroborated / is_processed

    Types:
        ClaimResult - Outcome of a claim attempt

Usage:
    from payments.ledger import ledger

    with transaction.atomic():
        claim = ledger.claim(event.processor_event_id, event.event_type)
        if not claim:
            return WebhookDisposition.DUPLICATE
"""

from .services import ProcessedEventLedger, ledger
from .types import ClaimResult

__all__ = [
    "ClaimResult",
    "ProcessedEventLedger",
    "ledger",
]
