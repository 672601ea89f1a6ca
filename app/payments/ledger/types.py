"""
Data types for processed-event ledger operations.

Types:
    ClaimResult: Outcome of trying to claim a processor event id

Usage:
    from payments.ledger.types import ClaimResult

    result = ledger.claim("evt_123", "payment_intent.succeeded")
    if not result:
        return  # someone else already owns this event
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from payments.models import ProcessedWebhookEvent


@dataclass(frozen=True)
class ClaimResult:
    """
    Result of ProcessedEventLedger.claim().

    Attributes:
        claimed: True if this unit of work inserted the ledger row
        entry: The inserted row when claimed, otherwise None

    Truthiness follows ``claimed``.
    """

    claimed: bool
    entry: ProcessedWebhookEvent | None = None

    def __bool__(self) -> bool:
        return self.claimed
