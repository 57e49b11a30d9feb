"""Domain events emitted by the escrow workflow.

Events are facts in the past tense and are immutable. Each carries the
record snapshot taken right after the state write, so consumers such as the
notification dispatcher never need to read the store again.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import uuid
    from datetime import datetime

    from safe_escrow.domain.models import EscrowRecord


@dataclass(frozen=True)
class EscrowEvent:
    """Base class for workflow events."""

    record: EscrowRecord
    actor_id: uuid.UUID
    occurred_at: datetime

    @property
    def safe_transaction_id(self) -> uuid.UUID:
        return self.record.id


@dataclass(frozen=True)
class DepositConfirmed(EscrowEvent):
    """Admin confirmed the buyer's deposit."""


@dataclass(frozen=True)
class ShippingConfirmed(EscrowEvent):
    """Admin confirmed the seller shipped the item."""


@dataclass(frozen=True)
class SettlementProcessed(EscrowEvent):
    """Settlement was released and the owning transaction completed."""

    repeated: bool = False


@dataclass(frozen=True)
class NotesUpdated(EscrowEvent):
    """Admin overwrote the record's notes."""
