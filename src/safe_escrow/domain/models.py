"""Typed domain records.

The store returns ORM rows joined across transactions, products and users;
``infrastructure.database.mapping`` converts those rows into the frozen
dataclasses below so nothing past that boundary sees the raw schema.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import uuid
    from datetime import datetime
    from decimal import Decimal

    from safe_escrow.domain.enums import EscrowStep, MessageType, SettlementStatus


@dataclass(frozen=True)
class PartyInfo:
    """A buyer, seller or reseller as far as notifications are concerned."""

    user_id: uuid.UUID
    name: str | None = None
    phone: str | None = None


@dataclass(frozen=True)
class EscrowParties:
    """Parties and product resolved through the owning transaction."""

    product_title: str | None = None
    buyer: PartyInfo | None = None
    seller: PartyInfo | None = None
    reseller: PartyInfo | None = None


@dataclass(frozen=True)
class EscrowRecord:
    """Persisted escrow state of one marketplace transaction."""

    id: uuid.UUID
    transaction_id: uuid.UUID
    deposit_amount: Decimal
    settlement_status: SettlementStatus
    created_at: datetime
    updated_at: datetime
    deposit_confirmed: bool = False
    deposit_confirmed_at: datetime | None = None
    shipping_confirmed: bool = False
    shipping_confirmed_at: datetime | None = None
    tracking_number: str | None = None
    courier: str | None = None
    delivery_confirmed: bool = False
    admin_notes: str | None = None
    parties: EscrowParties = field(default_factory=EscrowParties)


@dataclass(frozen=True)
class DerivedView:
    """Display-only step label and progress fraction (0.0 - 1.0)."""

    current_step: EscrowStep
    progress: float


@dataclass(frozen=True)
class EscrowListItem:
    """A record paired with its derived view, as served to dashboards."""

    record: EscrowRecord
    view: DerivedView


@dataclass(frozen=True)
class EscrowStats:
    """Dashboard counters. Buckets are independent and need not sum to total."""

    total_count: int = 0
    waiting_deposit_count: int = 0
    waiting_shipping_count: int = 0
    shipping_count: int = 0
    waiting_settlement_count: int = 0
    completed_count: int = 0


@dataclass(frozen=True)
class AdminIdentity:
    """An authenticated caller holding the administrator role."""

    user_id: uuid.UUID
    role: str
    name: str | None = None


@dataclass(frozen=True)
class DeliveryRecord:
    """Outcome of one notification attempt, mirrored into sms_logs."""

    recipient_phone: str
    message_type: MessageType
    body: str
    sent: bool
    attempted_at: datetime
    error: str | None = None
