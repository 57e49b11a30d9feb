"""Translation from ORM rows to typed domain records.

This is the only place that knows how the store shapes a joined escrow row;
schema drift is absorbed here.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import inspect

from safe_escrow.domain.enums import SettlementStatus
from safe_escrow.domain.models import EscrowParties, EscrowRecord, PartyInfo

if TYPE_CHECKING:
    from safe_escrow.infrastructure.database.orm_models import SafeTransaction, User


def _aware(value: datetime | None) -> datetime | None:
    # SQLite drops tzinfo on the way back; everything stored is UTC.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def to_party(user: User | None) -> PartyInfo | None:
    if user is None:
        return None
    return PartyInfo(user_id=user.id, name=user.name, phone=user.phone or None)


def to_parties(row: SafeTransaction) -> EscrowParties:
    """Resolve parties if the transaction relationship was eager-loaded."""
    if "transaction" in inspect(row).unloaded or row.transaction is None:
        return EscrowParties()
    tx = row.transaction
    return EscrowParties(
        product_title=tx.product.title if tx.product is not None else None,
        buyer=to_party(tx.buyer),
        seller=to_party(tx.seller),
        reseller=to_party(tx.reseller),
    )


def to_escrow_record(row: SafeTransaction) -> EscrowRecord:
    """Map a safe_transactions row (and joined parties, if loaded) to an EscrowRecord."""
    return EscrowRecord(
        id=row.id,
        transaction_id=row.transaction_id,
        deposit_amount=row.deposit_amount,
        settlement_status=SettlementStatus(row.settlement_status),
        created_at=_aware(row.created_at),
        updated_at=_aware(row.updated_at),
        deposit_confirmed=bool(row.deposit_confirmed),
        deposit_confirmed_at=_aware(row.deposit_confirmed_at),
        shipping_confirmed=bool(row.shipping_confirmed),
        shipping_confirmed_at=_aware(row.shipping_confirmed_at),
        tracking_number=row.tracking_number,
        courier=row.courier,
        delivery_confirmed=bool(row.delivery_confirmed),
        admin_notes=row.admin_notes,
        parties=to_parties(row),
    )
