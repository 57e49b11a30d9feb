"""Escrow workflow: the admin-driven transitions of a safe transaction.

Each operation is one unit of work:

    load -> (optional ordering guard) -> write -> commit -> publish event

The state write commits before any event is published, so subscribers
(notifications) cannot block or roll back a transition. Timestamps that the
data model defines as "set once" are only written the first time; notes and
updated_at are rewritten on every call.

By default the workflow does not check that the previous step happened, e.g.
shipping may be confirmed before the deposit. Pass ``enforce_step_order=True``
to route every transition through EscrowStateMachine instead.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy.exc import SQLAlchemyError

from safe_escrow.domain.enums import SettlementStatus
from safe_escrow.domain.events import (
    DepositConfirmed,
    EscrowEvent,
    NotesUpdated,
    SettlementProcessed,
    ShippingConfirmed,
)
from safe_escrow.domain.exceptions import (
    DependencyFailureError,
    EscrowNotFoundError,
    TransactionNotFoundError,
)
from safe_escrow.domain.state_machine import guard_transition
from safe_escrow.infrastructure.database.mapping import to_escrow_record
from safe_escrow.infrastructure.database.repositories import (
    SafeTransactionRepository,
    TransactionRepository,
)
from safe_escrow.logging_config import get_logger

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession

    from safe_escrow.domain.models import AdminIdentity, EscrowRecord
    from safe_escrow.infrastructure.database.orm_models import SafeTransaction
    from safe_escrow.services.event_bus import EventBus

logger = get_logger(__name__)

DEFAULT_DEPOSIT_NOTE = "deposit confirmed"
DEFAULT_SHIPPING_NOTE = "shipping started"
DEFAULT_SETTLEMENT_NOTE = "settlement complete"


def compose_shipping_note(tracking_number: str | None, courier: str | None) -> str:
    """``shipping started - tracking: 123 (CJ)`` with the optional parts omitted."""
    note = DEFAULT_SHIPPING_NOTE
    if tracking_number:
        note += f" - tracking: {tracking_number}"
    if courier:
        note += f" ({courier})"
    return note


def _utcnow() -> datetime:
    return datetime.now(UTC)


class EscrowWorkflow:
    """Applies admin transitions to escrow records."""

    def __init__(
        self,
        session: AsyncSession,
        event_bus: EventBus | None = None,
        enforce_step_order: bool = False,
    ) -> None:
        self._session = session
        self._event_bus = event_bus
        self._enforce_step_order = enforce_step_order
        self._escrows = SafeTransactionRepository(session)
        self._transactions = TransactionRepository(session)

    # ------------------------------------------------------------------
    # Deposit
    # ------------------------------------------------------------------

    async def confirm_deposit(
        self,
        safe_transaction_id: uuid.UUID,
        actor: AdminIdentity,
        admin_notes: str | None = None,
    ) -> EscrowRecord:
        """Mark the buyer's deposit as received and notify seller/reseller."""
        row = await self._get_or_raise(safe_transaction_id, with_parties=True)
        self._guard(row, "confirm_deposit")

        now = _utcnow()
        row.deposit_confirmed = True
        if row.deposit_confirmed_at is None:
            row.deposit_confirmed_at = now
        row.admin_notes = admin_notes or DEFAULT_DEPOSIT_NOTE
        row.updated_at = now
        record = await self._commit(row)

        logger.info(
            "escrow.deposit_confirmed",
            safe_transaction_id=str(safe_transaction_id),
            admin_id=str(actor.user_id),
            amount=str(record.deposit_amount),
        )
        await self._publish(DepositConfirmed(record=record, actor_id=actor.user_id, occurred_at=now))
        return record

    # ------------------------------------------------------------------
    # Shipping
    # ------------------------------------------------------------------

    async def confirm_shipping(
        self,
        safe_transaction_id: uuid.UUID,
        actor: AdminIdentity,
        tracking_number: str | None = None,
        courier: str | None = None,
    ) -> EscrowRecord:
        """Mark the item as shipped and notify the buyer."""
        row = await self._get_or_raise(safe_transaction_id, with_parties=True)
        self._guard(row, "confirm_shipping")

        now = _utcnow()
        row.shipping_confirmed = True
        if row.shipping_confirmed_at is None:
            row.shipping_confirmed_at = now
        # Shipment details are fixed once recorded.
        if not row.tracking_number and tracking_number:
            row.tracking_number = tracking_number
        if not row.courier and courier:
            row.courier = courier
        row.admin_notes = compose_shipping_note(row.tracking_number, row.courier)
        row.updated_at = now
        record = await self._commit(row)

        logger.info(
            "escrow.shipping_confirmed",
            safe_transaction_id=str(safe_transaction_id),
            admin_id=str(actor.user_id),
            tracking_number=record.tracking_number,
            courier=record.courier,
        )
        await self._publish(
            ShippingConfirmed(record=record, actor_id=actor.user_id, occurred_at=now)
        )
        return record

    # ------------------------------------------------------------------
    # Settlement
    # ------------------------------------------------------------------

    async def process_settlement(
        self,
        safe_transaction_id: uuid.UUID,
        actor: AdminIdentity,
        admin_notes: str | None = None,
    ) -> EscrowRecord:
        """Settle the escrow and complete the owning transaction."""
        row = await self._get_or_raise(safe_transaction_id)
        try:
            transaction = await self._transactions.get_by_id(row.transaction_id)
        except SQLAlchemyError as exc:
            raise DependencyFailureError() from exc
        if transaction is None:
            raise TransactionNotFoundError(str(row.transaction_id))
        self._guard(row, "process_settlement")

        repeated = row.settlement_status == SettlementStatus.SETTLED.value
        now = _utcnow()
        row.settlement_status = SettlementStatus.SETTLED.value
        row.admin_notes = admin_notes or DEFAULT_SETTLEMENT_NOTE
        row.updated_at = now
        try:
            await self._transactions.mark_completed(transaction, now)
        except SQLAlchemyError as exc:
            await self._session.rollback()
            raise DependencyFailureError() from exc
        record = await self._commit(row)

        if repeated:
            logger.warning(
                "escrow.settlement_repeated",
                safe_transaction_id=str(safe_transaction_id),
                transaction_id=str(transaction.id),
            )
        logger.info(
            "escrow.settled",
            safe_transaction_id=str(safe_transaction_id),
            transaction_id=str(transaction.id),
            admin_id=str(actor.user_id),
        )
        await self._publish(
            SettlementProcessed(
                record=record,
                actor_id=actor.user_id,
                occurred_at=now,
                repeated=repeated,
            )
        )
        return record

    # ------------------------------------------------------------------
    # Notes
    # ------------------------------------------------------------------

    async def update_notes(
        self,
        safe_transaction_id: uuid.UUID,
        actor: AdminIdentity,
        admin_notes: str,
    ) -> EscrowRecord:
        """Overwrite the record's admin notes."""
        row = await self._get_or_raise(safe_transaction_id)

        now = _utcnow()
        row.admin_notes = admin_notes
        row.updated_at = now
        record = await self._commit(row)

        logger.info(
            "escrow.notes_updated",
            safe_transaction_id=str(safe_transaction_id),
            admin_id=str(actor.user_id),
        )
        await self._publish(NotesUpdated(record=record, actor_id=actor.user_id, occurred_at=now))
        return record

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _get_or_raise(
        self,
        safe_transaction_id: uuid.UUID,
        with_parties: bool = False,
    ) -> SafeTransaction:
        try:
            row = await self._escrows.get_by_id(safe_transaction_id, with_parties=with_parties)
        except SQLAlchemyError as exc:
            raise DependencyFailureError() from exc
        if row is None:
            raise EscrowNotFoundError(str(safe_transaction_id))
        return row

    def _guard(self, row: SafeTransaction, event_name: str) -> None:
        if self._enforce_step_order:
            guard_transition(to_escrow_record(row), event_name)

    async def _commit(self, row: SafeTransaction) -> EscrowRecord:
        """Persist the state write as its own unit of work."""
        row_id = row.id
        try:
            await self._escrows.save(row)
            await self._session.commit()
        except SQLAlchemyError as exc:
            await self._session.rollback()
            logger.error("escrow.write_failed", safe_transaction_id=str(row_id), error=str(exc))
            raise DependencyFailureError() from exc
        return to_escrow_record(row)

    async def _publish(self, event: EscrowEvent) -> None:
        if self._event_bus is not None:
            await self._event_bus.publish(event)
