"""Repository classes for database access.

Repositories encapsulate all SQL queries and provide a clean interface to the
service layer. They accept an AsyncSession and never manage their own
transactions (that's the caller's responsibility).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import func, select
from sqlalchemy.orm import selectinload

from safe_escrow.domain.enums import TransactionStatus
from safe_escrow.infrastructure.database.orm_models import (
    SafeTransaction,
    SmsLog,
    Transaction,
    User,
)

if TYPE_CHECKING:
    import uuid
    from datetime import datetime

    from sqlalchemy import ColumnElement
    from sqlalchemy.ext.asyncio import AsyncSession

    from safe_escrow.domain.enums import MessageType, SettlementStatus


def _with_parties():
    """Eager-load transaction -> product/buyer/seller/reseller."""
    tx = selectinload(SafeTransaction.transaction)
    return (
        tx.selectinload(Transaction.product),
        tx.selectinload(Transaction.buyer),
        tx.selectinload(Transaction.seller),
        tx.selectinload(Transaction.reseller),
    )


class SafeTransactionRepository:
    """Data access for escrow records."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(
        self,
        safe_transaction_id: uuid.UUID,
        with_parties: bool = False,
    ) -> SafeTransaction | None:
        """Fetch an escrow record, optionally with its parties joined in."""
        stmt = select(SafeTransaction).where(SafeTransaction.id == safe_transaction_id)
        if with_parties:
            stmt = stmt.options(*_with_parties())
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def save(self, row: SafeTransaction) -> SafeTransaction:
        """Flush pending changes on a record."""
        await self._session.flush()
        return row

    async def count(self, *criteria: ColumnElement[bool]) -> int:
        """Count records matching every criterion (all records when none given)."""
        stmt = select(func.count()).select_from(SafeTransaction)
        if criteria:
            stmt = stmt.where(*criteria)
        result = await self._session.execute(stmt)
        return int(result.scalar_one())

    async def list_page(
        self,
        settlement_status: SettlementStatus | None,
        limit: int,
        offset: int,
    ) -> list[SafeTransaction]:
        """Newest-first page of records with parties joined in."""
        stmt = select(SafeTransaction).options(*_with_parties())
        if settlement_status is not None:
            stmt = stmt.where(SafeTransaction.settlement_status == settlement_status.value)
        stmt = (
            stmt.order_by(SafeTransaction.created_at.desc(), SafeTransaction.id)
            .limit(limit)
            .offset(offset)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())


class TransactionRepository:
    """Data access for owning marketplace transactions."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, transaction_id: uuid.UUID) -> Transaction | None:
        result = await self._session.execute(
            select(Transaction).where(Transaction.id == transaction_id)
        )
        return result.scalar_one_or_none()

    async def mark_completed(self, transaction: Transaction, at: datetime) -> Transaction:
        """Move the transaction to COMPLETED with a completion timestamp."""
        transaction.status = TransactionStatus.COMPLETED.value
        transaction.completed_at = at
        await self._session.flush()
        return transaction


class UserRepository:
    """Read access to marketplace users."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, user_id: uuid.UUID) -> User | None:
        result = await self._session.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()


class SmsLogRepository:
    """Append-only log of notification attempts."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def record(
        self,
        phone_number: str,
        message_type: MessageType,
        message_content: str,
        is_sent: bool,
        sent_at: datetime | None,
        safe_transaction_id: uuid.UUID | None = None,
    ) -> SmsLog:
        """Append one attempt. This is the ONLY write operation allowed."""
        log = SmsLog(
            safe_transaction_id=safe_transaction_id,
            phone_number=phone_number,
            message_type=message_type.value,
            message_content=message_content,
            is_sent=is_sent,
            sent_at=sent_at,
        )
        self._session.add(log)
        await self._session.flush()
        return log

    async def get_by_safe_transaction(self, safe_transaction_id: uuid.UUID) -> list[SmsLog]:
        """Fetch all attempts for a record in chronological order."""
        result = await self._session.execute(
            select(SmsLog)
            .where(SmsLog.safe_transaction_id == safe_transaction_id)
            .order_by(SmsLog.created_at.asc())
        )
        return list(result.scalars().all())
