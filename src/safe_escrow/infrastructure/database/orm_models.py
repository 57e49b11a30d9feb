"""SQLAlchemy 2.0 ORM models for the resale marketplace store.

Five tables:
    1. users              - Marketplace members (buyer, seller, reseller, admin).
    2. products           - Listed items; only the title is used here.
    3. transactions       - The marketplace transaction owning an escrow record.
    4. safe_transactions  - Escrow state, one row per transaction under escrow.
    5. sms_logs           - One row per notification attempt.

Design decisions:
    - UUIDs as primary keys, generic Uuid type so SQLite works in tests.
    - Numeric for won amounts, never float.
    - CHECK constraints on settlement_status and deposit_amount.
    - safe_transactions.transaction_id is unique (1:1 with transactions).
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from decimal import Decimal  # noqa: TC003 - needed at runtime by SQLAlchemy Mapped[]

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    Uuid,
    event,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _set_updated_at(mapper, connection, target):  # noqa: ANN001
    """SQLAlchemy event listener that updates `updated_at` before flush."""
    if hasattr(target, "updated_at"):
        target.updated_at = _utcnow()


# ---------------------------------------------------------------------------
# 1. users
# ---------------------------------------------------------------------------
class User(Base):
    """A marketplace member. Role decides admin access."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    phone: Mapped[str | None] = mapped_column(
        String(20),
        nullable=True,
        comment="Contact number used for SMS notifications",
    )
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="USER")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} role={self.role}>"


# ---------------------------------------------------------------------------
# 2. products
# ---------------------------------------------------------------------------
class Product(Base):
    """A listed product."""

    __tablename__ = "products"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )


# ---------------------------------------------------------------------------
# 3. transactions
# ---------------------------------------------------------------------------
class Transaction(Base):
    """A marketplace transaction between a buyer and a seller."""

    __tablename__ = "transactions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("products.id"), nullable=False
    )
    buyer_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)
    seller_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)
    reseller_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("users.id"),
        nullable=True,
        comment="Reseller who listed the seller's product for a commission",
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="IN_PROGRESS")
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, default=None
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    product: Mapped[Product] = relationship("Product", lazy="raise")
    buyer: Mapped[User] = relationship("User", foreign_keys=[buyer_id], lazy="raise")
    seller: Mapped[User] = relationship("User", foreign_keys=[seller_id], lazy="raise")
    reseller: Mapped[User | None] = relationship(
        "User", foreign_keys=[reseller_id], lazy="raise"
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('PENDING', 'IN_PROGRESS', 'COMPLETED', 'CANCELLED')",
            name="ck_transaction_valid_status",
        ),
        Index("idx_transaction_product", "product_id"),
    )

    def __repr__(self) -> str:
        return f"<Transaction id={self.id} status={self.status}>"


# ---------------------------------------------------------------------------
# 4. safe_transactions
# ---------------------------------------------------------------------------
class SafeTransaction(Base):
    """Escrow state of one marketplace transaction."""

    __tablename__ = "safe_transactions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    transaction_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("transactions.id"),
        nullable=False,
        unique=True,
    )

    # --- Deposit ---
    deposit_amount: Mapped[Decimal] = mapped_column(
        Numeric(14, 0),
        nullable=False,
        comment="Deposit held in escrow, in won",
    )
    deposit_confirmed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    deposit_confirmed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, default=None
    )

    # --- Shipping ---
    shipping_confirmed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    shipping_confirmed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, default=None
    )
    tracking_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    courier: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # --- Delivery / Settlement ---
    delivery_confirmed: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        comment="Set by the buyer-side receipt flow",
    )
    settlement_status: Mapped[str] = mapped_column(
        String(30), nullable=False, default="WAITING"
    )
    admin_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # --- Timestamps ---
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )

    transaction: Mapped[Transaction] = relationship("Transaction", lazy="raise")

    __table_args__ = (
        CheckConstraint(
            "settlement_status IN ('WAITING', 'READY_FOR_SETTLEMENT', 'SETTLED')",
            name="ck_safe_transaction_settlement_status",
        ),
        CheckConstraint("deposit_amount > 0", name="ck_safe_transaction_positive_deposit"),
        Index("idx_safe_transaction_settlement", "settlement_status"),
        Index("idx_safe_transaction_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<SafeTransaction id={self.id} settlement={self.settlement_status} "
            f"deposit={self.deposit_amount}>"
        )


# ---------------------------------------------------------------------------
# 5. sms_logs
# ---------------------------------------------------------------------------
class SmsLog(Base):
    """Record of a notification attempt, written whether or not delivery worked."""

    __tablename__ = "sms_logs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    safe_transaction_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("safe_transactions.id"), nullable=True
    )
    phone_number: Mapped[str] = mapped_column(String(20), nullable=False)
    message_type: Mapped[str] = mapped_column(String(30), nullable=False)
    message_content: Mapped[str] = mapped_column(Text, nullable=False)
    is_sent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )

    __table_args__ = (Index("idx_sms_log_safe_transaction", "safe_transaction_id"),)

    def __repr__(self) -> str:
        return f"<SmsLog id={self.id} type={self.message_type} sent={self.is_sent}>"


event.listen(SafeTransaction, "before_update", _set_updated_at)
