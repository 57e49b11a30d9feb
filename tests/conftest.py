"""Shared test fixtures for the safe escrow test suite.

Provides:
    - An in-memory SQLite database (aiosqlite) shared by every session in a test
    - Seed data: an admin, a regular member, buyer/seller/reseller and a product
    - Factory fixtures for escrow records and JWTs
    - Recording and failing SMS transports
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal

import pytest
import pytest_asyncio
from jose import jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from safe_escrow.config import Settings
from safe_escrow.domain.models import AdminIdentity
from safe_escrow.infrastructure.database.engine import make_session_factory
from safe_escrow.infrastructure.database.orm_models import (
    Base,
    Product,
    SafeTransaction,
    SmsLog,
    Transaction,
    User,
)

TEST_JWT_SECRET = "test-secret-do-not-use-in-production"
DEPOSIT_AMOUNT = 1_200_000


# ---------------------------------------------------------------------------
# Database Fixtures
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def engine():
    """In-memory SQLite engine; StaticPool keeps one connection so data is shared."""
    eng = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest_asyncio.fixture
async def session(session_factory):
    """Session handed to the code under test."""
    async with session_factory() as s:
        yield s


@pytest.fixture
def settings() -> Settings:
    return Settings(
        app_env="development",
        jwt_secret=TEST_JWT_SECRET,
        jwt_audience="authenticated",
        admin_role="ADMIN",
    )


# ---------------------------------------------------------------------------
# Seed Data
# ---------------------------------------------------------------------------


@dataclass
class Marketplace:
    admin_id: uuid.UUID
    member_id: uuid.UUID
    buyer_id: uuid.UUID
    seller_id: uuid.UUID
    reseller_id: uuid.UUID
    product_id: uuid.UUID


@pytest_asyncio.fixture
async def marketplace(session_factory) -> Marketplace:
    """Users and a product every escrow record in a test can point at."""
    admin = User(id=uuid.uuid4(), name="Operator", phone="010-0000-0000", role="ADMIN")
    member = User(id=uuid.uuid4(), name="Member", phone="010-9999-9999", role="USER")
    buyer = User(id=uuid.uuid4(), name="Buyer Kim", phone="010-1111-1111", role="USER")
    seller = User(id=uuid.uuid4(), name="Seller Lee", phone="010-2222-2222", role="USER")
    reseller = User(id=uuid.uuid4(), name="Reseller Park", phone="010-3333-3333", role="USER")
    product = Product(id=uuid.uuid4(), title="Vintage Camera")

    async with session_factory() as s:
        s.add_all([admin, member, buyer, seller, reseller, product])
        await s.commit()

    return Marketplace(
        admin_id=admin.id,
        member_id=member.id,
        buyer_id=buyer.id,
        seller_id=seller.id,
        reseller_id=reseller.id,
        product_id=product.id,
    )


@pytest.fixture
def admin_identity(marketplace) -> AdminIdentity:
    return AdminIdentity(user_id=marketplace.admin_id, role="ADMIN", name="Operator")


@pytest.fixture
def create_escrow(session_factory, marketplace):
    """Factory: insert a transaction plus its escrow record and return the record ID.

    ``orphan=True`` points the record at a transaction that does not exist.
    Any other keyword is set on the SafeTransaction row.
    """

    async def _create(
        deposit_amount: int = DEPOSIT_AMOUNT,
        with_reseller: bool = True,
        created_at: datetime | None = None,
        orphan: bool = False,
        buyer_id: uuid.UUID | None = None,
        **fields,
    ) -> uuid.UUID:
        stamp = created_at or datetime.now(UTC)
        async with session_factory() as s:
            if orphan:
                transaction_id = uuid.uuid4()
            else:
                tx = Transaction(
                    id=uuid.uuid4(),
                    product_id=marketplace.product_id,
                    buyer_id=buyer_id or marketplace.buyer_id,
                    seller_id=marketplace.seller_id,
                    reseller_id=marketplace.reseller_id if with_reseller else None,
                )
                s.add(tx)
                await s.flush()
                transaction_id = tx.id

            row = SafeTransaction(
                id=uuid.uuid4(),
                transaction_id=transaction_id,
                deposit_amount=Decimal(deposit_amount),
                created_at=stamp,
                updated_at=stamp,
                **fields,
            )
            s.add(row)
            await s.commit()
            return row.id

    return _create


@pytest.fixture
def fetch_escrow(session_factory):
    """Read a record back through a fresh session."""

    async def _fetch(safe_transaction_id: uuid.UUID) -> SafeTransaction | None:
        async with session_factory() as s:
            return await s.get(SafeTransaction, safe_transaction_id)

    return _fetch


@pytest.fixture
def fetch_transaction(session_factory):
    async def _fetch(transaction_id: uuid.UUID) -> Transaction | None:
        async with session_factory() as s:
            return await s.get(Transaction, transaction_id)

    return _fetch


@pytest.fixture
def fetch_sms_logs(session_factory):
    async def _fetch(safe_transaction_id: uuid.UUID | None = None) -> list[SmsLog]:
        async with session_factory() as s:
            stmt = select(SmsLog).order_by(SmsLog.created_at)
            if safe_transaction_id is not None:
                stmt = stmt.where(SmsLog.safe_transaction_id == safe_transaction_id)
            result = await s.execute(stmt)
            return list(result.scalars().all())

    return _fetch


# ---------------------------------------------------------------------------
# Auth Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def make_token():
    """Factory: sign an HS256 JWT the way the marketplace auth provider does."""

    def _make(
        subject: uuid.UUID | str,
        secret: str = TEST_JWT_SECRET,
        audience: str = "authenticated",
        expires_in: int = 3600,
    ) -> str:
        now = int(time.time())
        claims = {"sub": str(subject), "aud": audience, "iat": now, "exp": now + expires_in}
        return jwt.encode(claims, secret, algorithm="HS256")

    return _make


@pytest.fixture
def admin_token(make_token, marketplace) -> str:
    return make_token(marketplace.admin_id)


# ---------------------------------------------------------------------------
# SMS Transports
# ---------------------------------------------------------------------------


class RecordingSmsTransport:
    """Keeps every (phone, body) pair instead of sending it."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str]] = []

    async def send(self, phone: str, body: str) -> None:
        self.sent.append((phone, body))


class FailingSmsTransport:
    """Raises on every send, like a gateway that is down."""

    def __init__(self) -> None:
        self.attempts = 0

    async def send(self, phone: str, body: str) -> None:
        self.attempts += 1
        raise ConnectionError("SMS gateway unreachable")


@pytest.fixture
def recording_transport() -> RecordingSmsTransport:
    return RecordingSmsTransport()


@pytest.fixture
def failing_transport() -> FailingSmsTransport:
    return FailingSmsTransport()
