#!/usr/bin/env python3
"""Safe Escrow Admin: End-to-End Simulation.

Walks the admin workflow through three scenarios with an OperatorBot:

    Scenario 1: Happy Path
        - Deposit confirmed -> seller and reseller texted
        - Shipping confirmed (tracking 1234567890, CJ) -> buyer texted
        - Settlement processed -> transaction COMPLETED, progress 1.0

    Scenario 2: Out of Order
        - Shipping confirmed before the deposit (allowed by default)
        - The same call with strict step ordering is rejected

    Scenario 3: SMS Gateway Down
        - Deposit confirmed while every send fails
        - The state write stays committed; sms_logs records is_sent=False

Usage:
    # Option A: Against PostgreSQL (DATABASE_URL):
    uv run python simulation.py

    # Option B: SQLite in-memory:
    uv run python simulation.py --sqlite

    # Run a specific scenario:
    uv run python simulation.py --sqlite --scenario 2
"""

from __future__ import annotations

import argparse
import asyncio
import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

# ---------------------------------------------------------------------------
# Configure structured logging BEFORE importing app modules
# ---------------------------------------------------------------------------
from safe_escrow.logging_config import get_logger, setup_logging

setup_logging(log_level="INFO", json_logs=False)
logger = get_logger("simulation")

from safe_escrow.domain.exceptions import InvalidStateTransitionError  # noqa: E402
from safe_escrow.domain.models import AdminIdentity  # noqa: E402
from safe_escrow.domain.state_machine import derive_view  # noqa: E402
from safe_escrow.infrastructure.database.orm_models import (  # noqa: E402
    Product,
    SafeTransaction,
    Transaction,
    User,
)
from safe_escrow.infrastructure.database.repositories import SmsLogRepository  # noqa: E402
from safe_escrow.infrastructure.sms_transport import LoggingSmsTransport  # noqa: E402
from safe_escrow.services.escrow_workflow import EscrowWorkflow  # noqa: E402
from safe_escrow.services.event_bus import EventBus  # noqa: E402
from safe_escrow.services.notification_service import NotificationDispatcher  # noqa: E402
from safe_escrow.services.query_service import QueryService  # noqa: E402

# Module-level state
_sqlite_engine = None
_sqlite_session_factory = None


# ---------------------------------------------------------------------------
# Database lifecycle helpers
# ---------------------------------------------------------------------------
async def init_database(use_sqlite: bool = False):
    """Initialize database engine and create tables."""
    global _sqlite_engine, _sqlite_session_factory

    if use_sqlite:
        from sqlalchemy.ext.asyncio import create_async_engine

        from safe_escrow.infrastructure.database.engine import make_session_factory
        from safe_escrow.infrastructure.database.orm_models import Base

        _sqlite_engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
        _sqlite_session_factory = make_session_factory(_sqlite_engine)
        async with _sqlite_engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("database.sqlite_initialized")
    else:
        from safe_escrow.infrastructure.database.engine import init_db

        await init_db()


async def get_session():
    """Get a fresh database session."""
    if _sqlite_session_factory is not None:
        return _sqlite_session_factory()

    from safe_escrow.infrastructure.database.engine import get_session_factory

    return get_session_factory()()


async def shutdown_database():
    """Close database connections."""
    global _sqlite_engine, _sqlite_session_factory

    if _sqlite_engine is not None:
        await _sqlite_engine.dispose()
        _sqlite_engine = None
        _sqlite_session_factory = None
    else:
        from safe_escrow.infrastructure.database.engine import close_db

        await close_db()


# ---------------------------------------------------------------------------
# Transports
# ---------------------------------------------------------------------------
class DownSmsTransport:
    """A gateway that refuses every message."""

    async def send(self, phone: str, body: str) -> None:
        raise ConnectionError("SMS gateway unreachable")


# ---------------------------------------------------------------------------
# Marketplace seed + operator
# ---------------------------------------------------------------------------
@dataclass
class Marketplace:
    """One product changing hands between three members."""

    admin: User = field(
        default_factory=lambda: User(id=uuid.uuid4(), name="Operator", role="ADMIN")
    )
    buyer: User = field(
        default_factory=lambda: User(id=uuid.uuid4(), name="Buyer Kim", phone="010-1111-1111")
    )
    seller: User = field(
        default_factory=lambda: User(id=uuid.uuid4(), name="Seller Lee", phone="010-2222-2222")
    )
    reseller: User = field(
        default_factory=lambda: User(
            id=uuid.uuid4(), name="Reseller Park", phone="010-3333-3333"
        )
    )

    async def seed(self, session: Any) -> None:
        session.add_all([self.admin, self.buyer, self.seller, self.reseller])
        await session.commit()

    async def open_escrow(self, session: Any, title: str, amount: Decimal) -> uuid.UUID:
        """List a product, open its transaction and put the deposit under escrow."""
        product = Product(id=uuid.uuid4(), title=title)
        tx = Transaction(
            id=uuid.uuid4(),
            product_id=product.id,
            buyer_id=self.buyer.id,
            seller_id=self.seller.id,
            reseller_id=self.reseller.id,
        )
        escrow = SafeTransaction(id=uuid.uuid4(), transaction_id=tx.id, deposit_amount=amount)
        session.add(product)
        session.add(tx)
        await session.flush()
        session.add(escrow)
        await session.commit()
        logger.info("🔵 MARKET: Escrow opened", safe_transaction_id=str(escrow.id), title=title)
        return escrow.id


@dataclass
class OperatorBot:
    """Simulated admin working the dashboard."""

    identity: AdminIdentity

    def workflow(
        self, session: Any, transport: Any = None, strict: bool = False
    ) -> EscrowWorkflow:
        bus = EventBus()
        NotificationDispatcher(session, transport or LoggingSmsTransport()).register(bus)
        return EscrowWorkflow(session, event_bus=bus, enforce_step_order=strict)


# ---------------------------------------------------------------------------
# Print helpers
# ---------------------------------------------------------------------------
def banner(text: str) -> None:
    """Print a prominent banner."""
    width = 70
    print("\n" + "=" * width)
    print(f"  {text}")
    print("=" * width + "\n")


def section(text: str) -> None:
    """Print a section header."""
    print(f"\n--- {text} ---\n")


def print_record(record: Any) -> None:
    view = derive_view(record)
    print(f"  Step: {view.current_step.value} ({view.progress:.0%})")
    print(f"  Settlement: {record.settlement_status.value}")
    if record.tracking_number:
        print(f"  Tracking: {record.tracking_number} ({record.courier or '-'})")
    print(f"  Notes: {record.admin_notes}")


async def print_sms_trail(session: Any, safe_transaction_id: uuid.UUID) -> None:
    """Print every notification attempt for a record."""
    logs = await SmsLogRepository(session).get_by_safe_transaction(safe_transaction_id)
    print("\n  📨 SMS Trail:")
    for i, log in enumerate(logs, 1):
        icon = "✅" if log.is_sent else "❌"
        print(f"    {i}. {icon} [{log.message_type}] -> {log.phone_number}")
    print()


async def print_dashboard(session: Any) -> None:
    queries = QueryService(session)
    stats = await queries.get_stats()
    print("  📊 Dashboard:")
    print(f"    total={stats.total_count} waiting_deposit={stats.waiting_deposit_count} "
          f"waiting_shipping={stats.waiting_shipping_count} shipping={stats.shipping_count} "
          f"waiting_settlement={stats.waiting_settlement_count} completed={stats.completed_count}")
    for item in await queries.get_list(limit=10):
        title = item.record.parties.product_title
        print(f"    - {title}: {item.view.current_step.value} ({item.view.progress:.0%})")


# ===========================================================================
# Scenario 1: Happy Path
# ===========================================================================
async def scenario_1_happy_path(market: Marketplace, operator: OperatorBot) -> None:
    """Deposit, shipping and settlement in the natural order."""
    banner("SCENARIO 1: Happy Path")

    session = await get_session()
    async with session:
        escrow_id = await market.open_escrow(session, "Vintage Camera", Decimal("1200000"))
        workflow = operator.workflow(session)

        section("Step 1: Operator confirms the deposit")
        print_record(await workflow.confirm_deposit(escrow_id, operator.identity))

        section("Step 2: Operator confirms shipping")
        print_record(
            await workflow.confirm_shipping(
                escrow_id, operator.identity, tracking_number="1234567890", courier="CJ"
            )
        )

        section("Step 3: Operator processes the settlement")
        print_record(await workflow.process_settlement(escrow_id, operator.identity))

        await print_sms_trail(session, escrow_id)


# ===========================================================================
# Scenario 2: Out of Order
# ===========================================================================
async def scenario_2_out_of_order(market: Marketplace, operator: OperatorBot) -> None:
    """Shipping before the deposit: allowed by default, rejected in strict mode."""
    banner("SCENARIO 2: Out of Order")

    session = await get_session()
    async with session:
        section("Step 1: Strict mode rejects shipping before the deposit")
        strict_id = await market.open_escrow(session, "Leather Bag", Decimal("350000"))
        try:
            await operator.workflow(session, strict=True).confirm_shipping(
                strict_id, operator.identity
            )
        except InvalidStateTransitionError as exc:
            print(f"  ❌ Rejected: {exc.message}")

        section("Step 2: Default mode lets it through")
        loose_id = await market.open_escrow(session, "Road Bike", Decimal("890000"))
        print_record(
            await operator.workflow(session).confirm_shipping(loose_id, operator.identity)
        )


# ===========================================================================
# Scenario 3: SMS Gateway Down
# ===========================================================================
async def scenario_3_gateway_down(market: Marketplace, operator: OperatorBot) -> None:
    """Every send fails; the deposit confirmation still commits."""
    banner("SCENARIO 3: SMS Gateway Down")

    session = await get_session()
    async with session:
        escrow_id = await market.open_escrow(session, "Desk Lamp", Decimal("45000"))
        workflow = operator.workflow(session, transport=DownSmsTransport())

        section("Step 1: Operator confirms the deposit")
        print_record(await workflow.confirm_deposit(escrow_id, operator.identity))

        await print_sms_trail(session, escrow_id)


# ===========================================================================
# Main
# ===========================================================================
SCENARIOS = {
    1: scenario_1_happy_path,
    2: scenario_2_out_of_order,
    3: scenario_3_gateway_down,
}


async def run(scenarios: list[int], use_sqlite: bool = False) -> None:
    """Seed the marketplace and run the given scenarios in order."""
    await init_database(use_sqlite=use_sqlite)

    try:
        market = Marketplace()
        session = await get_session()
        async with session:
            await market.seed(session)
        operator = OperatorBot(
            identity=AdminIdentity(user_id=market.admin.id, role="ADMIN", name="Operator")
        )

        print("\n" + "🚀" * 35)
        print("  SAFE ESCROW ADMIN: SIMULATION")
        print(f"  Database: {'SQLite (in-memory)' if use_sqlite else 'PostgreSQL'}")
        print("🚀" * 35 + "\n")

        for num in scenarios:
            await SCENARIOS[num](market, operator)

        session = await get_session()
        async with session:
            await print_dashboard(session)

        print("\n" + "=" * 70)
        print("  ✅ SIMULATION COMPLETED")
        print("=" * 70 + "\n")
    finally:
        await shutdown_database()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Safe Escrow Admin Simulation")
    parser.add_argument(
        "--scenario",
        type=int,
        default=0,
        help="Run a specific scenario (1, 2, or 3). Default: run all.",
    )
    parser.add_argument(
        "--sqlite",
        action="store_true",
        help="Use SQLite in-memory instead of PostgreSQL.",
    )
    args = parser.parse_args()

    if args.scenario and args.scenario not in SCENARIOS:
        parser.error(f"Unknown scenario {args.scenario}. Available: 1, 2, 3")
    selected = [args.scenario] if args.scenario else sorted(SCENARIOS)
    asyncio.run(run(selected, use_sqlite=args.sqlite))
