"""Tests for EscrowWorkflow transitions against an in-memory store."""

from __future__ import annotations

import uuid

import pytest

from safe_escrow.domain.enums import EscrowStep, SettlementStatus, TransactionStatus
from safe_escrow.domain.events import DepositConfirmed, SettlementProcessed, ShippingConfirmed
from safe_escrow.domain.exceptions import (
    EscrowNotFoundError,
    InvalidStateTransitionError,
    TransactionNotFoundError,
)
from safe_escrow.domain.state_machine import derive_view
from safe_escrow.infrastructure.database.mapping import to_escrow_record
from safe_escrow.infrastructure.database.orm_models import SafeTransaction
from safe_escrow.services.escrow_workflow import (
    DEFAULT_DEPOSIT_NOTE,
    DEFAULT_SETTLEMENT_NOTE,
    EscrowWorkflow,
    compose_shipping_note,
)
from safe_escrow.services.event_bus import EventBus


async def mark_externally(session_factory, safe_transaction_id: uuid.UUID, **fields) -> None:
    """Write flags the admin service never sets, through a separate session."""
    async with session_factory() as s:
        row = await s.get(SafeTransaction, safe_transaction_id)
        for name, value in fields.items():
            setattr(row, name, value)
        await s.commit()


class TestComposeShippingNote:
    def test_with_tracking_and_courier(self) -> None:
        assert compose_shipping_note("1234567890", "CJ") == (
            "shipping started - tracking: 1234567890 (CJ)"
        )

    def test_without_details(self) -> None:
        assert compose_shipping_note(None, None) == "shipping started"

    def test_courier_only(self) -> None:
        assert compose_shipping_note(None, "CJ") == "shipping started (CJ)"


class TestConfirmDeposit:
    @pytest.mark.asyncio
    async def test_sets_flag_timestamp_and_default_note(
        self, session, create_escrow, fetch_escrow, admin_identity
    ) -> None:
        escrow_id = await create_escrow()
        workflow = EscrowWorkflow(session)

        record = await workflow.confirm_deposit(escrow_id, admin_identity)

        assert record.deposit_confirmed is True
        assert record.deposit_confirmed_at is not None
        assert record.deposit_confirmed_at >= record.created_at
        assert record.admin_notes == DEFAULT_DEPOSIT_NOTE

        stored = to_escrow_record(await fetch_escrow(escrow_id))
        assert stored.deposit_confirmed is True
        assert stored.updated_at >= stored.created_at

    @pytest.mark.asyncio
    async def test_custom_note_is_kept(self, session, create_escrow, admin_identity) -> None:
        escrow_id = await create_escrow()
        record = await EscrowWorkflow(session).confirm_deposit(
            escrow_id, admin_identity, admin_notes="paid by wire"
        )
        assert record.admin_notes == "paid by wire"

    @pytest.mark.asyncio
    async def test_repeat_keeps_first_timestamp(
        self, session, create_escrow, admin_identity
    ) -> None:
        escrow_id = await create_escrow()
        workflow = EscrowWorkflow(session)

        first = await workflow.confirm_deposit(escrow_id, admin_identity)
        second = await workflow.confirm_deposit(escrow_id, admin_identity, admin_notes="again")

        assert second.deposit_confirmed_at == first.deposit_confirmed_at
        assert second.admin_notes == "again"

    @pytest.mark.asyncio
    async def test_unknown_id(self, session, marketplace, admin_identity) -> None:
        with pytest.raises(EscrowNotFoundError):
            await EscrowWorkflow(session).confirm_deposit(uuid.uuid4(), admin_identity)

    @pytest.mark.asyncio
    async def test_event_carries_parties(self, session, create_escrow, admin_identity) -> None:
        escrow_id = await create_escrow()
        seen = []

        async def capture(event):
            seen.append(event)

        bus = EventBus()
        bus.subscribe(DepositConfirmed, capture)
        await EscrowWorkflow(session, event_bus=bus).confirm_deposit(escrow_id, admin_identity)

        assert len(seen) == 1
        parties = seen[0].record.parties
        assert parties.product_title == "Vintage Camera"
        assert parties.seller.phone == "010-2222-2222"
        assert parties.reseller is not None


class TestConfirmShipping:
    @pytest.mark.asyncio
    async def test_records_tracking_and_note(
        self, session, create_escrow, admin_identity
    ) -> None:
        escrow_id = await create_escrow(deposit_confirmed=True)

        record = await EscrowWorkflow(session).confirm_shipping(
            escrow_id, admin_identity, tracking_number="1234567890", courier="CJ"
        )

        assert record.shipping_confirmed is True
        assert record.shipping_confirmed_at is not None
        assert record.tracking_number == "1234567890"
        assert record.courier == "CJ"
        assert record.admin_notes == "shipping started - tracking: 1234567890 (CJ)"

    @pytest.mark.asyncio
    async def test_allowed_before_deposit(self, session, create_escrow, admin_identity) -> None:
        escrow_id = await create_escrow()

        record = await EscrowWorkflow(session).confirm_shipping(escrow_id, admin_identity)

        assert record.deposit_confirmed is False
        assert derive_view(record).current_step == EscrowStep.IN_TRANSIT

    @pytest.mark.asyncio
    async def test_repeat_keeps_first_shipment_details(
        self, session, create_escrow, admin_identity
    ) -> None:
        escrow_id = await create_escrow(deposit_confirmed=True)
        workflow = EscrowWorkflow(session)

        first = await workflow.confirm_shipping(
            escrow_id, admin_identity, tracking_number="111", courier="CJ"
        )
        second = await workflow.confirm_shipping(
            escrow_id, admin_identity, tracking_number="222", courier="Hanjin"
        )

        assert second.tracking_number == "111"
        assert second.courier == "CJ"
        assert second.shipping_confirmed_at == first.shipping_confirmed_at
        assert second.admin_notes == "shipping started - tracking: 111 (CJ)"


class TestProcessSettlement:
    @pytest.mark.asyncio
    async def test_settles_and_completes_transaction(
        self, session, create_escrow, fetch_escrow, fetch_transaction, admin_identity
    ) -> None:
        escrow_id = await create_escrow(
            deposit_confirmed=True, shipping_confirmed=True, delivery_confirmed=True
        )

        record = await EscrowWorkflow(session).process_settlement(escrow_id, admin_identity)

        assert record.settlement_status == SettlementStatus.SETTLED
        assert record.admin_notes == DEFAULT_SETTLEMENT_NOTE
        assert derive_view(record).progress == 1.0

        stored = await fetch_escrow(escrow_id)
        transaction = await fetch_transaction(stored.transaction_id)
        assert transaction.status == TransactionStatus.COMPLETED
        assert transaction.completed_at is not None

    @pytest.mark.asyncio
    async def test_settling_twice_stays_settled(
        self, session, create_escrow, fetch_transaction, admin_identity
    ) -> None:
        escrow_id = await create_escrow()
        events = []

        async def capture(event):
            events.append(event)

        bus = EventBus()
        bus.subscribe(SettlementProcessed, capture)
        workflow = EscrowWorkflow(session, event_bus=bus)

        await workflow.process_settlement(escrow_id, admin_identity)
        record = await workflow.process_settlement(escrow_id, admin_identity)

        assert record.settlement_status == SettlementStatus.SETTLED
        assert [e.repeated for e in events] == [False, True]
        transaction = await fetch_transaction(record.transaction_id)
        assert transaction.status == TransactionStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_missing_transaction(
        self, session, create_escrow, fetch_escrow, admin_identity
    ) -> None:
        escrow_id = await create_escrow(orphan=True)

        with pytest.raises(TransactionNotFoundError):
            await EscrowWorkflow(session).process_settlement(escrow_id, admin_identity)

        stored = await fetch_escrow(escrow_id)
        assert stored.settlement_status == SettlementStatus.WAITING


class TestUpdateNotes:
    @pytest.mark.asyncio
    async def test_overwrites_notes_only(self, session, create_escrow, admin_identity) -> None:
        escrow_id = await create_escrow()

        record = await EscrowWorkflow(session).update_notes(
            escrow_id, admin_identity, admin_notes="buyer called"
        )

        assert record.admin_notes == "buyer called"
        assert record.deposit_confirmed is False
        assert record.settlement_status == SettlementStatus.WAITING

    @pytest.mark.asyncio
    async def test_unknown_id(self, session, marketplace, admin_identity) -> None:
        with pytest.raises(EscrowNotFoundError):
            await EscrowWorkflow(session).update_notes(uuid.uuid4(), admin_identity, "x")


class TestStrictOrdering:
    @pytest.mark.asyncio
    async def test_shipping_before_deposit_rejected(
        self, session, create_escrow, fetch_escrow, admin_identity
    ) -> None:
        escrow_id = await create_escrow()
        workflow = EscrowWorkflow(session, enforce_step_order=True)

        with pytest.raises(InvalidStateTransitionError):
            await workflow.confirm_shipping(escrow_id, admin_identity)

        stored = await fetch_escrow(escrow_id)
        assert stored.shipping_confirmed is False

    @pytest.mark.asyncio
    async def test_natural_order_allowed(self, session, create_escrow, admin_identity) -> None:
        escrow_id = await create_escrow()
        workflow = EscrowWorkflow(session, enforce_step_order=True)

        await workflow.confirm_deposit(escrow_id, admin_identity)
        record = await workflow.confirm_shipping(escrow_id, admin_identity)

        assert derive_view(record).current_step == EscrowStep.IN_TRANSIT


class TestEndToEnd:
    """Deposit -> shipping -> delivery -> ready -> settlement, watching progress climb."""

    @pytest.mark.asyncio
    async def test_progress_never_decreases(
        self,
        session,
        session_factory,
        create_escrow,
        fetch_escrow,
        fetch_transaction,
        admin_identity,
    ) -> None:
        escrow_id = await create_escrow()
        shipped = []

        async def capture(event):
            shipped.append(event)

        bus = EventBus()
        bus.subscribe(ShippingConfirmed, capture)
        workflow = EscrowWorkflow(session, event_bus=bus)

        progress = []
        record = await workflow.confirm_deposit(escrow_id, admin_identity)
        progress.append(derive_view(record).progress)
        record = await workflow.confirm_shipping(
            escrow_id, admin_identity, tracking_number="1234567890", courier="CJ"
        )
        progress.append(derive_view(record).progress)

        # Delivery and settlement readiness are set by other parts of the marketplace
        await mark_externally(session_factory, escrow_id, delivery_confirmed=True)
        progress.append(derive_view(to_escrow_record(await fetch_escrow(escrow_id))).progress)
        await mark_externally(
            session_factory, escrow_id, settlement_status=SettlementStatus.READY_FOR_SETTLEMENT
        )
        progress.append(derive_view(to_escrow_record(await fetch_escrow(escrow_id))).progress)
        session.expire_all()

        record = await workflow.process_settlement(escrow_id, admin_identity)
        progress.append(derive_view(record).progress)

        assert progress == [0.2, 0.4, 0.6, 0.8, 1.0]
        assert record.delivery_confirmed is True
        assert progress == sorted(progress)
        assert shipped[0].record.tracking_number == "1234567890"
        transaction = await fetch_transaction(record.transaction_id)
        assert transaction.status == TransactionStatus.COMPLETED
