"""Tests for the multiplexed admin action handler."""

from __future__ import annotations

import uuid
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from safe_escrow.domain.enums import AdminAction
from safe_escrow.domain.events import DepositConfirmed
from safe_escrow.domain.exceptions import (
    DependencyFailureError,
    EscrowNotFoundError,
    ForbiddenError,
    UnauthenticatedError,
    ValidationFailureError,
)
from safe_escrow.schemas.safe_transaction import (
    ActionResultResponse,
    AdminActionRequest,
    EscrowStatsResponse,
    SafeTransactionListResponse,
)
from safe_escrow.services.admin_actions import ACTION_MESSAGES, AdminActionHandler
from safe_escrow.services.event_bus import EventBus


def request(action: str, **fields) -> AdminActionRequest:
    return AdminActionRequest(action=action, **fields)


class TestAuthorizationFirst:
    @pytest.mark.asyncio
    async def test_invalid_action_without_token_is_unauthenticated(
        self, session, settings
    ) -> None:
        handler = AdminActionHandler(session, settings=settings)
        with pytest.raises(UnauthenticatedError):
            await handler.handle(None, request("drop_tables"))

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "action",
        ["confirm_deposit", "confirm_shipping", "process_settlement", "update_notes"],
    )
    async def test_member_cannot_mutate(
        self,
        action,
        session,
        settings,
        marketplace,
        make_token,
        create_escrow,
        fetch_escrow,
        fetch_transaction,
    ) -> None:
        escrow_id = await create_escrow(admin_notes="untouched")
        before = await fetch_escrow(escrow_id)
        handler = AdminActionHandler(session, settings=settings)

        with pytest.raises(ForbiddenError):
            await handler.handle(
                make_token(marketplace.member_id),
                request(
                    action,
                    safe_transaction_id=str(escrow_id),
                    tracking_number="1234567890",
                    courier="CJ",
                    admin_notes="overwritten",
                ),
            )

        after = await fetch_escrow(escrow_id)
        assert after.deposit_confirmed is False
        assert after.shipping_confirmed is False
        assert after.tracking_number is None
        assert after.settlement_status == before.settlement_status
        assert after.admin_notes == "untouched"
        assert after.updated_at == before.updated_at
        transaction = await fetch_transaction(after.transaction_id)
        assert transaction.completed_at is None


class TestInputValidation:
    @pytest.mark.asyncio
    async def test_invalid_action(self, session, settings, admin_token) -> None:
        handler = AdminActionHandler(session, settings=settings)
        with pytest.raises(ValidationFailureError, match="Invalid action"):
            await handler.handle(admin_token, request("refund"))

    @pytest.mark.asyncio
    async def test_missing_id(self, session, settings, admin_token) -> None:
        handler = AdminActionHandler(session, settings=settings)
        with pytest.raises(ValidationFailureError, match="safeTransactionId is required"):
            await handler.handle(admin_token, request("confirm_deposit"))

    @pytest.mark.asyncio
    async def test_malformed_id(self, session, settings, admin_token) -> None:
        handler = AdminActionHandler(session, settings=settings)
        with pytest.raises(ValidationFailureError):
            await handler.handle(
                admin_token, request("confirm_shipping", safe_transaction_id="42")
            )

    @pytest.mark.asyncio
    async def test_update_notes_requires_notes(
        self, session, settings, admin_token, create_escrow
    ) -> None:
        escrow_id = await create_escrow()
        handler = AdminActionHandler(session, settings=settings)
        with pytest.raises(ValidationFailureError, match="adminNotes is required"):
            await handler.handle(
                admin_token, request("update_notes", safe_transaction_id=str(escrow_id))
            )

    @pytest.mark.asyncio
    async def test_unknown_record(self, session, settings, admin_token) -> None:
        handler = AdminActionHandler(session, settings=settings)
        with pytest.raises(EscrowNotFoundError):
            await handler.handle(
                admin_token,
                request("process_settlement", safe_transaction_id=str(uuid.uuid4())),
            )


class TestActions:
    @pytest.mark.asyncio
    async def test_confirm_deposit_message(
        self, session, settings, admin_token, create_escrow, fetch_escrow
    ) -> None:
        escrow_id = await create_escrow()
        handler = AdminActionHandler(session, settings=settings)

        result = await handler.handle(
            admin_token, request("confirm_deposit", safe_transaction_id=str(escrow_id))
        )

        assert isinstance(result, ActionResultResponse)
        assert result.success is True
        assert result.message == "Deposit confirmed."
        assert (await fetch_escrow(escrow_id)).deposit_confirmed is True

    @pytest.mark.asyncio
    async def test_update_notes(
        self, session, settings, admin_token, create_escrow, fetch_escrow
    ) -> None:
        escrow_id = await create_escrow()
        handler = AdminActionHandler(session, settings=settings)

        result = await handler.handle(
            admin_token,
            request("update_notes", safe_transaction_id=str(escrow_id), admin_notes="hold"),
        )

        assert result.message == "Notes updated."
        assert (await fetch_escrow(escrow_id)).admin_notes == "hold"

    @pytest.mark.asyncio
    async def test_get_stats(self, session, settings, admin_token, create_escrow) -> None:
        await create_escrow()
        handler = AdminActionHandler(session, settings=settings)

        result = await handler.handle(admin_token, request("get_stats"))

        assert isinstance(result, EscrowStatsResponse)
        assert result.model_dump(by_alias=True)["totalCount"] == 1

    @pytest.mark.asyncio
    async def test_get_list(self, session, settings, admin_token, create_escrow) -> None:
        escrow_id = await create_escrow(deposit_confirmed=True)
        handler = AdminActionHandler(session, settings=settings)

        result = await handler.handle(admin_token, request("get_list"))

        assert isinstance(result, SafeTransactionListResponse)
        row = result.data[0].model_dump(by_alias=True)
        assert row["id"] == escrow_id
        assert row["productTitle"] == "Vintage Camera"
        assert row["depositAmount"] == 1_200_000
        assert row["currentStep"] == "PreparingShipment"
        assert row["progress"] == 0.2

    @pytest.mark.asyncio
    async def test_failing_event_handler_does_not_fail_action(
        self, session, settings, admin_token, create_escrow, fetch_escrow
    ) -> None:
        escrow_id = await create_escrow()

        async def explode(event):
            raise RuntimeError("notification service down")

        bus = EventBus()
        bus.subscribe(DepositConfirmed, explode)
        handler = AdminActionHandler(session, event_bus=bus, settings=settings)

        result = await handler.handle(
            admin_token, request("confirm_deposit", safe_transaction_id=str(escrow_id))
        )

        assert result.success is True
        assert (await fetch_escrow(escrow_id)).deposit_confirmed is True


class TestStoreFailure:
    @pytest.mark.asyncio
    async def test_failure_message_hides_store_detail(
        self, session, settings, admin_token, create_escrow
    ) -> None:
        escrow_id = await create_escrow()
        handler = AdminActionHandler(session, settings=settings)
        broken = OperationalError("UPDATE safe_transactions", {}, Exception("disk I/O error"))

        with (
            patch.object(session, "commit", AsyncMock(side_effect=broken)),
            pytest.raises(DependencyFailureError) as exc_info,
        ):
            await handler.handle(
                admin_token, request("confirm_deposit", safe_transaction_id=str(escrow_id))
            )

        assert exc_info.value.message == ACTION_MESSAGES[AdminAction.CONFIRM_DEPOSIT].failure
        assert "disk" not in exc_info.value.message
