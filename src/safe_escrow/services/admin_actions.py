"""Multiplexed admin entry point.

One call carries an ``action`` discriminator plus that action's parameters:

    confirm_deposit     safeTransactionId           [adminNotes]
    confirm_shipping    safeTransactionId           [trackingNumber, courier]
    process_settlement  safeTransactionId           [adminNotes]
    update_notes        safeTransactionId, adminNotes
    get_stats           -
    get_list            -                           [status, limit, offset]

Every call is authorized first; a refused caller causes no reads of escrow
data and no writes. Store failures surface as a per-action message that
never includes store error detail.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING

from safe_escrow.config import Settings, get_settings
from safe_escrow.domain.enums import AdminAction
from safe_escrow.domain.exceptions import DependencyFailureError, ValidationFailureError
from safe_escrow.logging_config import get_logger
from safe_escrow.schemas.safe_transaction import (
    ActionResultResponse,
    EscrowStatsResponse,
    SafeTransactionListResponse,
    SafeTransactionView,
)
from safe_escrow.services.auth_service import AuthorizationGate
from safe_escrow.services.escrow_workflow import EscrowWorkflow
from safe_escrow.services.query_service import QueryService

if TYPE_CHECKING:
    from pydantic import BaseModel
    from sqlalchemy.ext.asyncio import AsyncSession

    from safe_escrow.domain.models import AdminIdentity
    from safe_escrow.schemas.safe_transaction import AdminActionRequest
    from safe_escrow.services.event_bus import EventBus

logger = get_logger(__name__)


@dataclass(frozen=True)
class ActionMessages:
    success: str | None
    failure: str


ACTION_MESSAGES: dict[AdminAction, ActionMessages] = {
    AdminAction.CONFIRM_DEPOSIT: ActionMessages(
        "Deposit confirmed.", "Deposit confirmation failed."
    ),
    AdminAction.CONFIRM_SHIPPING: ActionMessages(
        "Shipping confirmed.", "Shipping confirmation failed."
    ),
    AdminAction.PROCESS_SETTLEMENT: ActionMessages(
        "Settlement completed.", "Settlement processing failed."
    ),
    AdminAction.UPDATE_NOTES: ActionMessages("Notes updated.", "Notes update failed."),
    AdminAction.GET_STATS: ActionMessages(None, "Failed to load statistics."),
    AdminAction.GET_LIST: ActionMessages(None, "Failed to load safe transactions."),
}


def parse_action(raw: str | None) -> AdminAction:
    try:
        return AdminAction(raw)
    except ValueError as exc:
        raise ValidationFailureError("Invalid action") from exc


def parse_safe_transaction_id(raw: str | None) -> uuid.UUID:
    if not raw:
        raise ValidationFailureError("safeTransactionId is required")
    try:
        return uuid.UUID(str(raw))
    except ValueError as exc:
        raise ValidationFailureError("safeTransactionId is not a valid ID") from exc


class AdminActionHandler:
    """Authorizes the caller and routes one action to the right service."""

    def __init__(
        self,
        session: AsyncSession,
        event_bus: EventBus | None = None,
        settings: Settings | None = None,
    ) -> None:
        settings = settings or get_settings()
        self._gate = AuthorizationGate(session, settings)
        self._workflow = EscrowWorkflow(
            session,
            event_bus=event_bus,
            enforce_step_order=settings.escrow_enforce_step_order,
        )
        self._queries = QueryService(
            session,
            default_limit=settings.list_default_limit,
            max_limit=settings.list_max_limit,
        )

    async def handle(self, token: str | None, request: AdminActionRequest) -> BaseModel:
        """Run ``request.action`` for the caller behind ``token``."""
        identity = await self._gate.authorize(token)
        action = parse_action(request.action)
        messages = ACTION_MESSAGES[action]

        try:
            if action is AdminAction.GET_STATS:
                stats = await self._queries.get_stats()
                return EscrowStatsResponse.from_stats(stats)
            if action is AdminAction.GET_LIST:
                items = await self._queries.get_list(
                    status=request.status,
                    limit=request.limit,
                    offset=request.offset,
                )
                return SafeTransactionListResponse(
                    data=[SafeTransactionView.from_item(item) for item in items]
                )
            await self._mutate(action, identity, request)
        except DependencyFailureError as exc:
            logger.error("admin.action_failed", action=action.value, admin_id=str(identity.user_id))
            raise DependencyFailureError(messages.failure) from exc

        logger.info("admin.action_completed", action=action.value, admin_id=str(identity.user_id))
        return ActionResultResponse(message=messages.success)

    async def _mutate(
        self,
        action: AdminAction,
        identity: AdminIdentity,
        request: AdminActionRequest,
    ) -> None:
        safe_transaction_id = parse_safe_transaction_id(request.safe_transaction_id)

        if action is AdminAction.CONFIRM_DEPOSIT:
            await self._workflow.confirm_deposit(
                safe_transaction_id, identity, admin_notes=request.admin_notes
            )
        elif action is AdminAction.CONFIRM_SHIPPING:
            await self._workflow.confirm_shipping(
                safe_transaction_id,
                identity,
                tracking_number=request.tracking_number,
                courier=request.courier,
            )
        elif action is AdminAction.PROCESS_SETTLEMENT:
            await self._workflow.process_settlement(
                safe_transaction_id, identity, admin_notes=request.admin_notes
            )
        elif action is AdminAction.UPDATE_NOTES:
            if request.admin_notes is None:
                raise ValidationFailureError("adminNotes is required")
            await self._workflow.update_notes(
                safe_transaction_id, identity, admin_notes=request.admin_notes
            )
