"""Notification dispatcher.

Listens for workflow events and texts the parties that need to act next:

    DepositConfirmed  -> seller ("please ship"), reseller if any ("commission scheduled")
    ShippingConfirmed -> buyer (tracking details, "confirm receipt")

Every attempt is written to sms_logs in its own commit, after the state
write it follows has already committed. Transport or log failures are
logged and swallowed; there is no retry.
"""

from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy.exc import SQLAlchemyError

from safe_escrow.domain.enums import MessageType
from safe_escrow.domain.events import DepositConfirmed, ShippingConfirmed
from safe_escrow.domain.models import DeliveryRecord
from safe_escrow.infrastructure.database.repositories import SmsLogRepository
from safe_escrow.logging_config import get_logger

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession

    from safe_escrow.domain.models import EscrowRecord, PartyInfo
    from safe_escrow.infrastructure.sms_transport import SmsTransport
    from safe_escrow.services.event_bus import EventBus

logger = get_logger(__name__)

UNTITLED_PRODUCT = "Untitled product"


def format_krw(amount: Decimal | int) -> str:
    """Render a won amount the way the storefront does, e.g. ``₩1,200,000``."""
    return f"₩{Decimal(amount):,.0f}"


def _title(record: EscrowRecord) -> str:
    return record.parties.product_title or UNTITLED_PRODUCT


def compose_deposit_message_for_seller(record: EscrowRecord) -> str:
    return (
        "Deposit confirmed.\n"
        f"Product: {_title(record)}\n"
        f"Amount: {format_krw(record.deposit_amount)}\n"
        "Please ship the item."
    )


def compose_deposit_message_for_reseller(record: EscrowRecord) -> str:
    return (
        "Deposit confirmed.\n"
        f"Product: {_title(record)}\n"
        "Your commission settlement is scheduled."
    )


def compose_shipping_message(record: EscrowRecord) -> str:
    message = f"Your item has shipped.\nProduct: {_title(record)}\n"
    if record.tracking_number:
        message += f"Tracking number: {record.tracking_number}\n"
    if record.courier:
        message += f"Courier: {record.courier}\n"
    message += "Please press complete after receiving the item."
    return message


class NotificationDispatcher:
    """Composes per-step messages and hands them to an SMS transport."""

    def __init__(self, session: AsyncSession, transport: SmsTransport) -> None:
        self._session = session
        self._transport = transport
        self._sms_logs = SmsLogRepository(session)

    def register(self, bus: EventBus) -> None:
        """Subscribe to the events that produce notifications."""
        bus.subscribe(DepositConfirmed, self.on_deposit_confirmed)
        bus.subscribe(ShippingConfirmed, self.on_shipping_confirmed)

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------

    async def on_deposit_confirmed(self, event: DepositConfirmed) -> list[DeliveryRecord]:
        record = event.record
        deliveries: list[DeliveryRecord] = []

        seller_phone = self._phone_of(record.parties.seller, "seller", record)
        if seller_phone:
            deliveries.append(
                await self.notify(
                    seller_phone,
                    MessageType.DEPOSIT_CONFIRMED,
                    compose_deposit_message_for_seller(record),
                    safe_transaction_id=record.id,
                )
            )

        if record.parties.reseller is not None:
            reseller_phone = self._phone_of(record.parties.reseller, "reseller", record)
            if reseller_phone:
                deliveries.append(
                    await self.notify(
                        reseller_phone,
                        MessageType.DEPOSIT_CONFIRMED,
                        compose_deposit_message_for_reseller(record),
                        safe_transaction_id=record.id,
                    )
                )
        return deliveries

    async def on_shipping_confirmed(self, event: ShippingConfirmed) -> list[DeliveryRecord]:
        record = event.record
        buyer_phone = self._phone_of(record.parties.buyer, "buyer", record)
        if not buyer_phone:
            return []
        return [
            await self.notify(
                buyer_phone,
                MessageType.SHIPPING_STARTED,
                compose_shipping_message(record),
                safe_transaction_id=record.id,
            )
        ]

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def notify(
        self,
        recipient_phone: str,
        message_type: MessageType,
        message_body: str,
        safe_transaction_id: uuid.UUID | None = None,
    ) -> DeliveryRecord:
        """Send one message and log the attempt. Never raises on transport failure."""
        attempted_at = datetime.now(UTC)
        error: str | None = None
        try:
            await self._transport.send(recipient_phone, message_body)
            sent = True
        except Exception as exc:
            sent = False
            error = str(exc) or type(exc).__name__
            logger.warning(
                "notification.transport_failed",
                message_type=message_type.value,
                safe_transaction_id=str(safe_transaction_id) if safe_transaction_id else None,
                error=error,
            )

        await self._write_log(
            recipient_phone,
            message_type,
            message_body,
            sent=sent,
            attempted_at=attempted_at,
            safe_transaction_id=safe_transaction_id,
        )

        logger.info(
            "notification.dispatched",
            message_type=message_type.value,
            sent=sent,
            safe_transaction_id=str(safe_transaction_id) if safe_transaction_id else None,
        )
        return DeliveryRecord(
            recipient_phone=recipient_phone,
            message_type=message_type,
            body=message_body,
            sent=sent,
            attempted_at=attempted_at,
            error=error,
        )

    async def _write_log(
        self,
        phone: str,
        message_type: MessageType,
        body: str,
        sent: bool,
        attempted_at: datetime,
        safe_transaction_id: uuid.UUID | None,
    ) -> None:
        try:
            await self._sms_logs.record(
                phone_number=phone,
                message_type=message_type,
                message_content=body,
                is_sent=sent,
                sent_at=attempted_at if sent else None,
                safe_transaction_id=safe_transaction_id,
            )
            await self._session.commit()
        except SQLAlchemyError as exc:
            await self._session.rollback()
            logger.error(
                "notification.log_write_failed",
                message_type=message_type.value,
                error=str(exc),
            )

    @staticmethod
    def _phone_of(party: PartyInfo | None, role: str, record: EscrowRecord) -> str | None:
        if party is None or not party.phone:
            logger.info(
                "notification.recipient_skipped",
                role=role,
                reason="no phone number",
                safe_transaction_id=str(record.id),
            )
            return None
        return party.phone
