"""FastAPI dependency injection providers.

Used with Depends() in route handlers to build the per-request object graph:
session -> event bus (with the notification dispatcher subscribed) -> handler.
"""

from __future__ import annotations

from functools import lru_cache
from typing import TYPE_CHECKING

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: TC002 - resolved by FastAPI at runtime

from safe_escrow.config import Settings, get_settings
from safe_escrow.infrastructure.database.engine import get_async_session
from safe_escrow.infrastructure.sms_transport import SmsTransport, build_sms_transport
from safe_escrow.services.admin_actions import AdminActionHandler
from safe_escrow.services.event_bus import EventBus
from safe_escrow.services.notification_service import NotificationDispatcher

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session for a request."""
    async for session in get_async_session():
        yield session


def get_app_settings() -> Settings:
    """Provide the application settings."""
    return get_settings()


@lru_cache(maxsize=1)
def get_sms_transport() -> SmsTransport:
    """Provide the process-wide SMS transport."""
    return build_sms_transport(get_settings())


def get_event_bus(
    session: AsyncSession = Depends(get_db_session),
    transport: SmsTransport = Depends(get_sms_transport),
) -> EventBus:
    """Provide an event bus with notification handlers subscribed."""
    bus = EventBus()
    NotificationDispatcher(session, transport).register(bus)
    return bus


def get_admin_handler(
    session: AsyncSession = Depends(get_db_session),
    event_bus: EventBus = Depends(get_event_bus),
    settings: Settings = Depends(get_app_settings),
) -> AdminActionHandler:
    """Provide the admin action handler bound to the current session."""
    return AdminActionHandler(session, event_bus=event_bus, settings=settings)
