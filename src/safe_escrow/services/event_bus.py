"""In-process event bus for workflow side effects.

The workflow publishes after its state write has committed. Handlers run in
subscription order; a handler that raises is logged and skipped, so side
effects can never fail or undo a transition.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Awaitable, Callable
from typing import Any

from safe_escrow.domain.events import EscrowEvent
from safe_escrow.logging_config import get_logger

logger = get_logger(__name__)

EventHandler = Callable[[Any], Awaitable[Any]]


class EventBus:
    """Maps event classes to async handlers."""

    def __init__(self) -> None:
        self._handlers: dict[type[EscrowEvent], list[EventHandler]] = defaultdict(list)

    def subscribe(self, event_type: type[EscrowEvent], handler: EventHandler) -> None:
        self._handlers[event_type].append(handler)

    def handlers_for(self, event: EscrowEvent) -> list[EventHandler]:
        """Handlers registered for the event's class or any of its bases."""
        matched: list[EventHandler] = []
        for event_type, handlers in self._handlers.items():
            if isinstance(event, event_type):
                matched.extend(handlers)
        return matched

    async def publish(self, event: EscrowEvent) -> None:
        event_name = type(event).__name__
        for handler in self.handlers_for(event):
            try:
                await handler(event)
            except Exception:
                logger.exception(
                    "event.handler_failed",
                    event_type=event_name,
                    handler=getattr(handler, "__qualname__", repr(handler)),
                    safe_transaction_id=str(event.safe_transaction_id),
                )
