"""Application services: use case orchestration."""

from safe_escrow.services.admin_actions import AdminActionHandler
from safe_escrow.services.auth_service import AuthorizationGate
from safe_escrow.services.escrow_workflow import EscrowWorkflow
from safe_escrow.services.event_bus import EventBus
from safe_escrow.services.notification_service import NotificationDispatcher
from safe_escrow.services.query_service import QueryService

__all__ = [
    "AdminActionHandler",
    "AuthorizationGate",
    "EscrowWorkflow",
    "EventBus",
    "NotificationDispatcher",
    "QueryService",
]
