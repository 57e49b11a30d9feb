"""Pydantic API schemas."""

from safe_escrow.schemas.safe_transaction import (
    ActionResultResponse,
    AdminActionRequest,
    ErrorResponse,
    EscrowStatsResponse,
    HealthResponse,
    SafeTransactionListResponse,
    SafeTransactionView,
)

__all__ = [
    "ActionResultResponse",
    "AdminActionRequest",
    "ErrorResponse",
    "EscrowStatsResponse",
    "HealthResponse",
    "SafeTransactionListResponse",
    "SafeTransactionView",
]
