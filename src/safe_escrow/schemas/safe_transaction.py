"""Pydantic schemas for the safe transaction admin API.

Wire names are camelCase (``safeTransactionId``, ``adminNotes``) to match the
admin dashboard client; Python attributes stay snake_case.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from safe_escrow.domain.models import EscrowListItem, EscrowStats

_CAMEL = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------


class AdminActionRequest(BaseModel):
    """Body of the multiplexed admin entry point.

    ``action`` stays a plain string so an unknown value is reported as
    "Invalid action" instead of a schema error.
    """

    model_config = _CAMEL

    action: str = Field(
        ...,
        description="confirm_deposit | confirm_shipping | process_settlement | "
        "update_notes | get_stats | get_list",
        examples=["confirm_deposit"],
    )
    safe_transaction_id: str | None = Field(default=None, description="Escrow record ID")
    admin_notes: str | None = Field(default=None, max_length=2000)
    tracking_number: str | None = Field(default=None, max_length=50)
    courier: str | None = Field(default=None, max_length=50)
    status: str | None = Field(
        default=None,
        description="get_list filter: WAITING | READY_FOR_SETTLEMENT | SETTLED",
    )
    limit: int | None = Field(default=None, description="get_list page size")
    offset: int | None = Field(default=None, description="get_list offset")


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------


class ActionResultResponse(BaseModel):
    """Informational result of a mutation; callers re-query to see new state."""

    success: bool = True
    message: str


class EscrowStatsResponse(BaseModel):
    """Flat dashboard counters."""

    model_config = _CAMEL

    total_count: int
    waiting_deposit_count: int
    waiting_shipping_count: int
    shipping_count: int
    waiting_settlement_count: int
    completed_count: int

    @classmethod
    def from_stats(cls, stats: EscrowStats) -> EscrowStatsResponse:
        return cls(
            total_count=stats.total_count,
            waiting_deposit_count=stats.waiting_deposit_count,
            waiting_shipping_count=stats.waiting_shipping_count,
            shipping_count=stats.shipping_count,
            waiting_settlement_count=stats.waiting_settlement_count,
            completed_count=stats.completed_count,
        )


class SafeTransactionView(BaseModel):
    """One dashboard row: the record, its parties and its derived progress."""

    model_config = _CAMEL

    id: uuid.UUID
    transaction_id: uuid.UUID
    product_title: str
    buyer_name: str
    buyer_phone: str
    seller_name: str
    seller_phone: str
    reseller_name: str | None = None
    deposit_amount: int
    deposit_confirmed: bool
    deposit_confirmed_at: datetime | None
    shipping_confirmed: bool
    shipping_confirmed_at: datetime | None
    tracking_number: str | None
    courier: str | None
    delivery_confirmed: bool
    settlement_status: str
    current_step: str
    progress: float
    admin_notes: str | None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_item(cls, item: EscrowListItem) -> SafeTransactionView:
        record, parties = item.record, item.record.parties
        buyer, seller, reseller = parties.buyer, parties.seller, parties.reseller
        return cls(
            id=record.id,
            transaction_id=record.transaction_id,
            product_title=parties.product_title or "Untitled product",
            buyer_name=(buyer.name if buyer else None) or "Buyer",
            buyer_phone=(buyer.phone if buyer else None) or "",
            seller_name=(seller.name if seller else None) or "Seller",
            seller_phone=(seller.phone if seller else None) or "",
            reseller_name=reseller.name if reseller else None,
            deposit_amount=int(record.deposit_amount),
            deposit_confirmed=record.deposit_confirmed,
            deposit_confirmed_at=record.deposit_confirmed_at,
            shipping_confirmed=record.shipping_confirmed,
            shipping_confirmed_at=record.shipping_confirmed_at,
            tracking_number=record.tracking_number,
            courier=record.courier,
            delivery_confirmed=record.delivery_confirmed,
            settlement_status=record.settlement_status.value,
            current_step=item.view.current_step.value,
            progress=item.view.progress,
            admin_notes=record.admin_notes,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )


class SafeTransactionListResponse(BaseModel):
    """get_list result; empty when nothing matches."""

    data: list[SafeTransactionView] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    """Body of every failed call."""

    error: str


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    version: str = "0.1.0"
    database: str = "unknown"
