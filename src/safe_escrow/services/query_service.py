"""Read side for the operator dashboard: stats and paginated listing."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy.exc import SQLAlchemyError

from safe_escrow.domain.enums import SettlementStatus
from safe_escrow.domain.exceptions import DependencyFailureError, ValidationFailureError
from safe_escrow.domain.models import EscrowListItem, EscrowStats
from safe_escrow.domain.state_machine import derive_view
from safe_escrow.infrastructure.database.mapping import to_escrow_record
from safe_escrow.infrastructure.database.orm_models import SafeTransaction
from safe_escrow.infrastructure.database.repositories import SafeTransactionRepository
from safe_escrow.logging_config import get_logger

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

DEFAULT_LIMIT = 50
MAX_LIMIT = 200


def parse_status_filter(status: str | None) -> SettlementStatus | None:
    """Turn an optional raw status into a SettlementStatus, rejecting unknown values."""
    if status is None or status == "":
        return None
    try:
        return SettlementStatus(status)
    except ValueError as exc:
        valid = ", ".join(s.value for s in SettlementStatus)
        raise ValidationFailureError(
            f"Unknown settlement status '{status}'. Valid values: {valid}"
        ) from exc


class QueryService:
    """Aggregate counts and newest-first listing of escrow records."""

    def __init__(
        self,
        session: AsyncSession,
        default_limit: int = DEFAULT_LIMIT,
        max_limit: int = MAX_LIMIT,
    ) -> None:
        self._escrows = SafeTransactionRepository(session)
        self._default_limit = default_limit
        self._max_limit = max_limit

    async def get_stats(self) -> EscrowStats:
        """Count records per dashboard bucket.

        Each bucket is its own count over the full table, so a record may fall
        in none of them (delivered but not yet ready for settlement).
        """
        st = SafeTransaction
        try:
            stats = EscrowStats(
                total_count=await self._escrows.count(),
                waiting_deposit_count=await self._escrows.count(st.deposit_confirmed.is_(False)),
                waiting_shipping_count=await self._escrows.count(
                    st.deposit_confirmed.is_(True),
                    st.shipping_confirmed.is_(False),
                ),
                shipping_count=await self._escrows.count(
                    st.shipping_confirmed.is_(True),
                    st.delivery_confirmed.is_(False),
                ),
                waiting_settlement_count=await self._escrows.count(
                    st.settlement_status == SettlementStatus.WAITING.value
                ),
                completed_count=await self._escrows.count(
                    st.settlement_status == SettlementStatus.SETTLED.value
                ),
            )
        except SQLAlchemyError as exc:
            logger.error("query.stats_failed", error=str(exc))
            raise DependencyFailureError() from exc

        logger.debug("query.stats_served", total=stats.total_count)
        return stats

    async def get_list(
        self,
        status: SettlementStatus | str | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[EscrowListItem]:
        """Newest-first page of records, each with its derived step and progress."""
        status_filter = parse_status_filter(status)
        limit = self._default_limit if limit is None else limit
        offset = 0 if offset is None else offset
        if not 1 <= limit <= self._max_limit:
            raise ValidationFailureError(f"limit must be between 1 and {self._max_limit}")
        if offset < 0:
            raise ValidationFailureError("offset must not be negative")

        try:
            rows = await self._escrows.list_page(status_filter, limit=limit, offset=offset)
        except SQLAlchemyError as exc:
            logger.error("query.list_failed", error=str(exc))
            raise DependencyFailureError() from exc

        items = []
        for row in rows:
            record = to_escrow_record(row)
            items.append(EscrowListItem(record=record, view=derive_view(record)))

        logger.debug(
            "query.list_served",
            status=status_filter.value if status_filter else None,
            limit=limit,
            offset=offset,
            returned=len(items),
        )
        return items
