"""Health check endpoint.

Verifies connectivity to the database. Used by container healthchecks and
load balancers.
"""

from __future__ import annotations

from fastapi import APIRouter
from sqlalchemy import text

from safe_escrow.infrastructure.database.engine import get_engine
from safe_escrow.logging_config import get_logger
from safe_escrow.schemas.safe_transaction import HealthResponse

router = APIRouter(tags=["Health"])
logger = get_logger(__name__)


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Returns the health status of the application and its database.",
)
async def health_check() -> HealthResponse:
    """Check connectivity to the database."""
    try:
        async with get_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
        db_status = "healthy"
    except Exception as exc:
        db_status = f"unhealthy: {type(exc).__name__}"
        logger.error("health.db_check_failed", error=str(exc))

    return HealthResponse(
        status="ok" if db_status == "healthy" else "degraded",
        database=db_status,
    )
