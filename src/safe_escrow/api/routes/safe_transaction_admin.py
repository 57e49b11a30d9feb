"""Safe transaction admin route.

A single multiplexed endpoint, the way the admin dashboard already calls it:

    POST /functions/v1/safe-transaction-admin
        {"action": "confirm_deposit", "safeTransactionId": "...", "adminNotes": "..."}

get_list parameters may also arrive on the query string
(``?status=SETTLED&limit=20&offset=40``); query values win over body values.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Header, Query

from safe_escrow.api.deps import get_admin_handler
from safe_escrow.logging_config import get_logger
from safe_escrow.schemas.safe_transaction import AdminActionRequest, ErrorResponse
from safe_escrow.services.admin_actions import AdminActionHandler
from safe_escrow.services.auth_service import extract_bearer_token

router = APIRouter(prefix="/functions/v1", tags=["Safe Transactions"])
logger = get_logger(__name__)


@router.post(
    "/safe-transaction-admin",
    summary="Run a safe transaction admin action",
    response_model=None,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
)
async def safe_transaction_admin(
    request: AdminActionRequest,
    status: str | None = Query(default=None),
    limit: int | None = Query(default=None),
    offset: int | None = Query(default=None),
    authorization: str | None = Header(default=None),
    handler: AdminActionHandler = Depends(get_admin_handler),
) -> Any:
    """Authorize the caller and run ``request.action``.

    Mutations answer ``{"success": true, "message": ...}``, get_stats a flat
    counter object and get_list ``{"data": [...]}``.
    """
    query_params = {"status": status, "limit": limit, "offset": offset}
    overrides = {key: value for key, value in query_params.items() if value is not None}
    if overrides:
        request = request.model_copy(update=overrides)

    logger.debug("admin.action_received", action=request.action)
    return await handler.handle(extract_bearer_token(authorization), request)
