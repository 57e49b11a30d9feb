"""Authorization gate for admin actions.

The caller presents a bearer JWT issued by the marketplace auth provider.
The gate verifies it with python-jose, resolves the ``sub`` claim to a user
row and requires that user's role to be the configured admin role.

    no / bad / expired token, no subject  -> UnauthenticatedError
    unknown user, non-admin role          -> ForbiddenError
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from jose import JWTError, jwt
from sqlalchemy.exc import SQLAlchemyError

from safe_escrow.config import Settings, get_settings
from safe_escrow.domain.exceptions import (
    DependencyFailureError,
    ForbiddenError,
    UnauthenticatedError,
)
from safe_escrow.domain.models import AdminIdentity
from safe_escrow.infrastructure.database.repositories import UserRepository
from safe_escrow.logging_config import get_logger

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

BEARER_PREFIX = "bearer "


def extract_bearer_token(authorization: str | None) -> str | None:
    """Return the token part of an ``Authorization: Bearer <token>`` header."""
    if not authorization:
        return None
    if authorization[: len(BEARER_PREFIX)].lower() != BEARER_PREFIX:
        return None
    token = authorization[len(BEARER_PREFIX) :].strip()
    return token or None


class AuthorizationGate:
    """Resolves a caller credential to an AdminIdentity or refuses it."""

    def __init__(self, session: AsyncSession, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        self._users = UserRepository(session)

    async def authorize(self, token: str | None) -> AdminIdentity:
        """Return the admin identity behind ``token``.

        Raises:
            UnauthenticatedError: No valid identity could be resolved.
            ForbiddenError: The identity is not an administrator.
            DependencyFailureError: The user lookup failed.
        """
        user_id = self._resolve_subject(token)

        try:
            user = await self._users.get_by_id(user_id)
        except SQLAlchemyError as exc:
            logger.error("auth.user_lookup_failed", user_id=str(user_id), error=str(exc))
            raise DependencyFailureError() from exc

        if user is None or user.role != self._settings.admin_role:
            logger.warning(
                "auth.forbidden",
                user_id=str(user_id),
                role=user.role if user is not None else None,
            )
            raise ForbiddenError()

        logger.debug("auth.admin_resolved", user_id=str(user_id))
        return AdminIdentity(user_id=user.id, role=user.role, name=user.name)

    def _resolve_subject(self, token: str | None) -> uuid.UUID:
        if not token:
            raise UnauthenticatedError()
        if not self._settings.jwt_secret:
            logger.error("auth.jwt_secret_missing")
            raise UnauthenticatedError()

        audience = self._settings.jwt_audience or None
        try:
            claims = jwt.decode(
                token,
                self._settings.jwt_secret,
                algorithms=[self._settings.jwt_algorithm],
                audience=audience,
                options={"verify_aud": audience is not None},
            )
        except JWTError as exc:
            logger.info("auth.invalid_token", error=str(exc))
            raise UnauthenticatedError() from exc

        subject = claims.get("sub")
        try:
            return uuid.UUID(str(subject))
        except ValueError as exc:
            logger.info("auth.invalid_subject", subject=subject)
            raise UnauthenticatedError() from exc
