"""Request authentication: bearer token → user → permissions → Principal.

    NoToken ──(no "Bearer <token>" header)──────────────▶ MissingTokenError
       │
    TokenPresent ──(bad signature / malformed)───────────▶ InvalidTokenError
       │         ──(expired)─────────────────────────────▶ ExpiredTokenError
       │
    IdentityLookup ──(no such user)──────────────────────▶ UserNotFoundError
       │           ──(database error)────────────────────▶ InternalError
       │
    PermissionEnrichment ──(resolver failed)─────────────▶ PermissionResolutionFailed
       │
    Attached → Principal

Runs once per authenticated request and never retries.
"""

import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from negocify.auth.jwt import decode_token
from negocify.auth.permissions import ResolutionError, resolve_permissions
from negocify.auth.principal import Principal, UserFields
from negocify.middleware.exceptions import (
    InternalError,
    InvalidTokenError,
    MissingTokenError,
    PermissionResolutionFailed,
    UserNotFoundError,
)
from negocify.models.user import User

logger = logging.getLogger(__name__)


def extract_bearer_token(authorization: str | None) -> str:
    """Return the token from an `Authorization: Bearer <token>` header."""
    if not authorization:
        raise MissingTokenError()
    scheme, _, token = authorization.strip().partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        raise MissingTokenError()
    return token


def _user_id_from_claims(payload: dict) -> int:
    if payload.get("type") != "access":
        raise InvalidTokenError()
    try:
        return int(payload["sub"])
    except (KeyError, TypeError, ValueError) as exc:
        raise InvalidTokenError() from exc


async def load_user_fields(db: AsyncSession, user_id: int) -> UserFields | None:
    """Fetch a user without ever selecting the password hash."""
    result = await db.execute(
        select(User.id, User.name, User.surname, User.email, User.phone)
        .where(User.id == user_id)
    )
    row = result.one_or_none()
    if row is None:
        return None
    return UserFields(
        id=row.id,
        name=row.name,
        surname=row.surname,
        email=row.email,
        phone=row.phone,
    )


async def authenticate(authorization: str | None, db: AsyncSession) -> Principal:
    token = extract_bearer_token(authorization)
    user_id = _user_id_from_claims(decode_token(token))

    try:
        user = await load_user_fields(db, user_id)
    except SQLAlchemyError as exc:
        logger.error(
            f"Identity lookup failed for user {user_id}: {exc}",
            extra={"user_id": user_id},
        )
        raise InternalError("Authentication failed") from exc

    if user is None:
        logger.info(
            f"Valid token for missing user {user_id}",
            extra={"user_id": user_id},
        )
        raise UserNotFoundError()

    try:
        profile = await resolve_permissions(db, user_id)
    except ResolutionError as exc:
        raise PermissionResolutionFailed() from exc

    return Principal(user=user, profile=profile)
