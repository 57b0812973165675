"""
Identity gateway — turns the provider-issued token into an ActionContext.

The external provider signs a JWT whose ``sub`` is the user id. It arrives
either as a bearer token or in the provider's session cookie. Verification
of the person behind it is the provider's job; here we only check the
signature and read the claims.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, Request
from jose import JWTError, jwt
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from hackteams.config import settings
from hackteams.database import get_db
from hackteams.services.actions import ActionContext
from hackteams.services.users import sync_user

logger = logging.getLogger(__name__)


def create_access_token(data: dict, expires_minutes: int = 60) -> str:
    """Sign a token the way the provider does (dev tooling and tests)."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes)
    to_encode.update({"exp": expire})
    return jwt.encode(
        to_encode, settings.IDENTITY_JWT_SECRET, algorithm=settings.IDENTITY_JWT_ALGORITHM
    )


def _extract_token(request: Request) -> Optional[str]:
    header = request.headers.get("Authorization", "")
    if header.lower().startswith("bearer "):
        return header[7:].strip() or None
    return request.cookies.get(settings.IDENTITY_COOKIE_KEY)


def decode_token(token: str) -> Optional[dict]:
    try:
        return jwt.decode(
            token,
            settings.IDENTITY_JWT_SECRET,
            algorithms=[settings.IDENTITY_JWT_ALGORITHM],
        )
    except JWTError:
        return None


def _verified_claims(request: Request) -> Optional[dict]:
    token = _extract_token(request)
    if not token:
        return None
    payload = decode_token(token)
    if not payload or not payload.get("sub"):
        return None
    return payload


def caller_id_from_request(request: Request) -> Optional[str]:
    """The verified ``sub`` claim, or None for an anonymous request."""
    payload = _verified_claims(request)
    return str(payload["sub"]) if payload else None


async def get_caller_context(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> ActionContext:
    """
    Resolve the caller from the request.
    Returns an anonymous context when no valid token is present; the
    actions themselves reject anonymous callers.
    """
    payload = _verified_claims(request)
    if payload is None:
        return ActionContext()

    user_id = str(payload["sub"])
    # Keep the local mirror current so email invitations can find the user.
    # A mirror conflict must not block the caller.
    if payload.get("email"):
        try:
            async with db.begin_nested():
                await sync_user(db, user_id, payload["email"], payload.get("name"))
        except IntegrityError:
            logger.warning("Could not sync user %s: email %s is taken", user_id, payload["email"])
    return ActionContext(caller_id=user_id)
