from __future__ import annotations

import logging

import jwt
from fastapi import Header

from opsroom.config import get_settings

logger = logging.getLogger(__name__)


def decode_user_id(token: str) -> str | None:
    """Return the ``sub`` claim of a valid bearer token, else None."""
    settings = get_settings()
    if not settings.auth_jwt_secret:
        logger.warning("AUTH_JWT_SECRET is not configured; rejecting token")
        return None
    options = {"verify_aud": bool(settings.auth_jwt_audience)}
    try:
        payload = jwt.decode(
            token,
            settings.auth_jwt_secret,
            algorithms=[settings.auth_jwt_algorithm],
            audience=settings.auth_jwt_audience,
            options=options,
        )
    except jwt.PyJWTError as exc:
        logger.info("Rejected bearer token: %s", exc)
        return None
    subject = payload.get("sub")
    return subject if isinstance(subject, str) and subject else None


def current_user(authorization: str | None = Header(default=None)) -> str | None:
    if not authorization:
        return None
    scheme, _sep, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    return decode_user_id(token.strip())
