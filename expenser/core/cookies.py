"""Utilities for working with HTTP cookies."""
from __future__ import annotations

from fastapi import HTTPException, Response, status
from itsdangerous import BadSignature, URLSafeSerializer
from pydantic import ValidationError

from expenser.core.config import settings
from expenser.domain.users.schemas import Identity

SESSION_COOKIE_NAME = "expenser_session"
_serializer = URLSafeSerializer(settings.SECRET_KEY, salt="session-cookie")


def _make_session_value(identity: Identity) -> str:
    """Create a signed session payload containing the identity."""
    return _serializer.dumps(identity.model_dump(by_alias=True))


def parse_session_cookie(raw_value: str | None) -> Identity:
    """Parse and validate the signed session cookie, returning the identity."""
    if not raw_value:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    try:
        data = _serializer.loads(raw_value)
        identity = Identity.model_validate(data)
    except (BadSignature, ValidationError, TypeError):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid session") from None
    if not identity.uid:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid session")
    return identity


def set_session_cookie(response: Response, identity: Identity) -> None:
    """Set the session cookie with secure defaults."""
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=_make_session_value(identity),
        httponly=True,
        samesite="lax",
        secure=settings.is_production,
    )


def clear_session_cookie(response: Response) -> None:
    """Remove the session cookie using the same security options."""
    response.delete_cookie(
        key=SESSION_COOKIE_NAME,
        httponly=True,
        samesite="lax",
        secure=settings.is_production,
    )
