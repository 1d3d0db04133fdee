"""Admin-only authorization helpers."""
from __future__ import annotations

from fastapi import Depends, HTTPException, status

from expenser.core.config import settings
from expenser.core.session import get_current_user
from expenser.domain.users.schemas import Identity


def require_admin(identity: Identity = Depends(get_current_user)) -> Identity:
    """Ensure the signed-in identity's e-mail is in the configured admin allowlist."""
    email = (identity.email or "").lower().strip()
    if not email or email not in settings.admin_emails:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    return identity


__all__ = ["require_admin"]
