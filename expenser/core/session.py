"""Session provider and the dependencies that resolve the current identity."""
from __future__ import annotations

import logging
from typing import Awaitable, Callable, Optional

from fastapi import Cookie

from expenser.core.cookies import SESSION_COOKIE_NAME, parse_session_cookie
from expenser.domain.users.schemas import Identity
from expenser.services.identity_client import IdentityClient

logger = logging.getLogger("expenser.security")

# (uid, identity or None when signed out)
IdentityListener = Callable[[str, Optional[Identity]], Awaitable[None]]


class SessionProvider:
    """Front the identity provider and broadcast identity changes.

    Every operation is delegated to the identity client; its errors propagate
    unchanged. Listeners run after each successful sign-in, registration or
    sign-out.
    """

    def __init__(self, identity_client: IdentityClient, provider_id: str = "google.com") -> None:
        self._client = identity_client
        self._provider_id = provider_id
        self._listeners: list[IdentityListener] = []

    def subscribe(self, listener: IdentityListener) -> Callable[[], None]:
        """Register a listener; returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def login(self, email: str, password: str) -> Identity:
        identity = await self._client.sign_in_with_password(email, password)
        await self._notify(identity.uid, identity)
        return identity

    async def login_with_provider(self, id_token: str, provider_id: str | None = None) -> Identity:
        identity = await self._client.sign_in_with_idp(provider_id or self._provider_id, id_token)
        await self._notify(identity.uid, identity)
        return identity

    async def register(self, email: str, password: str, display_name: str) -> Identity:
        identity = await self._client.sign_up(email, password, display_name)
        await self._notify(identity.uid, identity)
        return identity

    async def logout(self, identity: Identity) -> None:
        await self._notify(identity.uid, None)

    async def _notify(self, uid: str, identity: Identity | None) -> None:
        logger.info("Identity change for %s (%s)", uid, "signed in" if identity else "signed out")
        for listener in list(self._listeners):
            await listener(uid, identity)


async def get_current_user(
    session_value: Optional[str] = Cookie(None, alias=SESSION_COOKIE_NAME),
) -> Identity:
    """Resolve the current identity from the signed session cookie."""
    return parse_session_cookie(session_value)


__all__ = ["IdentityListener", "SessionProvider", "get_current_user"]
