"""HTTP client for the external identity provider (Firebase Identity Toolkit)."""
from __future__ import annotations

import hashlib
import logging
from datetime import datetime, timezone
from typing import Any

import httpx

from expenser.core.config import STUB_KEYS, settings
from expenser.domain.users.schemas import Identity

logger = logging.getLogger(__name__)


class IdentityProviderError(Exception):
    """Error reported by the identity provider, message passed through unchanged."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class IdentityClient:
    """Delegate sign-in, registration and profile lookups to the identity provider."""

    def __init__(
        self,
        api_key: str | None = None,
        *,
        base_url: str | None = None,
        request_uri: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.IDENTITY_API_KEY
        self.base_url = (base_url or settings.IDENTITY_API_URL).rstrip("/")
        self.request_uri = request_uri or settings.IDENTITY_REQUEST_URI
        self.timeout = timeout if timeout is not None else settings.IDENTITY_TIMEOUT_SECONDS
        self._transport = transport

    @property
    def is_stub(self) -> bool:
        return self.api_key.strip().lower() in STUB_KEYS

    async def sign_in_with_password(self, email: str, password: str) -> Identity:
        if self.is_stub:
            return _stub_identity(email)

        data = await self._post(
            "accounts:signInWithPassword",
            {"email": email, "password": password, "returnSecureToken": True},
        )
        return await self._lookup(data["idToken"])

    async def sign_in_with_idp(self, provider_id: str, id_token: str) -> Identity:
        """Exchange a federated provider credential for a provider account."""
        if self.is_stub:
            return _stub_identity(f"{provider_id}:{id_token}", email="")

        data = await self._post(
            "accounts:signInWithIdp",
            {
                "postBody": f"id_token={id_token}&providerId={provider_id}",
                "requestUri": self.request_uri,
                "returnSecureToken": True,
                "returnIdpCredential": True,
            },
        )
        return await self._lookup(data["idToken"])

    async def sign_up(self, email: str, password: str, display_name: str = "") -> Identity:
        """Create the account, then set its display name."""
        if self.is_stub:
            return _stub_identity(email, display_name=display_name)

        data = await self._post(
            "accounts:signUp",
            {"email": email, "password": password, "returnSecureToken": True},
        )
        id_token = data["idToken"]
        if display_name:
            await self._post(
                "accounts:update",
                {"idToken": id_token, "displayName": display_name, "returnSecureToken": False},
            )
        return await self._lookup(id_token)

    async def _lookup(self, id_token: str) -> Identity:
        data = await self._post("accounts:lookup", {"idToken": id_token})
        try:
            user = data["users"][0]
        except (KeyError, IndexError, TypeError) as exc:
            raise IdentityProviderError("USER_NOT_FOUND") from exc
        return _identity_from_account(user)

    async def _post(self, method: str, payload: dict[str, Any]) -> dict[str, Any]:
        if not self.api_key:
            raise IdentityProviderError("IDENTITY_API_KEY is not configured")

        url = f"{self.base_url}/{method}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(url, params={"key": self.api_key}, json=payload)
        except httpx.HTTPError as exc:
            logger.warning("Identity provider unreachable for %s: %s", method, exc)
            raise IdentityProviderError(f"Identity provider unreachable: {exc}") from exc

        try:
            data = response.json()
        except ValueError:
            data = {}

        if response.is_error:
            message = _error_message(data) or f"HTTP {response.status_code}"
            raise IdentityProviderError(message, status_code=response.status_code)

        return data


def _error_message(data: Any) -> str | None:
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    return None


def _identity_from_account(user: dict[str, Any]) -> Identity:
    created_at = ""
    raw_created = user.get("createdAt")
    if raw_created:
        # milliseconds since the epoch, as a string
        try:
            created_at = (
                datetime.fromtimestamp(int(raw_created) / 1000, tz=timezone.utc)
                .isoformat()
                .replace("+00:00", "Z")
            )
        except (TypeError, ValueError):
            created_at = str(raw_created)

    return Identity(
        uid=user["localId"],
        email=user.get("email") or "",
        display_name=user.get("displayName") or "",
        photo_url=user.get("photoUrl") or None,
        created_at=created_at,
    )


def _stub_identity(seed: str, *, email: str | None = None, display_name: str = "") -> Identity:
    """Deterministic offline identity for local development."""
    uid = hashlib.sha256(seed.strip().lower().encode()).hexdigest()[:28]
    return Identity(
        uid=uid,
        email=seed if email is None else email,
        display_name=display_name,
        created_at="2024-01-01T00:00:00Z",
    )


__all__ = ["IdentityClient", "IdentityProviderError"]
