"""HTTP client for the generative-AI chat endpoint (Gemini ``generateContent``)."""
from __future__ import annotations

import logging
from typing import Any

import httpx

from expenser.core.config import STUB_KEYS, settings

logger = logging.getLogger(__name__)

NO_RESPONSE_MESSAGE = "Sorry, I could not get a response from Gemini."
MISSING_KEY_MESSAGE = "Gemini API key is missing. Please set GEMINI_API_KEY in your .env file."


class GeminiClient:
    """Forward user text verbatim to Gemini and return the reply text.

    ``ask`` never raises for provider or transport failures: the failure is
    turned into the text shown to the user, as a chat message.
    """

    def __init__(
        self,
        api_key: str | None = None,
        *,
        model: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.GEMINI_API_KEY
        self.model = model or settings.GEMINI_MODEL
        self.base_url = (base_url or settings.GEMINI_API_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.GEMINI_TIMEOUT_SECONDS
        self._transport = transport

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/{self.model}:generateContent"

    async def ask(self, text: str) -> str:
        if not self.api_key:
            return MISSING_KEY_MESSAGE

        if self.api_key.strip().lower() in STUB_KEYS:
            return _build_stub_reply(text)

        payload = {"contents": [{"parts": [{"text": text}]}]}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.endpoint, params={"key": self.api_key}, json=payload)
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Gemini request failed: %s", exc)
            return f"Error connecting to Gemini: {exc}"

        return extract_reply(data)


def extract_reply(data: Any) -> str:
    """Pull the reply text, or the provider's error message, out of a response body."""
    try:
        text = data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        text = None
    if text:
        return str(text)

    error = data.get("error") if isinstance(data, dict) else None
    if isinstance(error, dict) and error.get("message"):
        logger.info("Gemini returned an error: %s", error["message"])
        return f"Gemini API error: {error['message']}"

    return NO_RESPONSE_MESSAGE


def _build_stub_reply(text: str) -> str:
    """Provide a deterministic offline response for local testing environments."""
    preview = " ".join(text.split())[:80]
    return f"[Gemini stub] You asked: \"{preview}\". Configure GEMINI_API_KEY for real answers."


__all__ = ["GeminiClient", "MISSING_KEY_MESSAGE", "NO_RESPONSE_MESSAGE", "extract_reply"]
