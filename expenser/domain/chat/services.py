"""Per-user chat conversations with the AI assistant."""
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from expenser.domain.users.schemas import Identity
from expenser.services.llm_client import GeminiClient

from .schemas import ChatMessage

logger = logging.getLogger(__name__)

QUICK_QUESTIONS = (
    "What's my biggest expense category?",
    "How much do I spend monthly?",
    "Give me budget advice",
    "What are my spending trends?",
    "How can I save more money?",
)


class ChatBusyError(RuntimeError):
    """Raised when a message is sent while the previous one is unanswered."""


def _message(text: str, sender: str) -> ChatMessage:
    return ChatMessage(
        id=uuid.uuid4().hex,
        text=text,
        sender=sender,
        timestamp=datetime.now(timezone.utc),
    )


def welcome_message(identity: Identity) -> ChatMessage:
    return _message(
        f"Hello {identity.greeting_name}! 👋 I'm your AI financial assistant. I can help you "
        "analyze your spending patterns, provide budgeting advice, and answer questions about "
        "your finances. What would you like to know?",
        "ai",
    )


class ChatAssistant:
    """Keep an append-only message list per user and relay messages to the LLM."""

    def __init__(self, client: GeminiClient) -> None:
        self._client = client
        self._conversations: dict[str, list[ChatMessage]] = {}
        self._pending: set[str] = set()

    def messages(self, identity: Identity) -> list[ChatMessage]:
        conversation = self._conversations.setdefault(identity.uid, [welcome_message(identity)])
        return list(conversation)

    def is_pending(self, identity: Identity) -> bool:
        return identity.uid in self._pending

    async def send(self, identity: Identity, text: str) -> ChatMessage:
        """Append the user's message, wait for the reply and append it."""
        if identity.uid in self._pending:
            raise ChatBusyError("Wait for the previous answer before sending another message.")

        conversation = self._conversations.setdefault(identity.uid, [welcome_message(identity)])
        self._pending.add(identity.uid)
        try:
            conversation.append(_message(text, "user"))
            reply = _message(await self._client.ask(text), "ai")
            conversation.append(reply)
        finally:
            self._pending.discard(identity.uid)
        return reply

    def forget(self, uid: str) -> None:
        self._conversations.pop(uid, None)
        self._pending.discard(uid)


__all__ = ["ChatAssistant", "ChatBusyError", "QUICK_QUESTIONS", "welcome_message"]
