from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ChatMessage(BaseModel):
    id: str
    text: str
    sender: Literal["user", "ai"]
    timestamp: datetime
    type: Literal["text", "insight", "recommendation"] = "text"

    model_config = ConfigDict(frozen=True)


class ChatRequest(BaseModel):
    """The text is forwarded as typed; only blank input is refused."""

    message: str = Field(min_length=1, max_length=4000)

    model_config = ConfigDict(extra="forbid")

    @field_validator("message")
    @classmethod
    def not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("message must not be blank")
        return value


class ChatConversation(BaseModel):
    messages: list[ChatMessage]
    quick_questions: list[str] = Field(serialization_alias="quickQuestions")
    pending: bool = False
