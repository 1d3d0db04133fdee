"""Pydantic schemas for transactions.

Stored and wire documents use camelCase keys (``userId``, ``createdAt``...);
Python code uses the snake_case attribute names.
"""
from __future__ import annotations

import datetime as dt
from decimal import Decimal
from typing import Annotated, Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, field_validator
from pydantic.alias_generators import to_camel

from expenser.core.validation import parse_money, split_tags

TransactionType = Literal["income", "expense"]

Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]

# Amounts travel and persist as JSON doubles, which keep 15 significant digits.
MAX_AMOUNT_DIGITS = 15


def _coerce_amount(value: Any) -> Decimal:
    amount, _warnings = parse_money(value)
    return amount


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TransactionCreate(_CamelModel):
    """Fields a user submits to record a transaction."""

    amount: Money = Field(ge=0, max_digits=MAX_AMOUNT_DIGITS)
    description: str = Field(min_length=1)
    category: str = Field(min_length=1)
    date: dt.date = Field(default_factory=dt.date.today)
    type: TransactionType = "expense"
    tags: list[str] = Field(default_factory=list)

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        str_strip_whitespace=True,
    )

    @field_validator("amount", mode="before")
    @classmethod
    def parse_amount(cls, value: Any) -> Decimal:
        return _coerce_amount(value)

    @field_validator("tags", mode="before")
    @classmethod
    def parse_tags(cls, value: Any) -> list[str]:
        return split_tags(value)


class TransactionUpdate(_CamelModel):
    """Partial update; only the fields that were sent are merged."""

    amount: Optional[Annotated[Money, Field(ge=0, max_digits=MAX_AMOUNT_DIGITS)]] = None
    description: Optional[str] = Field(default=None, min_length=1)
    category: Optional[str] = Field(default=None, min_length=1)
    date: Optional[dt.date] = None
    type: Optional[TransactionType] = None
    tags: Optional[list[str]] = None

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        str_strip_whitespace=True,
    )

    @field_validator("amount", mode="before")
    @classmethod
    def parse_amount(cls, value: Any) -> Decimal | None:
        if value is None:
            return None
        return _coerce_amount(value)

    @field_validator("tags", mode="before")
    @classmethod
    def parse_tags(cls, value: Any) -> list[str] | None:
        if value is None:
            return None
        return split_tags(value)

    def changes(self) -> dict[str, Any]:
        """Return only the explicitly provided, non-null fields."""
        return {key: value for key, value in self.model_dump(exclude_unset=True).items() if value is not None}


class Transaction(_CamelModel):
    """A stored income or expense record."""

    id: str
    user_id: str
    amount: Money = Field(ge=0)
    description: str
    category: str
    date: dt.date
    type: TransactionType
    tags: list[str] = Field(default_factory=list)
    created_at: dt.datetime
    updated_at: dt.datetime

    @field_validator("tags", mode="before")
    @classmethod
    def parse_tags(cls, value: Any) -> list[str]:
        return split_tags(value)


class TransactionOut(Transaction):
    """Transaction enriched with the display attributes of its category."""

    category_color: str
    category_icon: str


__all__ = [
    "Money",
    "Transaction",
    "TransactionCreate",
    "TransactionOut",
    "TransactionType",
    "TransactionUpdate",
]
