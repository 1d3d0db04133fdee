"""Pydantic schemas for category operations."""
from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict, Field, field_validator

HEX_COLOR_RE = re.compile(r"^#[0-9A-Fa-f]{6}$")


class CategoryCreate(BaseModel):
    """Schema for appending a custom category."""

    name: str = Field(min_length=1, max_length=60)
    color: str = "#AEB6BF"
    icon: str = Field(default="📦", max_length=8)

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    @field_validator("color")
    @classmethod
    def check_color(cls, value: str) -> str:
        if not HEX_COLOR_RE.match(value):
            raise ValueError("color must be a #RRGGBB hex value")
        return value.upper()


class Category(BaseModel):
    """Schema for stored and returned category data."""

    id: str
    name: str
    color: str
    icon: str

    model_config = ConfigDict(frozen=True)
