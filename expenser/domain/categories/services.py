"""Default categories and helpers to look categories up by name."""
from __future__ import annotations

import uuid
from typing import Iterable

from .schemas import Category, CategoryCreate

FALLBACK_CATEGORY_ICON = "📌"
FALLBACK_CATEGORY_COLOR = "#9ca3af"

DEFAULT_CATEGORIES: tuple[Category, ...] = (
    Category(id="1", name="Food & Dining", color="#FF6B6B", icon="🍽️"),
    Category(id="2", name="Transportation", color="#4ECDC4", icon="🚗"),
    Category(id="3", name="Shopping", color="#45B7D1", icon="🛍️"),
    Category(id="4", name="Entertainment", color="#96CEB4", icon="🎬"),
    Category(id="5", name="Bills & Utilities", color="#FFEAA7", icon="⚡"),
    Category(id="6", name="Healthcare", color="#DDA0DD", icon="🏥"),
    Category(id="7", name="Education", color="#98D8C8", icon="📚"),
    Category(id="8", name="Travel", color="#F7DC6F", icon="✈️"),
    Category(id="9", name="Income", color="#58D68D", icon="💰"),
    Category(id="10", name="Other", color="#AEB6BF", icon="📦"),
)


class DuplicateCategoryError(ValueError):
    """Raised when a custom category reuses an existing name."""


def find_category(name: str, categories: Iterable[Category]) -> Category | None:
    for category in categories:
        if category.name == name:
            return category
    return None


def describe_category(name: str, categories: Iterable[Category]) -> dict[str, str]:
    """Return display attributes for a category name, falling back for orphans."""
    category = find_category(name, categories)
    if category is None:
        return {"name": name, "color": FALLBACK_CATEGORY_COLOR, "icon": FALLBACK_CATEGORY_ICON}
    return {"name": category.name, "color": category.color, "icon": category.icon}


def build_custom_category(payload: CategoryCreate, existing: Iterable[Category]) -> Category:
    lowered = payload.name.lower()
    if any(category.name.lower() == lowered for category in existing):
        raise DuplicateCategoryError("Category with this name already exists")
    return Category(id=uuid.uuid4().hex, name=payload.name, color=payload.color, icon=payload.icon)


__all__ = [
    "DEFAULT_CATEGORIES",
    "FALLBACK_CATEGORY_COLOR",
    "FALLBACK_CATEGORY_ICON",
    "DuplicateCategoryError",
    "build_custom_category",
    "describe_category",
    "find_category",
]
