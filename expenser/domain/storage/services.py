"""Key-value persistence over a single SQL table.

Each key holds one JSON document that is read whole and overwritten whole
(last write wins). There is no versioning or merge across writers.
"""
from __future__ import annotations

import json
import logging
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .models import StorageEntry

logger = logging.getLogger(__name__)


class StorageError(RuntimeError):
    """Raised when a value cannot be read, serialized or written."""


def storage_key(namespace: str, uid: str) -> str:
    return f"{namespace}_{uid}"


class KeyValueStorage:
    """Async key-value store with JSON values."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get(self, key: str) -> Any | None:
        """Return the decoded value stored under ``key`` or None when absent."""
        try:
            async with self._session_factory() as session:
                entry = await session.get(StorageEntry, key)
        except SQLAlchemyError as exc:
            logger.exception("Failed to read storage key %s", key)
            raise StorageError(f"Could not read '{key}'") from exc

        if entry is None:
            return None

        try:
            return json.loads(entry.value)
        except ValueError as exc:
            logger.error("Storage key %s holds invalid JSON", key)
            raise StorageError(f"Stored value for '{key}' is not valid JSON") from exc

    async def set(self, key: str, value: Any) -> None:
        """Serialize ``value`` and overwrite whatever ``key`` held before."""
        try:
            payload = json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError) as exc:
            raise StorageError(f"Value for '{key}' is not JSON serializable") from exc

        try:
            async with self._session_factory() as session:
                entry = await session.get(StorageEntry, key)
                if entry is None:
                    session.add(StorageEntry(key=key, value=payload))
                else:
                    entry.value = payload
                await session.commit()
        except SQLAlchemyError as exc:
            logger.exception("Failed to write storage key %s", key)
            raise StorageError(f"Could not write '{key}'") from exc

    async def remove(self, key: str) -> None:
        try:
            async with self._session_factory() as session:
                await session.execute(delete(StorageEntry).where(StorageEntry.key == key))
                await session.commit()
        except SQLAlchemyError as exc:
            logger.exception("Failed to remove storage key %s", key)
            raise StorageError(f"Could not remove '{key}'") from exc

    async def keys(self) -> list[str]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(select(StorageEntry.key).order_by(StorageEntry.key))
                return list(result.scalars().all())
        except SQLAlchemyError as exc:
            logger.exception("Failed to list storage keys")
            raise StorageError("Could not list keys") from exc

    async def clear(self) -> int:
        """Wipe every key. Returns the number of removed entries."""
        try:
            async with self._session_factory() as session:
                result = await session.execute(delete(StorageEntry))
                await session.commit()
        except SQLAlchemyError as exc:
            logger.exception("Failed to clear storage")
            raise StorageError("Could not clear storage") from exc

        removed = result.rowcount or 0
        logger.warning("Storage cleared (%s entries removed)", removed)
        return removed


__all__ = ["KeyValueStorage", "StorageError", "storage_key"]
