"""In-memory transaction list per user, mirrored to durable storage.

Every mutation serializes the whole list and overwrites the user's storage
entry. The in-memory list is only replaced once that write succeeded, so
memory and storage never disagree after a failed write.
"""
from __future__ import annotations

import asyncio
import itertools
import logging
import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Callable

from pydantic import ValidationError

from expenser.domain.categories.schemas import Category, CategoryCreate
from expenser.domain.categories.services import DEFAULT_CATEGORIES, build_custom_category
from expenser.domain.storage.services import KeyValueStorage, StorageError, storage_key
from expenser.domain.users.schemas import Identity

from .schemas import Transaction, TransactionCreate, TransactionUpdate

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

# Shared by every store so a version is never reused after a store is rebuilt.
_versions = itertools.count(1)


class NotAuthenticatedError(PermissionError):
    """Raised when a store operation needs an identity and there is none."""


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def demo_transactions(uid: str, now: datetime) -> list[Transaction]:
    """The three records a brand new user starts with."""
    today = now.date()
    return [
        Transaction(
            id="1",
            user_id=uid,
            amount=Decimal("25.50"),
            description="Lunch at restaurant",
            category="Food & Dining",
            date=today,
            type="expense",
            tags=["restaurant", "lunch"],
            created_at=now,
            updated_at=now,
        ),
        Transaction(
            id="2",
            user_id=uid,
            amount=Decimal("3000.00"),
            description="Monthly salary",
            category="Income",
            date=today,
            type="income",
            created_at=now,
            updated_at=now,
        ),
        Transaction(
            id="3",
            user_id=uid,
            amount=Decimal("120.00"),
            description="Electricity bill",
            category="Bills & Utilities",
            date=today - timedelta(days=1),
            type="expense",
            tags=["utilities", "monthly"],
            created_at=now,
            updated_at=now,
        ),
    ]


class TransactionStore:
    """Transactions and categories of one identity."""

    def __init__(
        self,
        storage: KeyValueStorage,
        owner: Identity | None,
        *,
        namespace: str = "expenser_expenses",
        category_namespace: str = "expenser_categories",
        seed_demo: bool = True,
        clock: Clock = utcnow,
    ) -> None:
        self._storage = storage
        self.owner = owner
        self._namespace = namespace
        self._category_namespace = category_namespace
        self._seed_demo = seed_demo
        self._clock = clock
        self._transactions: list[Transaction] = []
        self._custom_categories: list[Category] = []
        self._lock = asyncio.Lock()
        self.version = 0
        self.loaded = False

    @property
    def uid(self) -> str | None:
        return self.owner.uid if self.owner else None

    @property
    def categories(self) -> list[Category]:
        return [*DEFAULT_CATEGORIES, *self._custom_categories]

    def _require_owner(self) -> Identity:
        if self.owner is None:
            raise NotAuthenticatedError("Sign in to change transactions")
        return self.owner

    def _key(self, namespace: str) -> str:
        return storage_key(namespace, self._require_owner().uid)

    async def load(self) -> None:
        """Restore transactions and custom categories from storage."""
        owner = self._require_owner()
        async with self._lock:
            raw = await self._storage.get(self._key(self._namespace))
            if raw is None:
                transactions = demo_transactions(owner.uid, self._clock()) if self._seed_demo else []
                await self._write(self._namespace, transactions)
                logger.info("Initialized storage for %s with %s demo transactions", owner.uid, len(transactions))
            else:
                transactions = _parse_list(Transaction, raw, self._key(self._namespace))

            raw_categories = await self._storage.get(self._key(self._category_namespace))
            custom = [] if raw_categories is None else _parse_list(
                Category, raw_categories, self._key(self._category_namespace)
            )

            self._transactions = transactions
            self._custom_categories = custom
            self.loaded = True
            self.version = next(_versions)

    def list(self) -> list[Transaction]:
        """Current transactions in array order."""
        return list(self._transactions)

    def get(self, transaction_id: str) -> Transaction | None:
        for transaction in self._transactions:
            if transaction.id == transaction_id:
                return transaction
        return None

    async def add(self, payload: TransactionCreate) -> Transaction:
        owner = self._require_owner()
        now = self._clock()
        transaction = Transaction(
            id=uuid.uuid4().hex,
            user_id=owner.uid,
            created_at=now,
            updated_at=now,
            **payload.model_dump(),
        )
        async with self._lock:
            await self._commit([*self._transactions, transaction])
        logger.debug("Added transaction %s for %s", transaction.id, owner.uid)
        return transaction

    async def update(self, transaction_id: str, changes: TransactionUpdate) -> Transaction | None:
        """Merge ``changes`` into the matching record. Unknown ids are ignored."""
        self._require_owner()
        fields = changes.changes()
        async with self._lock:
            updated: Transaction | None = None
            transactions: list[Transaction] = []
            for transaction in self._transactions:
                if transaction.id == transaction_id:
                    updated = transaction.model_copy(update={**fields, "updated_at": self._clock()})
                    transactions.append(updated)
                else:
                    transactions.append(transaction)

            if updated is None:
                return None
            await self._commit(transactions)
        return updated

    async def remove(self, transaction_id: str) -> bool:
        """Drop the matching record. Returns False when nothing matched."""
        self._require_owner()
        async with self._lock:
            transactions = [t for t in self._transactions if t.id != transaction_id]
            if len(transactions) == len(self._transactions):
                return False
            await self._commit(transactions)
        return True

    async def add_category(self, payload: CategoryCreate) -> Category:
        self._require_owner()
        async with self._lock:
            category = build_custom_category(payload, self.categories)
            custom = [*self._custom_categories, category]
            await self._write(self._category_namespace, custom)
            self._custom_categories = custom
            self.version = next(_versions)
        return category

    async def _commit(self, transactions: list[Transaction]) -> None:
        await self._write(self._namespace, transactions)
        self._transactions = transactions
        self.version = next(_versions)

    async def _write(self, namespace: str, items: list[Any]) -> None:
        payload = [item.model_dump(mode="json", by_alias=True) for item in items]
        await self._storage.set(self._key(namespace), payload)


def _parse_list(model: type, raw: Any, key: str) -> list[Any]:
    if not isinstance(raw, list):
        raise StorageError(f"Stored value for '{key}' is not a list")
    try:
        return [model.model_validate(item) for item in raw]
    except ValidationError as exc:
        logger.error("Stored value for %s failed validation: %s", key, exc)
        raise StorageError(f"Stored value for '{key}' is invalid") from exc


class TransactionStoreRegistry:
    """One loaded store per signed-in uid."""

    def __init__(
        self,
        storage: KeyValueStorage,
        *,
        namespace: str = "expenser_expenses",
        category_namespace: str = "expenser_categories",
        seed_demo: bool = True,
        clock: Clock = utcnow,
    ) -> None:
        self._storage = storage
        self._namespace = namespace
        self._category_namespace = category_namespace
        self._seed_demo = seed_demo
        self._clock = clock
        self._stores: dict[str, TransactionStore] = {}
        self._lock = asyncio.Lock()

    def _build(self, identity: Identity) -> TransactionStore:
        return TransactionStore(
            self._storage,
            identity,
            namespace=self._namespace,
            category_namespace=self._category_namespace,
            seed_demo=self._seed_demo,
            clock=self._clock,
        )

    async def get(self, identity: Identity | None) -> TransactionStore:
        """Return the loaded store of ``identity``, loading it on first use."""
        if identity is None:
            raise NotAuthenticatedError("Not authenticated")

        async with self._lock:
            store = self._stores.get(identity.uid)
            if store is None:
                store = self._build(identity)
                await store.load()
                self._stores[identity.uid] = store
            return store

    async def on_identity_change(self, uid: str, identity: Identity | None) -> None:
        """Reload on sign-in, evict on sign-out."""
        async with self._lock:
            self._stores.pop(uid, None)
            if identity is None:
                return
            store = self._build(identity)
            await store.load()
            self._stores[uid] = store

    async def forget(self, uid: str) -> None:
        """Delete everything stored for ``uid`` and drop its store."""
        async with self._lock:
            await self._storage.remove(storage_key(self._namespace, uid))
            await self._storage.remove(storage_key(self._category_namespace, uid))
            self._stores.pop(uid, None)

    def clear(self) -> None:
        self._stores.clear()


__all__ = [
    "NotAuthenticatedError",
    "TransactionStore",
    "TransactionStoreRegistry",
    "demo_transactions",
    "utcnow",
]
