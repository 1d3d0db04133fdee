from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from conftest import FIXED_NOW
from expenser.domain.categories.schemas import CategoryCreate
from expenser.domain.categories.services import DuplicateCategoryError
from expenser.domain.storage.services import StorageError, storage_key
from expenser.domain.transactions.schemas import TransactionCreate, TransactionUpdate
from expenser.domain.transactions.store import (
    NotAuthenticatedError,
    TransactionStore,
    TransactionStoreRegistry,
)

pytestmark = pytest.mark.anyio


class _Clock:
    def __init__(self, start: datetime = FIXED_NOW) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def tick(self, seconds: int = 60) -> None:
        self.now = self.now + timedelta(seconds=seconds)


def _lunch(**overrides):
    data = {"amount": "12.30", "description": "Sandwich", "category": "Food & Dining", "date": "2024-03-14"}
    data.update(overrides)
    return TransactionCreate(**data)


async def _store(storage, identity, clock=None, seed_demo=True):
    store = TransactionStore(storage, identity, seed_demo=seed_demo, clock=clock or _Clock())
    await store.load()
    return store


class TestLoad:
    async def test_new_user_gets_demo_data(self, storage, identity):
        store = await _store(storage, identity)
        transactions = store.list()
        assert [t.id for t in transactions] == ["1", "2", "3"]
        assert transactions[2].date == FIXED_NOW.date() - timedelta(days=1)
        assert all(t.user_id == identity.uid for t in transactions)

        stored = await storage.get(storage_key("expenser_expenses", identity.uid))
        assert [item["id"] for item in stored] == ["1", "2", "3"]
        assert stored[0]["userId"] == identity.uid
        assert stored[0]["amount"] == 25.5

    async def test_existing_data_is_restored(self, storage, identity):
        first = await _store(storage, identity)
        added = await first.add(_lunch())

        second = await _store(storage, identity)
        assert [t.id for t in second.list()] == ["1", "2", "3", added.id]
        assert second.get(added.id).amount == Decimal("12.3")

    async def test_seeding_can_be_disabled(self, storage, identity):
        store = await _store(storage, identity, seed_demo=False)
        assert store.list() == []

    async def test_corrupt_value_raises(self, storage, identity):
        await storage.set(storage_key("expenser_expenses", identity.uid), {"not": "a list"})
        with pytest.raises(StorageError):
            await _store(storage, identity)


class TestMutations:
    async def test_add_appends_with_fresh_id(self, storage, identity):
        store = await _store(storage, identity, seed_demo=False)
        created = await store.add(_lunch(tags="work, food"))
        assert created.id
        assert created.created_at == created.updated_at == FIXED_NOW
        assert created.tags == ["work", "food"]
        assert store.list() == [created]

    async def test_update_only_changes_given_fields(self, storage, identity):
        clock = _Clock()
        store = await _store(storage, identity, clock=clock)
        before = store.get("1")
        clock.tick()

        updated = await store.update("1", TransactionUpdate(amount=30))

        assert updated.amount == Decimal("30")
        assert updated.updated_at == clock.now
        unchanged = {"id", "user_id", "description", "category", "date", "type", "tags", "created_at"}
        assert updated.model_dump(include=unchanged) == before.model_dump(include=unchanged)
        assert store.get("1") == updated

    async def test_update_unknown_id_is_ignored(self, storage, identity):
        store = await _store(storage, identity)
        version = store.version
        assert await store.update("missing", TransactionUpdate(amount=1)) is None
        assert store.version == version

    async def test_remove(self, storage, identity):
        store = await _store(storage, identity)
        assert await store.remove("2") is True
        assert [t.id for t in store.list()] == ["1", "3"]
        stored = await storage.get(storage_key("expenser_expenses", identity.uid))
        assert [item["id"] for item in stored] == ["1", "3"]

    async def test_remove_unknown_id_leaves_list_unchanged(self, storage, identity):
        store = await _store(storage, identity)
        before = store.list()
        assert await store.remove("nope") is False
        assert store.list() == before

    async def test_version_changes_on_every_write(self, storage, identity):
        store = await _store(storage, identity)
        version = store.version
        await store.add(_lunch())
        assert store.version > version

    async def test_rebuilt_store_never_reuses_a_version(self, storage, identity):
        first = await _store(storage, identity)
        await first.add(_lunch())
        second = await _store(storage, identity)
        assert second.version > first.version

    async def test_failed_write_keeps_memory(self, storage, identity, monkeypatch):
        store = await _store(storage, identity)
        before = store.list()

        async def broken_set(key, value):
            raise StorageError("disk full")

        monkeypatch.setattr(storage, "set", broken_set)
        with pytest.raises(StorageError):
            await store.add(_lunch())
        assert store.list() == before


class TestWithoutIdentity:
    async def test_mutations_require_identity(self, storage):
        store = TransactionStore(storage, None)
        with pytest.raises(NotAuthenticatedError):
            await store.add(_lunch())
        with pytest.raises(NotAuthenticatedError):
            await store.remove("1")
        with pytest.raises(NotAuthenticatedError):
            await store.update("1", TransactionUpdate(amount=1))
        assert await storage.keys() == []

    async def test_registry_requires_identity(self, storage):
        registry = TransactionStoreRegistry(storage)
        with pytest.raises(NotAuthenticatedError):
            await registry.get(None)


class TestCategories:
    async def test_custom_category_is_persisted(self, storage, identity):
        store = await _store(storage, identity)
        category = await store.add_category(CategoryCreate(name="Pets", color="#123abc", icon="🐶"))
        assert category.color == "#123ABC"
        assert store.categories[-1] == category

        reloaded = await _store(storage, identity)
        assert [c.name for c in reloaded.categories][-1] == "Pets"

    async def test_duplicate_name_is_rejected(self, storage, identity):
        store = await _store(storage, identity)
        with pytest.raises(DuplicateCategoryError):
            await store.add_category(CategoryCreate(name="food & dining"))


class TestRegistry:
    async def test_get_loads_once(self, storage, identity):
        registry = TransactionStoreRegistry(storage)
        first = await registry.get(identity)
        assert await registry.get(identity) is first

    async def test_sign_out_evicts_and_sign_in_reloads(self, storage, identity):
        registry = TransactionStoreRegistry(storage)
        first = await registry.get(identity)
        await first.add(_lunch())

        await registry.on_identity_change(identity.uid, None)
        await registry.on_identity_change(identity.uid, identity)

        second = await registry.get(identity)
        assert second is not first
        assert len(second.list()) == 4

    async def test_forget_removes_only_that_user(self, storage, identity):
        registry = TransactionStoreRegistry(storage)
        await registry.get(identity)
        await storage.set(storage_key("expenser_expenses", "someone-else"), [])

        await registry.forget(identity.uid)

        assert await storage.keys() == [storage_key("expenser_expenses", "someone-else")]

    async def test_clock_defaults_to_utc(self, storage, identity):
        registry = TransactionStoreRegistry(storage, seed_demo=False)
        store = await registry.get(identity)
        created = await store.add(_lunch())
        assert created.created_at.tzinfo == timezone.utc
