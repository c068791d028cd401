"""Tests for the key-value stores backing local durable state."""

import pytest
from sqlalchemy import update

from cashflow_kernel.db.engine import build_engine, build_session_factory, create_tables, session_scope
from cashflow_kernel.db.kv_store import MemoryKeyValueStore, SqlKeyValueStore
from cashflow_kernel.exceptions import StorageError
from cashflow_kernel.models.kv_entry import KeyValueEntry


@pytest.fixture(params=["memory", "sql"])
def store(request, kv_store, sql_store):
    return kv_store if request.param == "memory" else sql_store


class TestKeyValueContract:
    def test_missing_key_returns_default(self, store):
        assert store.get("absent") is None
        assert store.get("absent", []) == []

    def test_set_then_get(self, store):
        store.set("k", {"a": [1, "two"]})
        assert store.get("k") == {"a": [1, "two"]}

    def test_set_overwrites(self, store):
        store.set("k", 1)
        store.set("k", 2)
        assert store.get("k") == 2

    def test_get_returns_independent_copy(self, store):
        store.set("k", [1])
        value = store.get("k")
        value.append(2)
        assert store.get("k") == [1]

    def test_delete(self, store):
        store.set("k", "v")
        assert store.delete("k") is True
        assert store.delete("k") is False
        assert store.get("k") is None

    def test_unserialisable_value_raises_storage_error(self, store):
        with pytest.raises(StorageError) as exc_info:
            store.set("k", {"when": object()})
        assert exc_info.value.key == "k"


class TestSqlKeyValueStore:
    def test_durable_across_store_instances(self, tmp_path):
        url = f"sqlite:///{tmp_path / 'ledger.db'}"
        engine = build_engine(url)
        create_tables(engine)
        SqlKeyValueStore(build_session_factory(engine)).set("k", ["kept"])
        engine.dispose()

        reopened = build_engine(url)
        create_tables(reopened)
        try:
            assert SqlKeyValueStore(build_session_factory(reopened)).get("k") == ["kept"]
        finally:
            reopened.dispose()

    def test_corrupt_value_raises_storage_error(self, sql_engine, sql_store):
        sql_store.set("k", [1])
        with session_scope(build_session_factory(sql_engine)) as session:
            session.execute(
                update(KeyValueEntry).where(KeyValueEntry.key == "k").values(value="{not json")
            )

        with pytest.raises(StorageError):
            sql_store.get("k")

    def test_database_failure_raises_storage_error(self, sql_engine, sql_store):
        from cashflow_kernel.db.engine import drop_tables

        drop_tables(sql_engine)
        with pytest.raises(StorageError):
            sql_store.set("k", 1)


def test_memory_store_keys():
    store = MemoryKeyValueStore()
    store.set("b", 1)
    store.set("a", 2)
    assert store.keys() == ["a", "b"]
