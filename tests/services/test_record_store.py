"""Tests for RecordStore: durable, validated, duplicate-free collections."""

import pytest

from cashflow_kernel.domain.records import Collection
from cashflow_kernel.exceptions import DuplicateRecordError, StorageError, ValidationError
from cashflow_kernel.services.record_store import RecordStore


class TestAppend:
    def test_append_then_list(self, records, make_inflow):
        record = make_inflow()
        records.append(Collection.INFLOWS, record)

        assert records.list(Collection.INFLOWS) == (record,)
        assert records.outflows() == ()

    def test_insertion_order_preserved(self, records, make_outflow):
        first = make_outflow(record_id="b")
        second = make_outflow(record_id="a")
        records.append("outflows", first)
        records.append("outflows", second)

        assert [r.id for r in records.outflows()] == ["b", "a"]

    def test_invalid_record_not_stored(self, records, make_inflow, kv_store):
        with pytest.raises(ValidationError):
            records.append(Collection.INFLOWS, make_inflow(amount="0"))

        assert records.inflows() == ()
        assert kv_store.keys() == []

    def test_duplicate_id_refused(self, records, make_inflow):
        records.append(Collection.INFLOWS, make_inflow(record_id="same"))

        with pytest.raises(DuplicateRecordError) as exc_info:
            records.append(Collection.INFLOWS, make_inflow(record_id="same", amount="5"))

        assert exc_info.value.record_id == "same"
        assert len(records.inflows()) == 1

    def test_same_id_allowed_in_other_collection(self, records, make_inflow, make_outflow):
        records.append(Collection.INFLOWS, make_inflow(record_id="x"))
        records.append(Collection.OUTFLOWS, make_outflow(record_id="x"))

        assert records.get(Collection.INFLOWS, "x") is not None
        assert records.get(Collection.OUTFLOWS, "x") is not None

    def test_logs_append(self, records, make_inflow, captured_logs):
        records.append(Collection.INFLOWS, make_inflow(record_id="r-1"))

        logs = [r for r in captured_logs() if r["message"] == "record_appended"]
        assert logs[0]["record_id"] == "r-1"
        assert logs[0]["count"] == 1


class TestRemoveAndClear:
    def test_remove_existing(self, records, make_inflow):
        records.append(Collection.INFLOWS, make_inflow(record_id="r-1"))
        records.append(Collection.INFLOWS, make_inflow(record_id="r-2"))

        assert records.remove(Collection.INFLOWS, "r-1") is True
        assert [r.id for r in records.inflows()] == ["r-2"]

    def test_remove_missing_returns_false(self, records):
        assert records.remove(Collection.OUTFLOWS, "ghost") is False

    def test_clear_counts(self, records, make_outflow):
        records.append(Collection.OUTFLOWS, make_outflow())
        records.append(Collection.OUTFLOWS, make_outflow())

        assert records.clear(Collection.OUTFLOWS) == 2
        assert records.outflows() == ()


class TestDurability:
    def test_records_survive_new_store_instance(self, sql_store, make_inflow):
        record = make_inflow(amount="12.345")
        RecordStore(sql_store).append(Collection.INFLOWS, record)

        assert RecordStore(sql_store).inflows() == (record,)

    def test_corrupt_document_raises_storage_error(self, records, kv_store):
        kv_store.set("cashflow.records.inflows", {"not": "a list"})
        with pytest.raises(StorageError):
            records.inflows()

    def test_unreadable_record_raises_storage_error(self, records, kv_store):
        kv_store.set("cashflow.records.outflows", [{"id": "x"}])
        with pytest.raises(StorageError):
            records.outflows()
