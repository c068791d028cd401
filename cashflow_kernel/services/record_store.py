"""
RecordStore -- durable inflow/outflow collections.

Responsibility:
    Append, remove and list FinancialRecords per collection over a
    KeyValueStore.  The storage key naming is private to this class.

Architecture position:
    Kernel > Services -- imperative shell over the key-value store.

Invariants enforced:
    - append() validates the record before touching storage.
    - id is unique within its collection for the lifetime of the store.
    - list() returns records in insertion order.

Failure modes:
    - ValidationError / DuplicateRecordError from append().
    - StorageError when the store fails or holds an unreadable document.
"""

from __future__ import annotations

from typing import Any

from cashflow_kernel.db.kv_store import KeyValueStore
from cashflow_kernel.domain.records import (
    Collection,
    FinancialRecord,
    validate_record,
)
from cashflow_kernel.exceptions import DuplicateRecordError, StorageError
from cashflow_kernel.logging_config import get_logger

logger = get_logger("services.record_store")

_KEY_PREFIX = "cashflow.records."


class RecordStore:
    """
    Typed repository for the two record collections.

    Non-goals:
        - No multi-record atomicity; records are appended one at a time.
        - No sorting; views sort for display (see LedgerSelector).
    """

    def __init__(self, store: KeyValueStore):
        self._store = store

    @staticmethod
    def _key(collection: Collection) -> str:
        return f"{_KEY_PREFIX}{Collection(collection).value}"

    def _load_raw(self, collection: Collection) -> list[dict[str, Any]]:
        key = self._key(collection)
        raw = self._store.get(key, [])
        if not isinstance(raw, list):
            raise StorageError(key, "expected a list of records")
        return raw

    def _decode(self, collection: Collection, raw: list[dict[str, Any]]) -> list[FinancialRecord]:
        try:
            return [FinancialRecord.from_dict(item) for item in raw]
        except (KeyError, TypeError, ValueError) as exc:
            raise StorageError(self._key(collection), f"unreadable record: {exc}") from exc

    def append(self, collection: Collection, record: FinancialRecord) -> None:
        """
        Add ``record`` to the end of ``collection``.

        Raises:
            ValidationError: record invariants violated.
            DuplicateRecordError: id already present in the collection.
            StorageError: local write failed.
        """
        collection = Collection(collection)
        validate_record(record)

        raw = self._load_raw(collection)
        if any(item.get("id") == record.id for item in raw):
            raise DuplicateRecordError(collection.value, record.id)

        raw.append(record.to_dict())
        self._store.set(self._key(collection), raw)

        logger.info(
            "record_appended",
            extra={
                "collection": collection.value,
                "record_id": record.id,
                "count": len(raw),
            },
        )

    def remove(self, collection: Collection, record_id: str) -> bool:
        """Remove the record with ``record_id``.  Returns False if absent."""
        collection = Collection(collection)
        raw = self._load_raw(collection)
        kept = [item for item in raw if item.get("id") != record_id]
        if len(kept) == len(raw):
            return False

        self._store.set(self._key(collection), kept)
        logger.info(
            "record_removed",
            extra={"collection": collection.value, "record_id": record_id},
        )
        return True

    def list(self, collection: Collection) -> tuple[FinancialRecord, ...]:
        collection = Collection(collection)
        return tuple(self._decode(collection, self._load_raw(collection)))

    def get(self, collection: Collection, record_id: str) -> FinancialRecord | None:
        for record in self.list(collection):
            if record.id == record_id:
                return record
        return None

    def inflows(self) -> tuple[FinancialRecord, ...]:
        return self.list(Collection.INFLOWS)

    def outflows(self) -> tuple[FinancialRecord, ...]:
        return self.list(Collection.OUTFLOWS)

    def clear(self, collection: Collection) -> int:
        """Delete every record in ``collection``.  Returns how many were removed."""
        collection = Collection(collection)
        count = len(self._load_raw(collection))
        self._store.delete(self._key(collection))
        logger.warning(
            "collection_cleared",
            extra={"collection": collection.value, "count": count},
        )
        return count
