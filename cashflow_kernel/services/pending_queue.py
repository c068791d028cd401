"""
PendingOperationQueue -- durable FIFO of remote writes awaiting replay.

Responsibility:
    Holds the write intents that could not reach the remote backend, in
    submission order, across process restarts.

Architecture position:
    Kernel > Services -- imperative shell over the key-value store.
    Written by SyncEngine.submit(), drained by SyncEngine.reconcile().

Invariants enforced:
    - FIFO: drain_in_order() yields oldest first.
    - Non-destructive drain: an item leaves the queue only through remove()
      after the caller confirmed its replay.  Anything not removed keeps its
      original position.
    - At most one pending write per (collection, record id); a repeated
      enqueue is ignored.

Failure modes:
    - StorageError when the store fails or holds an unreadable document.
"""

from __future__ import annotations

from typing import Any, Iterator

from cashflow_kernel.db.kv_store import KeyValueStore
from cashflow_kernel.domain.pending import PendingOperation
from cashflow_kernel.domain.records import Collection
from cashflow_kernel.exceptions import StorageError
from cashflow_kernel.logging_config import get_logger

logger = get_logger("services.pending_queue")

_QUEUE_KEY = "cashflow.pending_operations"


class PendingOperationQueue:
    """
    Contract:
        Exclusively owns queued PendingOperations until they are removed.
        Single writer; the SyncEngine serialises access.
    """

    def __init__(self, store: KeyValueStore):
        self._store = store

    def _load_raw(self) -> list[dict[str, Any]]:
        raw = self._store.get(_QUEUE_KEY, [])
        if not isinstance(raw, list):
            raise StorageError(_QUEUE_KEY, "expected a list of operations")
        return raw

    def _save_raw(self, raw: list[dict[str, Any]]) -> None:
        if raw:
            self._store.set(_QUEUE_KEY, raw)
        else:
            self._store.delete(_QUEUE_KEY)

    def enqueue(self, op: PendingOperation) -> None:
        raw = self._load_raw()
        for item in raw:
            if (
                item.get("collection") == op.collection.value
                and item.get("record", {}).get("id") == op.record.id
            ):
                logger.info(
                    "pending_operation_already_queued",
                    extra={
                        "collection": op.collection.value,
                        "record_id": op.record.id,
                        "op_id": item.get("op_id"),
                    },
                )
                return

        raw.append(op.to_dict())
        self._save_raw(raw)
        logger.info(
            "pending_operation_enqueued",
            extra={
                "op_id": op.op_id,
                "collection": op.collection.value,
                "record_id": op.record.id,
                "queue_depth": len(raw),
            },
        )

    def drain_in_order(self) -> Iterator[PendingOperation]:
        """
        Lazily yield queued operations, oldest first.

        Reads a snapshot at the first ``next()``; nothing is removed.  The
        caller removes each item with remove() once its replay succeeded.
        """
        raw = self._load_raw()
        for item in raw:
            try:
                op = PendingOperation.from_dict(item)
            except (KeyError, TypeError, ValueError) as exc:
                raise StorageError(_QUEUE_KEY, f"unreadable operation: {exc}") from exc
            yield op

    def remove(self, op: PendingOperation) -> None:
        raw = self._load_raw()
        kept = [item for item in raw if item.get("op_id") != op.op_id]
        if len(kept) == len(raw):
            logger.warning("pending_operation_not_found", extra={"op_id": op.op_id})
            return
        self._save_raw(kept)
        logger.info(
            "pending_operation_removed",
            extra={"op_id": op.op_id, "queue_depth": len(kept)},
        )

    def discard_record(self, collection: Collection, record_id: str) -> int:
        """Drop every pending write for one record.  Returns how many were dropped."""
        collection = Collection(collection)
        raw = self._load_raw()
        kept = [
            item
            for item in raw
            if not (
                item.get("collection") == collection.value
                and item.get("record", {}).get("id") == record_id
            )
        ]
        dropped = len(raw) - len(kept)
        if dropped:
            self._save_raw(kept)
            logger.info(
                "pending_operations_discarded",
                extra={
                    "collection": collection.value,
                    "record_id": record_id,
                    "dropped": dropped,
                },
            )
        return dropped

    def clear(self) -> int:
        count = len(self._load_raw())
        self._store.delete(_QUEUE_KEY)
        return count

    def __len__(self) -> int:
        return len(self._load_raw())
