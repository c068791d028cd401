"""
SyncEngine -- offline-first write policy for the ledger.

Responsibility:
    Single entry point for record writes and deletes.  Decides whether a
    write goes local-only or local+remote, queues what could not reach the
    remote, and replays the queue in order when connectivity returns.

Architecture position:
    Kernel > Services -- orchestrates RecordStore, PendingOperationQueue,
    ConnectivityMonitor and an injected RemoteBackend.  Owns no global state.

Invariants enforced:
    - Validation happens before any side effect; a rejected record is
      absent from both the record store and the pending queue.
    - Every accepted record is written to the local store exactly once.
      Replay updates remote state only.
    - Replay preserves submission order: reconcile() stops at the first
      failure so no later item overtakes an unresolved earlier one.
    - A queue item is removed only after its remote write is confirmed
      (at-least-once delivery).
    - Deletes are never queued; a failed remote delete is only logged.
    - Every record accepted without a confirmed remote write is queued, even
      with no backend set, so a backend configured later receives it.
    - All operations are serialised by one re-entrant lock.

Failure modes:
    - StorageError propagates (no fallback below local storage).
    - TransientNetworkError and remote rejections are absorbed and turned
      into an ``accepted-local`` outcome.

Outcome flow for submit():

    validate ──invalid──> REJECTED
       │
    status == online and backend? ──no──> store + enqueue ─> ACCEPTED_LOCAL
       │yes
    remote write (1 + retries on transient errors)
       ├─ ok ───> store ─────────────────────────────────> ACCEPTED_REMOTE
       └─ fail ─> store + enqueue ────────────────────────> ACCEPTED_LOCAL
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable
from uuid import uuid4

from cashflow_kernel.domain.clock import Clock
from cashflow_kernel.domain.pending import PendingOperation
from cashflow_kernel.domain.records import (
    Collection,
    FinancialRecord,
    validate_record,
)
from cashflow_kernel.exceptions import (
    DuplicateRecordError,
    TransientNetworkError,
    ValidationError,
)
from cashflow_kernel.logging_config import LogContext, get_logger
from cashflow_kernel.services.connectivity_monitor import (
    ConnectivityMonitor,
    ConnectivityStatus,
)
from cashflow_kernel.services.pending_queue import PendingOperationQueue
from cashflow_kernel.services.record_store import RecordStore
from cashflow_kernel.services.remote_backend import RemoteBackend

logger = get_logger("services.sync_engine")

DEFAULT_WRITE_RETRIES = 1
DEFAULT_RETRY_DELAY = 0.5


class OutcomeStatus(str, Enum):
    ACCEPTED_LOCAL = "accepted-local"
    ACCEPTED_REMOTE = "accepted-remote"
    REJECTED = "rejected"


@dataclass(frozen=True, slots=True)
class SyncOutcome:
    """
    Result of submit() or delete().

    ``error`` is set only for REJECTED.  ``removed`` is set only by delete()
    and tells whether the record existed locally.
    """

    status: OutcomeStatus
    record_id: str
    message: str = ""
    error: ValidationError | None = None
    removed: bool | None = None

    @property
    def accepted(self) -> bool:
        return self.status is not OutcomeStatus.REJECTED

    @property
    def is_local_only(self) -> bool:
        return self.status is OutcomeStatus.ACCEPTED_LOCAL


@dataclass(frozen=True, slots=True)
class ReconcileResult:
    replayed: int = 0
    failed: int = 0


@dataclass(frozen=True, slots=True)
class ConnectivityCheck:
    status: ConnectivityStatus
    reconciled: ReconcileResult | None = None


class SyncEngine:
    """
    Contract:
        Components are injected; ``backend=None`` runs the ledger local-only.
        Writes still queue, and reconcile() leaves them in place until a
        backend is set.

    Non-goals:
        - No background polling; callers trigger check_connectivity().
        - No conflict resolution between concurrent writers.
        - Remote state is never pulled into the local collections; local is
          authoritative.
    """

    def __init__(
        self,
        records: RecordStore,
        queue: PendingOperationQueue,
        monitor: ConnectivityMonitor,
        backend: RemoteBackend | None,
        clock: Clock,
        write_retries: int = DEFAULT_WRITE_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if write_retries < 0:
            raise ValueError("write_retries must be >= 0")
        self._records = records
        self._queue = queue
        self._monitor = monitor
        self._backend = backend
        self._clock = clock
        self._write_retries = write_retries
        self._retry_delay = retry_delay
        self._sleep = sleep
        self._lock = threading.RLock()

    @property
    def remote_enabled(self) -> bool:
        return self._backend is not None

    def set_backend(self, backend: RemoteBackend | None) -> None:
        with self._lock:
            self._backend = backend

    def pending_count(self) -> int:
        return len(self._queue)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def submit(self, collection: Collection, record: FinancialRecord) -> SyncOutcome:
        """
        Record a new inflow/outflow.

        Raises:
            StorageError: the local write (or enqueue) failed.
        """
        collection = Collection(collection)
        with self._lock, LogContext.bind(
            collection=collection.value,
            record_id=record.id,
            actor_id=record.recorded_by,
        ):
            try:
                if record.collection is not collection:
                    raise ValidationError(
                        {"collection": f"record belongs to {record.collection.value}"}
                    )
                validate_record(record)
                if self._records.get(collection, record.id) is not None:
                    raise DuplicateRecordError(collection.value, record.id)
            except ValidationError as exc:
                logger.info(
                    "record_rejected",
                    extra={"code": exc.code, "field_errors": exc.field_errors},
                )
                return SyncOutcome(
                    status=OutcomeStatus.REJECTED,
                    record_id=record.id,
                    message=str(exc),
                    error=exc,
                )

            status = self._monitor.current_status()
            if self._backend is not None and status is ConnectivityStatus.ONLINE:
                if self._write_remote(collection, record):
                    self._records.append(collection, record)
                    logger.info("record_submitted", extra={"outcome": OutcomeStatus.ACCEPTED_REMOTE.value})
                    return SyncOutcome(
                        status=OutcomeStatus.ACCEPTED_REMOTE,
                        record_id=record.id,
                        message="saved locally and remotely",
                    )

            self._records.append(collection, record)
            self._queue.enqueue(
                PendingOperation(
                    op_id=str(uuid4()),
                    collection=collection,
                    record=record,
                    enqueued_at=self._clock.now(),
                )
            )
            if self._backend is not None:
                message = "saved locally; remote sync pending"
            else:
                message = "saved locally; no remote configured"

            logger.info(
                "record_submitted",
                extra={
                    "outcome": OutcomeStatus.ACCEPTED_LOCAL.value,
                    "connectivity": status.value,
                },
            )
            return SyncOutcome(
                status=OutcomeStatus.ACCEPTED_LOCAL,
                record_id=record.id,
                message=message,
            )

    def delete(self, collection: Collection, record_id: str) -> SyncOutcome:
        """
        Remove a record locally and, best-effort, remotely.

        Any pending write for the record is dropped.  The remote delete is
        still attempted when online: a write that timed out may have landed.
        """
        collection = Collection(collection)
        with self._lock, LogContext.bind(collection=collection.value, record_id=record_id):
            removed = self._records.remove(collection, record_id)
            dropped = self._queue.discard_record(collection, record_id)

            if (
                self._backend is not None
                and self._monitor.current_status() is ConnectivityStatus.ONLINE
            ):
                try:
                    result = self._backend.delete(collection, record_id)
                except TransientNetworkError as exc:
                    logger.warning("remote_delete_failed", extra={"reason": exc.reason})
                else:
                    if result.success:
                        logger.info("record_deleted", extra={"removed": removed, "remote": True})
                        return SyncOutcome(
                            status=OutcomeStatus.ACCEPTED_REMOTE,
                            record_id=record_id,
                            message="deleted locally and remotely",
                            removed=removed,
                        )
                    logger.warning("remote_delete_rejected", extra={"error": result.error})

            logger.info(
                "record_deleted",
                extra={"removed": removed, "remote": False, "dropped_pending": dropped},
            )
            return SyncOutcome(
                status=OutcomeStatus.ACCEPTED_LOCAL,
                record_id=record_id,
                message="deleted locally",
                removed=removed,
            )

    # ------------------------------------------------------------------
    # Replay
    # ------------------------------------------------------------------

    def reconcile(self) -> ReconcileResult:
        """
        Replay queued writes oldest first; stop at the first failure.

        Running it on an empty queue is a no-op returning (0, 0).
        """
        with self._lock:
            if self._backend is None:
                return ReconcileResult()

            replayed = 0
            for op in self._queue.drain_in_order():
                with LogContext.bind(
                    op_id=op.op_id,
                    collection=op.collection.value,
                    record_id=op.record.id,
                ):
                    if not self._write_remote(op.collection, op.record):
                        logger.warning(
                            "replay_stopped",
                            extra={"replayed": replayed, "remaining": len(self._queue)},
                        )
                        return ReconcileResult(replayed=replayed, failed=1)
                    self._queue.remove(op)
                    replayed += 1

            if replayed:
                logger.info("reconcile_completed", extra={"replayed": replayed})
            return ReconcileResult(replayed=replayed, failed=0)

    def check_connectivity(self) -> ConnectivityCheck:
        """Probe now; on a transition to online, reconcile immediately."""
        previous = self._monitor.current_status()
        status = self._monitor.probe()
        if status is ConnectivityStatus.ONLINE and previous is not ConnectivityStatus.ONLINE:
            return ConnectivityCheck(status=status, reconciled=self.reconcile())
        return ConnectivityCheck(status=status)

    def _write_remote(self, collection: Collection, record: FinancialRecord) -> bool:
        attempts = 1 + self._write_retries
        for attempt in range(1, attempts + 1):
            try:
                result = self._backend.write(collection, record)
            except TransientNetworkError as exc:
                logger.warning(
                    "remote_write_failed",
                    extra={
                        "attempt": attempt,
                        "max_attempts": attempts,
                        "reason": exc.reason,
                    },
                )
                if attempt < attempts and self._retry_delay > 0:
                    self._sleep(self._retry_delay)
                continue

            if result.success:
                logger.info(
                    "remote_write_succeeded",
                    extra={"attempt": attempt, "assigned_id": result.assigned_id},
                )
                return True

            # Rejections are not retried
            logger.warning("remote_write_rejected", extra={"error": result.error})
            return False

        logger.warning("remote_write_gave_up", extra={"max_attempts": attempts})
        return False
