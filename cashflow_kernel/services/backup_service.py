"""
BackupService -- JSON export of the ledger and the destructive reset.

Responsibility:
    Produces a snapshot of both collections for download/backup, writes it
    to a dated file, and clears all local ledger state on request.

Architecture position:
    Kernel > Services.  Reads through RecordStore; clear_all() also empties
    the PendingOperationQueue so cleared records are not replayed later.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from cashflow_kernel.domain.clock import Clock
from cashflow_kernel.domain.records import Collection
from cashflow_kernel.logging_config import get_logger
from cashflow_kernel.services.pending_queue import PendingOperationQueue
from cashflow_kernel.services.record_store import RecordStore

logger = get_logger("services.backup_service")


class BackupService:
    def __init__(
        self,
        records: RecordStore,
        queue: PendingOperationQueue,
        clock: Clock,
    ):
        self._records = records
        self._queue = queue
        self._clock = clock

    def export_snapshot(self) -> dict[str, Any]:
        return {
            "exported_at": self._clock.now().isoformat(),
            "inflows": [r.to_dict() for r in self._records.inflows()],
            "outflows": [r.to_dict() for r in self._records.outflows()],
        }

    def write_backup(self, directory: Path) -> Path:
        """Write ``cashflow-backup-YYYY-MM-DD.json`` into ``directory``."""
        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / f"cashflow-backup-{self._clock.today().isoformat()}.json"

        snapshot = self.export_snapshot()
        path.write_text(
            json.dumps(snapshot, indent=2, ensure_ascii=False),
            encoding="utf-8",
        )
        logger.info(
            "backup_written",
            extra={
                "path": str(path),
                "inflows": len(snapshot["inflows"]),
                "outflows": len(snapshot["outflows"]),
            },
        )
        return path

    def clear_all(self) -> dict[str, int]:
        """Remove every record and pending operation.  Cannot be undone."""
        counts = {
            Collection.INFLOWS.value: self._records.clear(Collection.INFLOWS),
            Collection.OUTFLOWS.value: self._records.clear(Collection.OUTFLOWS),
            "pending": self._queue.clear(),
        }
        logger.warning("ledger_cleared", extra=counts)
        return counts
