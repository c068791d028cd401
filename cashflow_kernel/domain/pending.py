"""PendingOperation -- a remote write that is waiting to be replayed."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from cashflow_kernel.domain.records import Collection, FinancialRecord


@dataclass(frozen=True, slots=True)
class PendingOperation:
    """
    One queued write intent.

    Owned by the PendingOperationQueue from enqueue until it is removed
    after a confirmed replay.
    """

    op_id: str
    collection: Collection
    record: FinancialRecord
    enqueued_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "op_id": self.op_id,
            "collection": self.collection.value,
            "record": self.record.to_dict(),
            "enqueued_at": self.enqueued_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PendingOperation:
        return cls(
            op_id=str(data["op_id"]),
            collection=Collection(data["collection"]),
            record=FinancialRecord.from_dict(data["record"]),
            enqueued_at=datetime.fromisoformat(data["enqueued_at"]),
        )
