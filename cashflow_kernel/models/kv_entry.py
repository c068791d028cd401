"""
Module: cashflow_kernel.models.kv_entry
Responsibility: ORM persistence for the key-value rows that back every piece
    of local durable state (record collections, pending queue, session and
    remote-endpoint settings).
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - key is unique (uq_kv_key); a set() on an existing key overwrites.
    - value holds the JSON text of the stored structure, never a partial
      document.
"""

from datetime import datetime

from sqlalchemy import DateTime, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from cashflow_kernel.db.base import Base


class KeyValueEntry(Base):
    """
    One stored key.

    Non-goals:
        - No history is kept; the previous value is overwritten in place.
    """

    __tablename__ = "kv_entries"

    __table_args__ = (
        UniqueConstraint("key", name="uq_kv_key"),
    )

    key: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
    )

    # JSON-encoded value
    value: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<KeyValueEntry {self.key}>"
