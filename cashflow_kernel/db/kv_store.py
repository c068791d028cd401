"""
Module: cashflow_kernel.db.kv_store
Responsibility: The local durable key-value interface used by the record
    store, the pending-operation queue and the session/settings helpers.
Architecture position: Kernel > DB.  Imports models/kv_entry.py only.

Invariants enforced:
    - Values are JSON documents: what get() returns is an independent copy
      of what set() stored; mutating it never changes stored state.
    - Every set()/delete() on SqlKeyValueStore is its own committed
      transaction; there is no multi-key atomicity.

Failure modes:
    - StorageError wraps any SQLAlchemyError, an undecodable stored value, or
      a value that cannot be encoded as JSON.  StorageError is fatal to the
      calling operation.
"""

import json
import threading
from abc import ABC, abstractmethod
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from cashflow_kernel.db.engine import session_scope
from cashflow_kernel.exceptions import StorageError
from cashflow_kernel.logging_config import get_logger
from cashflow_kernel.models.kv_entry import KeyValueEntry

logger = get_logger("db.kv_store")


def _encode(key: str, value: Any) -> str:
    try:
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    except (TypeError, ValueError) as exc:
        raise StorageError(key, f"value is not JSON-serialisable: {exc}") from exc


def _decode(key: str, text: str) -> Any:
    try:
        return json.loads(text)
    except ValueError as exc:
        raise StorageError(key, f"stored value is corrupt: {exc}") from exc


class KeyValueStore(ABC):
    """
    Durable string-keyed storage of JSON-serialisable values.

    Contract:
        get/set/delete are synchronous and durable across restarts (for
        persistent implementations).
    """

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        """Return the stored value for ``key`` or ``default``."""
        ...

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""
        ...

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove ``key``.  Returns False if it was absent."""
        ...


class MemoryKeyValueStore(KeyValueStore):
    """
    Process-local store.  Not durable.

    Values are held as JSON text so they behave exactly like the SQL store
    (copies on read, encoding errors on write).
    """

    def __init__(self) -> None:
        self._data: dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            text = self._data.get(key)
        if text is None:
            return default
        return _decode(key, text)

    def set(self, key: str, value: Any) -> None:
        text = _encode(key, value)
        with self._lock:
            self._data[key] = text

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._data.pop(key, None) is not None

    def keys(self) -> list[str]:
        with self._lock:
            return sorted(self._data)


class SqlKeyValueStore(KeyValueStore):
    """
    Key-value store over the ``kv_entries`` table.

    Contract:
        Receives a session factory from the composition root; opens one
        short transaction per call.
    """

    def __init__(self, session_factory: sessionmaker[Session]):
        self._factory = session_factory

    def get(self, key: str, default: Any = None) -> Any:
        try:
            with session_scope(self._factory) as session:
                text = session.execute(
                    select(KeyValueEntry.value).where(KeyValueEntry.key == key)
                ).scalar_one_or_none()
        except SQLAlchemyError as exc:
            logger.error("kv_read_failed", extra={"key": key}, exc_info=True)
            raise StorageError(key, str(exc)) from exc

        if text is None:
            return default
        return _decode(key, text)

    def set(self, key: str, value: Any) -> None:
        text = _encode(key, value)
        try:
            with session_scope(self._factory) as session:
                entry = session.execute(
                    select(KeyValueEntry).where(KeyValueEntry.key == key)
                ).scalar_one_or_none()
                if entry is None:
                    session.add(KeyValueEntry(key=key, value=text))
                else:
                    entry.value = text
        except SQLAlchemyError as exc:
            logger.error("kv_write_failed", extra={"key": key}, exc_info=True)
            raise StorageError(key, str(exc)) from exc

        logger.debug("kv_written", extra={"key": key, "size": len(text)})

    def delete(self, key: str) -> bool:
        try:
            with session_scope(self._factory) as session:
                entry = session.execute(
                    select(KeyValueEntry).where(KeyValueEntry.key == key)
                ).scalar_one_or_none()
                if entry is None:
                    return False
                session.delete(entry)
        except SQLAlchemyError as exc:
            logger.error("kv_delete_failed", extra={"key": key}, exc_info=True)
            raise StorageError(key, str(exc)) from exc
        return True
