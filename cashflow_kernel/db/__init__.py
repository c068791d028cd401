"""Database layer: engine helpers, ORM base and the key-value store."""

from cashflow_kernel.db.engine import (
    build_engine,
    build_session_factory,
    create_tables,
    drop_tables,
    session_scope,
)
from cashflow_kernel.db.kv_store import (
    KeyValueStore,
    MemoryKeyValueStore,
    SqlKeyValueStore,
)

__all__ = [
    "build_engine",
    "build_session_factory",
    "create_tables",
    "drop_tables",
    "session_scope",
    "KeyValueStore",
    "MemoryKeyValueStore",
    "SqlKeyValueStore",
]
