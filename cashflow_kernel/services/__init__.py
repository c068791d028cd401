"""Services layer: stateful components over storage and the network."""

from cashflow_kernel.services.backup_service import BackupService
from cashflow_kernel.services.connectivity_monitor import (
    ConnectivityMonitor,
    ConnectivityStatus,
)
from cashflow_kernel.services.pending_queue import PendingOperationQueue
from cashflow_kernel.services.record_store import RecordStore
from cashflow_kernel.services.remote_backend import (
    RemoteBackend,
    RemoteDeleteResult,
    RemoteWriteResult,
    RestBackend,
    SheetsScriptBackend,
)
from cashflow_kernel.services.sync_engine import (
    ConnectivityCheck,
    OutcomeStatus,
    ReconcileResult,
    SyncEngine,
    SyncOutcome,
)
from cashflow_kernel.services.user_directory import User, UserDirectory

__all__ = [
    "BackupService",
    "ConnectivityCheck",
    "ConnectivityMonitor",
    "ConnectivityStatus",
    "OutcomeStatus",
    "PendingOperationQueue",
    "ReconcileResult",
    "RecordStore",
    "RemoteBackend",
    "RemoteDeleteResult",
    "RemoteWriteResult",
    "RestBackend",
    "SheetsScriptBackend",
    "SyncEngine",
    "SyncOutcome",
    "User",
    "UserDirectory",
]
