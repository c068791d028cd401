"""
cashflow_services.ledger_orchestrator -- Central DI container for the ledger.

Responsibility:
    Creates every kernel component exactly once from CashflowSettings and
    wires them together: key-value store, RecordStore,
    PendingOperationQueue, ConnectivityMonitor, RemoteBackend, SyncEngine,
    UserDirectory, BackupService and LedgerSelector.  Also carries the
    caller-facing helpers used by the CLI (record an inflow/outflow as the
    logged-in user, reconfigure the remote endpoint).

Architecture position:
    Services -- top of the stack.  The only place where kernel components
    are constructed and composed; there is no global instance.

Invariants enforced:
    - A remote override saved with configure_remote() is persisted in the
      key-value store and takes precedence over the settings file on the
      next start.
    - recorded_by is always the logged-in user's name or "anonymous".

Usage:
    settings = load_settings(Path("cashflow.yaml"))
    ledger = LedgerOrchestrator.from_settings(settings)

    outcome = ledger.record_inflow("tithe-offering", "100.00", "Culto", date(2024, 3, 3))
    if outcome.is_local_only:
        warn_user(outcome.message)

    ledger.sync.check_connectivity()
    view = ledger.ledger.dashboard()
    ledger.close()
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date
from decimal import Decimal
from typing import Any

import requests
from sqlalchemy.engine import Engine

from cashflow_config.loader import resolve_timezone, validate_remote
from cashflow_config.schema import CashflowSettings, RemoteKind, RemoteSettings
from cashflow_kernel.db.engine import build_engine, build_session_factory, create_tables
from cashflow_kernel.db.kv_store import KeyValueStore, SqlKeyValueStore
from cashflow_kernel.domain.clock import Clock, SystemClock
from cashflow_kernel.domain.records import Collection, make_record
from cashflow_kernel.exceptions import RemoteNotConfiguredError, ValidationError
from cashflow_kernel.logging_config import get_logger
from cashflow_kernel.selectors.ledger_selector import LedgerSelector
from cashflow_kernel.services.backup_service import BackupService
from cashflow_kernel.services.connectivity_monitor import ConnectivityMonitor
from cashflow_kernel.services.pending_queue import PendingOperationQueue
from cashflow_kernel.services.record_store import RecordStore
from cashflow_kernel.services.remote_backend import (
    RemoteBackend,
    RestBackend,
    SheetsScriptBackend,
)
from cashflow_kernel.services.sync_engine import OutcomeStatus, SyncEngine, SyncOutcome
from cashflow_kernel.services.user_directory import User, UserDirectory

logger = get_logger("services.ledger_orchestrator")

_REMOTE_OVERRIDE_KEY = "cashflow.settings.remote"
_OVERRIDABLE = ("kind", "endpoint_url", "sheets_id", "health_url")


def build_backend(
    remote: RemoteSettings,
    http_session: requests.Session | None = None,
) -> RemoteBackend | None:
    if remote.kind is RemoteKind.SHEETS:
        return SheetsScriptBackend(
            remote.endpoint_url,
            remote.sheets_id,
            timeout=remote.write_timeout,
            session=http_session,
        )
    if remote.kind is RemoteKind.REST:
        return RestBackend(
            remote.endpoint_url,
            timeout=remote.write_timeout,
            session=http_session,
        )
    return None


def load_remote_override(store: KeyValueStore, remote: RemoteSettings) -> RemoteSettings:
    override = store.get(_REMOTE_OVERRIDE_KEY)
    if not override:
        return remote
    return replace(
        remote,
        kind=RemoteKind(override.get("kind", remote.kind.value)),
        endpoint_url=override.get("endpoint_url", remote.endpoint_url),
        sheets_id=override.get("sheets_id", remote.sheets_id),
        health_url=override.get("health_url", remote.health_url),
    )


class LedgerOrchestrator:
    """
    Owns the wired components for one ledger.

    All components are available as attributes:
        store, records, queue, monitor, backend, sync, users, backup, ledger
    """

    def __init__(
        self,
        settings: CashflowSettings,
        store: KeyValueStore,
        clock: Clock | None = None,
        http_session: requests.Session | None = None,
        engine: Engine | None = None,
    ):
        self.clock = clock or SystemClock(resolve_timezone(settings.timezone))
        self.store = store
        self._engine = engine
        self._http_session = http_session

        self.remote = load_remote_override(store, settings.remote)
        self.settings = replace(settings, remote=self.remote)

        self.records = RecordStore(store)
        self.queue = PendingOperationQueue(store)
        self.monitor = ConnectivityMonitor(
            self.remote.probe_url if self.remote.kind is not RemoteKind.NONE else None,
            timeout=self.remote.probe_timeout,
            session=http_session,
        )
        self.backend = build_backend(self.remote, http_session)
        self.sync = SyncEngine(
            self.records,
            self.queue,
            self.monitor,
            self.backend,
            self.clock,
            write_retries=self.remote.write_retries,
            retry_delay=self.remote.retry_delay,
        )
        self.users = UserDirectory(
            (
                User(u.user_id, u.name, u.role, u.password_sha256)
                for u in settings.users
            ),
            store,
        )
        self.backup = BackupService(self.records, self.queue, self.clock)
        self.ledger = LedgerSelector(self.records)

        logger.info(
            "ledger_ready",
            extra={
                "remote_kind": self.remote.kind.value,
                "pending": len(self.queue),
            },
        )

    @classmethod
    def from_settings(
        cls,
        settings: CashflowSettings,
        clock: Clock | None = None,
        http_session: requests.Session | None = None,
    ) -> LedgerOrchestrator:
        """Build the SQL-backed store from ``settings.storage`` and wire everything."""
        engine = build_engine(settings.storage.database_url, echo=settings.storage.echo)
        create_tables(engine)
        store = SqlKeyValueStore(build_session_factory(engine))
        return cls(settings, store, clock=clock, http_session=http_session, engine=engine)

    def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None

    # ------------------------------------------------------------------
    # Caller-facing helpers
    # ------------------------------------------------------------------

    def _record(
        self,
        collection: Collection,
        kind: str,
        amount: Decimal | int | str,
        description: str,
        occurred_on: date | None,
    ) -> SyncOutcome:
        try:
            record = make_record(
                collection,
                kind,
                amount,
                description,
                occurred_on or self.clock.today(),
                clock=self.clock,
                recorded_by=self.users.actor_name(),
            )
        except ValidationError as exc:
            return SyncOutcome(
                status=OutcomeStatus.REJECTED,
                record_id="",
                message=str(exc),
                error=exc,
            )
        return self.sync.submit(collection, record)

    def record_inflow(
        self,
        kind: str,
        amount: Decimal | int | str,
        description: str,
        occurred_on: date | None = None,
    ) -> SyncOutcome:
        return self._record(Collection.INFLOWS, kind, amount, description, occurred_on)

    def record_outflow(
        self,
        category: str,
        amount: Decimal | int | str,
        description: str,
        occurred_on: date | None = None,
    ) -> SyncOutcome:
        return self._record(Collection.OUTFLOWS, category, amount, description, occurred_on)

    def configure_remote(self, **changes: Any) -> RemoteSettings:
        """
        Change the remote endpoint at runtime and persist the change.

        Accepted keys: kind, endpoint_url, sheets_id, health_url.  The monitor
        returns to "connecting" until the next probe.  Writes queued while no
        backend was set are replayed to the new one by the next
        check_connectivity() that finds it online.

        Raises:
            ConfigurationError: the result would be an invalid remote (for
                example kind sheets without an endpoint URL).  Nothing is
                persisted.
        """
        unknown = set(changes) - set(_OVERRIDABLE)
        if unknown:
            raise ValueError(f"cannot override {sorted(unknown)}")

        if "kind" in changes:
            changes["kind"] = RemoteKind(changes["kind"])
        remote = validate_remote(replace(self.remote, **changes))

        self.store.set(
            _REMOTE_OVERRIDE_KEY,
            {
                "kind": remote.kind.value,
                "endpoint_url": remote.endpoint_url,
                "sheets_id": remote.sheets_id,
                "health_url": remote.health_url,
            },
        )
        self.remote = remote
        self.settings = replace(self.settings, remote=remote)
        self.backend = build_backend(remote, self._http_session)
        self.sync.set_backend(self.backend)
        self.monitor.set_probe_url(remote.probe_url if remote.kind is not RemoteKind.NONE else None)

        logger.info(
            "remote_configured",
            extra={"remote_kind": remote.kind.value, "endpoint_url": remote.endpoint_url},
        )
        return remote

    def create_spreadsheet(self) -> RemoteSettings:
        """
        Have the Sheets script create a new spreadsheet and switch to it.

        The new sheet id is persisted like any other remote override.

        Raises:
            RemoteNotConfiguredError: the remote is not a Sheets script.
            TransientNetworkError: the script could not be reached.
            RemoteRejectedError: the script refused or returned no id.
        """
        if not isinstance(self.backend, SheetsScriptBackend):
            raise RemoteNotConfiguredError("create_spreadsheet")
        sheets_id = self.backend.create_spreadsheet()
        return self.configure_remote(sheets_id=sheets_id)
