"""
Pytest fixtures for the cashflow kernel test suite.

Provides:
- Structured-logging capture
- Deterministic clock, in-memory and SQLite key-value stores
- Scripted stand-ins for the HTTP session and the remote backend
- A fully wired SyncEngine

No test touches the network: every HTTP call goes through StubHttpSession.
"""

import json
import logging
from collections import deque
from datetime import date, datetime, timezone
from decimal import Decimal
from io import StringIO

import pytest
import requests

from cashflow_kernel.db.engine import (
    build_engine,
    build_session_factory,
    create_tables,
)
from cashflow_kernel.db.kv_store import MemoryKeyValueStore, SqlKeyValueStore
from cashflow_kernel.domain.clock import DeterministicClock
from cashflow_kernel.domain.records import Collection, FinancialRecord
from cashflow_kernel.exceptions import TransientNetworkError
from cashflow_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from cashflow_kernel.services.connectivity_monitor import ConnectivityMonitor
from cashflow_kernel.services.pending_queue import PendingOperationQueue
from cashflow_kernel.services.record_store import RecordStore
from cashflow_kernel.services.remote_backend import (
    RemoteBackend,
    RemoteDeleteResult,
    RemoteWriteResult,
)
from cashflow_kernel.services.sync_engine import SyncEngine

HEALTH_URL = "http://remote.test/health"
FIXED_NOW = datetime(2024, 3, 3, 12, 0, 0, tzinfo=timezone.utc)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG, stream=StringIO())
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture cashflow_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, engine):
            engine.reconcile()
            logs = captured_logs()
            assert any(r["message"] == "reconcile_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("cashflow_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# HTTP stand-ins
# =============================================================================


class StubResponse:
    def __init__(self, status_code: int = 200, body=None):
        self.status_code = status_code
        self._body = body

    def json(self):
        if self._body is None:
            raise ValueError("no JSON body")
        return self._body


class StubHttpSession:
    """
    Minimal ``requests.Session`` replacement.

    ``health`` is the reply to GET probes: an int status code or an
    exception instance to raise.  ``replies`` is a FIFO of replies (StubResponse
    or exception) for ``request()``; when empty, 200 ``{"success": true}``.
    """

    def __init__(self):
        self.health = 200
        self.replies: deque = deque()
        self.calls: list[dict] = []

    def get(self, url, timeout=None):
        self.calls.append({"method": "GET", "url": url, "timeout": timeout})
        if isinstance(self.health, Exception):
            raise self.health
        return StubResponse(self.health)

    def request(self, method, url, timeout=None, **kwargs):
        self.calls.append({"method": method, "url": url, "timeout": timeout, **kwargs})
        reply = self.replies.popleft() if self.replies else StubResponse(200, {"success": True})
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture
def http_session() -> StubHttpSession:
    return StubHttpSession()


# =============================================================================
# Remote backend stand-in
# =============================================================================


class FakeBackend(RemoteBackend):
    """
    Scripted RemoteBackend.

    ``script`` is a FIFO of outcomes consumed one per write() call:
    "ok", "reject", or "transient".  When empty every write succeeds.
    ``fail_ids`` makes every write of those record ids a transient failure.
    """

    def __init__(self):
        self.script: deque[str] = deque()
        self.fail_ids: set[str] = set()
        self.writes: list[tuple[Collection, str]] = []
        self.attempts: list[str] = []
        self.deletes: list[tuple[Collection, str]] = []
        self.delete_ok = True

    def write(self, collection, record):
        self.attempts.append(record.id)
        step = self.script.popleft() if self.script else "ok"
        if record.id in self.fail_ids or step == "transient":
            raise TransientNetworkError("fake://remote", "scripted failure")
        if step == "reject":
            return RemoteWriteResult(success=False, error="scripted rejection")
        self.writes.append((collection, record.id))
        return RemoteWriteResult(success=True, assigned_id=record.id)

    def delete(self, collection, record_id):
        self.deletes.append((collection, record_id))
        return RemoteDeleteResult(success=self.delete_ok)


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


# =============================================================================
# Core components
# =============================================================================


@pytest.fixture
def clock() -> DeterministicClock:
    return DeterministicClock(FIXED_NOW)


@pytest.fixture
def kv_store() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture
def sql_engine():
    engine = build_engine("sqlite://")
    create_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def sql_store(sql_engine) -> SqlKeyValueStore:
    return SqlKeyValueStore(build_session_factory(sql_engine))


@pytest.fixture
def records(kv_store) -> RecordStore:
    return RecordStore(kv_store)


@pytest.fixture
def queue(kv_store) -> PendingOperationQueue:
    return PendingOperationQueue(kv_store)


@pytest.fixture
def monitor(http_session) -> ConnectivityMonitor:
    return ConnectivityMonitor(HEALTH_URL, timeout=1.0, session=http_session)


@pytest.fixture
def engine(records, queue, monitor, backend, clock) -> SyncEngine:
    return SyncEngine(records, queue, monitor, backend, clock, write_retries=1, retry_delay=0)


@pytest.fixture
def go_online(monitor, http_session):
    def _go():
        http_session.health = 200
        return monitor.probe()

    return _go


@pytest.fixture
def go_offline(monitor, http_session):
    def _go():
        http_session.health = requests.ConnectionError("unreachable")
        return monitor.probe()

    return _go


@pytest.fixture
def make_inflow(clock):
    """Factory for inflow records with sequential ids."""
    counter = {"n": 0}

    def _make(kind="tithe-offering", amount="100", description="Sunday service",
              occurred_on=date(2024, 3, 3), record_id=None):
        counter["n"] += 1
        return FinancialRecord(
            id=record_id or f"in-{counter['n']}",
            collection=Collection.INFLOWS,
            kind=kind,
            amount=Decimal(amount),
            description=description,
            occurred_on=occurred_on,
            recorded_at=clock.now(),
            recorded_by="Treasurer",
        )

    return _make


@pytest.fixture
def make_outflow(clock):
    """Factory for outflow records with sequential ids."""
    counter = {"n": 0}

    def _make(category="utilities", amount="20", description="Electricity bill",
              occurred_on=date(2024, 3, 5), record_id=None):
        counter["n"] += 1
        return FinancialRecord(
            id=record_id or f"out-{counter['n']}",
            collection=Collection.OUTFLOWS,
            kind=category,
            amount=Decimal(amount),
            description=description,
            occurred_on=occurred_on,
            recorded_at=clock.now(),
            recorded_by="Treasurer",
        )

    return _make
