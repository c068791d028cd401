"""
ConnectivityMonitor -- reachability of the configured remote endpoint.

Responsibility:
    Issues an explicit, on-demand reachability probe (HTTP GET with a bounded
    timeout) and remembers the last result.  Listeners are notified on every
    status transition.

Architecture position:
    Kernel > Services -- the network boundary for reachability only.  The
    SyncEngine triggers probes; there is no background polling thread.

Invariants enforced:
    - Status starts at CONNECTING and becomes ONLINE or OFFLINE after the
      first probe.
    - Fails closed: timeout, network error, non-2xx response, or no
      configured endpoint all yield OFFLINE.
    - current_status() never touches the network.

Failure modes:
    - None surface to the caller.  A listener raising is logged and does
      not stop the other listeners.
"""

from __future__ import annotations

import threading
from enum import Enum
from typing import Callable

import requests

from cashflow_kernel.logging_config import get_logger

logger = get_logger("services.connectivity_monitor")

DEFAULT_PROBE_TIMEOUT = 5.0


class ConnectivityStatus(str, Enum):
    CONNECTING = "connecting"
    ONLINE = "online"
    OFFLINE = "offline"


TransitionListener = Callable[[ConnectivityStatus, ConnectivityStatus], None]


class ConnectivityMonitor:
    """
    Args:
        probe_url: URL answered with 2xx when the backend is reachable.  None
            or "" means no remote is configured.
        timeout: Probe timeout in seconds.
        session: Optional ``requests.Session`` (injected in tests).
    """

    def __init__(
        self,
        probe_url: str | None,
        timeout: float = DEFAULT_PROBE_TIMEOUT,
        session: requests.Session | None = None,
    ):
        self._probe_url = probe_url or ""
        self._timeout = timeout
        self._session = session or requests.Session()
        self._status = ConnectivityStatus.CONNECTING
        self._listeners: list[TransitionListener] = []
        self._lock = threading.Lock()

    @property
    def probe_url(self) -> str:
        return self._probe_url

    def set_probe_url(self, probe_url: str | None) -> None:
        """Point the monitor at a new endpoint.  Status goes back to CONNECTING."""
        with self._lock:
            self._probe_url = probe_url or ""
        self._transition(ConnectivityStatus.CONNECTING)

    def on_transition(self, listener: TransitionListener) -> None:
        """Register ``listener(old, new)`` for every status change."""
        self._listeners.append(listener)

    def current_status(self) -> ConnectivityStatus:
        with self._lock:
            return self._status

    def probe(self) -> ConnectivityStatus:
        """Check reachability now and return the new status."""
        new_status = self._check()
        self._transition(new_status)
        return new_status

    def _check(self) -> ConnectivityStatus:
        if not self._probe_url:
            logger.debug("probe_skipped_no_endpoint")
            return ConnectivityStatus.OFFLINE

        try:
            response = self._session.get(self._probe_url, timeout=self._timeout)
        except requests.RequestException as exc:
            logger.info(
                "probe_failed",
                extra={"url": self._probe_url, "reason": type(exc).__name__},
            )
            return ConnectivityStatus.OFFLINE

        if 200 <= response.status_code < 300:
            return ConnectivityStatus.ONLINE

        logger.info(
            "probe_rejected",
            extra={"url": self._probe_url, "status_code": response.status_code},
        )
        return ConnectivityStatus.OFFLINE

    def _transition(self, new_status: ConnectivityStatus) -> None:
        with self._lock:
            old_status = self._status
            self._status = new_status
        if old_status is new_status:
            return

        logger.info(
            "connectivity_changed",
            extra={"from_status": old_status.value, "to_status": new_status.value},
        )
        for listener in list(self._listeners):
            try:
                listener(old_status, new_status)
            except Exception:
                logger.error(
                    "connectivity_listener_failed",
                    extra={"to_status": new_status.value},
                    exc_info=True,
                )
