"""
Remote backends -- where records are mirrored when connectivity allows.

Responsibility:
    Defines the RemoteBackend capability injected into the SyncEngine and two
    HTTP implementations built on ``requests``:

    SheetsScriptBackend
        A spreadsheet macro endpoint.  Every call is a JSON POST to the
        script URL with an ``action`` field:
            salvar_dados   {"sheetsId", "aba", "dados"}  -> write one row
            excluir_dados  {"sheetsId", "aba", "id"}     -> delete one row
            criar_planilha {}                            -> new spreadsheet
        Replies are ``{"success": bool, "id"?: str, "error"?: str}``.

    RestBackend
        ``POST {base}/{collection}`` with the record JSON and
        ``DELETE {base}/{collection}/{id}``.  Any 2xx is success; an ``id``
        field in the reply body is the assigned id.

Architecture position:
    Kernel > Services -- the network boundary for record mirroring.

Invariants enforced:
    - Every request carries a bounded timeout.
    - The backend is expected to tolerate duplicate writes keyed by the
      record id; the record id is always sent.

Failure modes:
    - TransientNetworkError on timeout, connection error or HTTP 5xx.
    - success=False results (never exceptions) for rejections, 4xx,
      unparseable replies, and a missing configuration.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

import requests

from cashflow_kernel.domain.records import Collection, FinancialRecord
from cashflow_kernel.exceptions import (
    RemoteNotConfiguredError,
    RemoteRejectedError,
    TransientNetworkError,
)
from cashflow_kernel.logging_config import get_logger

logger = get_logger("services.remote_backend")

DEFAULT_WRITE_TIMEOUT = 10.0

# Sheet tab per collection
SHEET_TABS: dict[Collection, str] = {
    Collection.INFLOWS: "Entradas",
    Collection.OUTFLOWS: "Saidas",
}


@dataclass(frozen=True, slots=True)
class RemoteWriteResult:
    success: bool
    assigned_id: str | None = None
    error: str | None = None


@dataclass(frozen=True, slots=True)
class RemoteDeleteResult:
    success: bool
    error: str | None = None


class RemoteBackend(ABC):
    """Capability to mirror writes and deletes to a remote store."""

    @abstractmethod
    def write(self, collection: Collection, record: FinancialRecord) -> RemoteWriteResult:
        ...

    @abstractmethod
    def delete(self, collection: Collection, record_id: str) -> RemoteDeleteResult:
        ...


class _HttpBackend(RemoteBackend):
    """Shared request plumbing: timeout, error classification, JSON replies."""

    def __init__(self, timeout: float, session: requests.Session | None):
        self._timeout = timeout
        self._session = session or requests.Session()

    def _request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        try:
            response = self._session.request(method, url, timeout=self._timeout, **kwargs)
        except requests.Timeout as exc:
            raise TransientNetworkError(url, f"timed out after {self._timeout}s") from exc
        except requests.RequestException as exc:
            raise TransientNetworkError(url, type(exc).__name__) from exc

        if response.status_code >= 500:
            raise TransientNetworkError(url, f"HTTP {response.status_code}")
        return response

    @staticmethod
    def _json_body(response: requests.Response) -> dict[str, Any]:
        try:
            body = response.json()
        except ValueError:
            return {}
        return body if isinstance(body, dict) else {}


class SheetsScriptBackend(_HttpBackend):
    """Spreadsheet macro API (see module docstring for the wire format)."""

    def __init__(
        self,
        script_url: str,
        sheets_id: str,
        timeout: float = DEFAULT_WRITE_TIMEOUT,
        session: requests.Session | None = None,
    ):
        super().__init__(timeout, session)
        self.script_url = script_url or ""
        self.sheets_id = sheets_id or ""

    @property
    def configured(self) -> bool:
        return bool(self.script_url and self.sheets_id)

    def _post(self, payload: dict[str, Any]) -> dict[str, Any]:
        response = self._request("POST", self.script_url, json=payload)
        body = self._json_body(response)
        if not 200 <= response.status_code < 300:
            body.setdefault("success", False)
            body.setdefault("error", f"HTTP {response.status_code}")
        return body

    def write(self, collection: Collection, record: FinancialRecord) -> RemoteWriteResult:
        if not self.configured:
            return RemoteWriteResult(success=False, error="spreadsheet not configured")

        body = self._post(
            {
                "action": "salvar_dados",
                "sheetsId": self.sheets_id,
                "aba": SHEET_TABS[Collection(collection)],
                "dados": record.to_dict(),
            }
        )
        if body.get("success") is True:
            return RemoteWriteResult(success=True, assigned_id=body.get("id") or record.id)
        return RemoteWriteResult(success=False, error=str(body.get("error") or "rejected"))

    def delete(self, collection: Collection, record_id: str) -> RemoteDeleteResult:
        if not self.configured:
            return RemoteDeleteResult(success=False, error="spreadsheet not configured")

        body = self._post(
            {
                "action": "excluir_dados",
                "sheetsId": self.sheets_id,
                "aba": SHEET_TABS[Collection(collection)],
                "id": record_id,
            }
        )
        if body.get("success") is True:
            return RemoteDeleteResult(success=True)
        return RemoteDeleteResult(success=False, error=str(body.get("error") or "rejected"))

    def create_spreadsheet(self) -> str:
        """
        Ask the script to create a new spreadsheet and adopt its id.

        Raises:
            RemoteNotConfiguredError: no script URL.
            TransientNetworkError: the script could not be reached.
            RemoteRejectedError: the script refused or replied without an id.
        """
        if not self.script_url:
            raise RemoteNotConfiguredError("create_spreadsheet")

        body = self._post({"action": "criar_planilha"})
        sheets_id = body.get("sheetsId")
        if body.get("success") is not True or not sheets_id:
            raise RemoteRejectedError("create_spreadsheet", str(body.get("error") or "no id returned"))

        self.sheets_id = str(sheets_id)
        logger.info("spreadsheet_created", extra={"sheets_id": self.sheets_id})
        return self.sheets_id


class RestBackend(_HttpBackend):
    """Generic REST endpoint (see module docstring)."""

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_WRITE_TIMEOUT,
        session: requests.Session | None = None,
    ):
        super().__init__(timeout, session)
        self.base_url = (base_url or "").rstrip("/")

    def _url(self, *parts: str) -> str:
        return "/".join([self.base_url, *parts])

    def write(self, collection: Collection, record: FinancialRecord) -> RemoteWriteResult:
        if not self.base_url:
            return RemoteWriteResult(success=False, error="REST endpoint not configured")

        response = self._request(
            "POST",
            self._url(Collection(collection).value),
            json=record.to_dict(),
        )
        if 200 <= response.status_code < 300:
            body = self._json_body(response)
            return RemoteWriteResult(success=True, assigned_id=body.get("id") or record.id)
        return RemoteWriteResult(success=False, error=f"HTTP {response.status_code}")

    def delete(self, collection: Collection, record_id: str) -> RemoteDeleteResult:
        if not self.base_url:
            return RemoteDeleteResult(success=False, error="REST endpoint not configured")

        response = self._request(
            "DELETE",
            self._url(Collection(collection).value, record_id),
        )
        if 200 <= response.status_code < 300:
            return RemoteDeleteResult(success=True)
        return RemoteDeleteResult(success=False, error=f"HTTP {response.status_code}")
