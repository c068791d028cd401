"""
Configuration schema (``cashflow_config.schema``).

Frozen dataclasses describing a parsed settings file.  Every field has a
default, so an empty YAML document yields a local-only ledger in
``cashflow.db``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class RemoteKind(str, Enum):
    NONE = "none"
    SHEETS = "sheets"
    REST = "rest"


@dataclass(frozen=True)
class StorageSettings:
    database_url: str = "sqlite:///cashflow.db"
    echo: bool = False


@dataclass(frozen=True)
class RemoteSettings:
    """
    Remote mirror settings.

    ``endpoint_url`` is the script URL (sheets) or the base URL (rest).
    ``health_url`` is what the connectivity probe requests; it defaults to
    ``endpoint_url``.
    """

    kind: RemoteKind = RemoteKind.NONE
    endpoint_url: str = ""
    sheets_id: str = ""
    health_url: str = ""
    probe_timeout: float = 5.0
    write_timeout: float = 10.0
    write_retries: int = 1
    retry_delay: float = 0.5

    @property
    def probe_url(self) -> str:
        return self.health_url or self.endpoint_url


@dataclass(frozen=True)
class UserDefinition:
    user_id: str
    name: str
    role: str
    password_sha256: str


@dataclass(frozen=True)
class CashflowSettings:
    storage: StorageSettings = field(default_factory=StorageSettings)
    remote: RemoteSettings = field(default_factory=RemoteSettings)
    users: tuple[UserDefinition, ...] = ()
    log_level: str = "INFO"
    # IANA zone for the default transaction date; empty means UTC
    timezone: str = ""
