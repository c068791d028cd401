"""
Configuration Loader (``cashflow_config.loader``).

Responsibility
--------------
Loads a YAML settings file and parses it into the frozen dataclasses of
``cashflow_config.schema``.

Invariants enforced
-------------------
* Unknown top-level sections and unknown keys are rejected, so a typo
  never silently falls back to a default.
* Timeouts must be positive and retries non-negative.
* ``CASHFLOW_DATABASE_URL`` in the environment overrides
  ``storage.database_url``.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``ConfigurationError`` naming the file.
* Invalid values  -> ``ConfigurationError``.
"""

from __future__ import annotations

import logging
import os
from dataclasses import fields, replace
from datetime import timezone, tzinfo
from pathlib import Path
from typing import Any, Mapping
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

from cashflow_config.schema import (
    CashflowSettings,
    RemoteKind,
    RemoteSettings,
    StorageSettings,
    UserDefinition,
)
from cashflow_kernel.exceptions import ConfigurationError

DATABASE_URL_ENV = "CASHFLOW_DATABASE_URL"

_TOP_LEVEL_KEYS = {"storage", "remote", "users", "log_level", "timezone"}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        ConfigurationError: if the file is not valid YAML or the document is
            not a mapping.
    """
    with open(path, encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(str(path), f"invalid YAML: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(str(path), "top level must be a mapping")
    return data


def _check_keys(section: str, data: Mapping[str, Any], allowed: set[str]) -> None:
    unknown = set(data) - allowed
    if unknown:
        raise ConfigurationError(section, f"unknown keys {sorted(unknown)}")


def _field_names(cls: type) -> set[str]:
    return {f.name for f in fields(cls)}


def parse_storage(data: Mapping[str, Any] | None) -> StorageSettings:
    data = data or {}
    _check_keys("storage", data, _field_names(StorageSettings))
    return StorageSettings(
        database_url=str(data.get("database_url") or StorageSettings().database_url),
        echo=bool(data.get("echo", False)),
    )


def parse_remote(data: Mapping[str, Any] | None) -> RemoteSettings:
    data = data or {}
    _check_keys("remote", data, _field_names(RemoteSettings))
    defaults = RemoteSettings()

    try:
        kind = RemoteKind(str(data.get("kind", defaults.kind.value)).lower())
    except ValueError as exc:
        allowed = ", ".join(k.value for k in RemoteKind)
        raise ConfigurationError("remote.kind", f"expected one of {allowed}") from exc

    try:
        settings = RemoteSettings(
            kind=kind,
            endpoint_url=str(data.get("endpoint_url") or ""),
            sheets_id=str(data.get("sheets_id") or ""),
            health_url=str(data.get("health_url") or ""),
            probe_timeout=float(data.get("probe_timeout", defaults.probe_timeout)),
            write_timeout=float(data.get("write_timeout", defaults.write_timeout)),
            write_retries=int(data.get("write_retries", defaults.write_retries)),
            retry_delay=float(data.get("retry_delay", defaults.retry_delay)),
        )
    except (TypeError, ValueError) as exc:
        raise ConfigurationError("remote", str(exc)) from exc

    return validate_remote(settings)


def validate_remote(settings: RemoteSettings) -> RemoteSettings:
    """Range and consistency checks shared by the loader and runtime overrides."""
    if settings.probe_timeout <= 0:
        raise ConfigurationError("remote.probe_timeout", "must be positive")
    if settings.write_timeout <= 0:
        raise ConfigurationError("remote.write_timeout", "must be positive")
    if settings.write_retries < 0:
        raise ConfigurationError("remote.write_retries", "must not be negative")
    if settings.retry_delay < 0:
        raise ConfigurationError("remote.retry_delay", "must not be negative")
    if settings.kind is not RemoteKind.NONE and not settings.endpoint_url:
        raise ConfigurationError("remote.endpoint_url", f"required for kind {settings.kind.value}")
    return settings


def parse_user(data: Mapping[str, Any]) -> UserDefinition:
    _check_keys("users[]", data, _field_names(UserDefinition))
    try:
        user = UserDefinition(
            user_id=str(data["user_id"]),
            name=str(data["name"]),
            role=str(data.get("role", "")),
            password_sha256=str(data["password_sha256"]).lower(),
        )
    except KeyError as exc:
        raise ConfigurationError("users[]", f"missing {exc.args[0]}") from exc

    if len(user.password_sha256) != 64:
        raise ConfigurationError(f"users[{user.user_id}].password_sha256", "expected 64 hex characters")
    return user


def resolve_timezone(name: str) -> tzinfo:
    """``""`` is UTC; anything else must be an IANA zone name."""
    if not name:
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ConfigurationError("timezone", f"unknown time zone {name!r}") from exc


def parse_settings(data: Mapping[str, Any]) -> CashflowSettings:
    _check_keys("settings", data, _TOP_LEVEL_KEYS)

    users = tuple(parse_user(u) for u in (data.get("users") or []))
    ids = [u.user_id for u in users]
    if len(ids) != len(set(ids)):
        raise ConfigurationError("users", "duplicate user_id")

    log_level = str(data.get("log_level", "INFO")).upper()
    if not isinstance(logging.getLevelName(log_level), int):
        raise ConfigurationError("log_level", f"unknown level {log_level}")

    tz_name = str(data.get("timezone") or "")
    resolve_timezone(tz_name)

    return CashflowSettings(
        storage=parse_storage(data.get("storage")),
        remote=parse_remote(data.get("remote")),
        users=users,
        log_level=log_level,
        timezone=tz_name,
    )


def apply_environment(
    settings: CashflowSettings,
    environ: Mapping[str, str] | None = None,
) -> CashflowSettings:
    environ = os.environ if environ is None else environ
    url = environ.get(DATABASE_URL_ENV)
    if url:
        return replace(settings, storage=replace(settings.storage, database_url=url))
    return settings


def load_settings(
    path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> CashflowSettings:
    """Load settings from ``path`` (defaults only when None) plus environment."""
    data = load_yaml_file(path) if path is not None else {}
    return apply_environment(parse_settings(data), environ)
