"""
Cashflow configuration.

Settings come from one YAML file (see ``config/cashflow.example.yaml``) and
the ``CASHFLOW_DATABASE_URL`` environment variable.
"""

from cashflow_config.loader import load_settings, parse_settings
from cashflow_config.schema import (
    CashflowSettings,
    RemoteKind,
    RemoteSettings,
    StorageSettings,
    UserDefinition,
)

__all__ = [
    "CashflowSettings",
    "RemoteKind",
    "RemoteSettings",
    "StorageSettings",
    "UserDefinition",
    "load_settings",
    "parse_settings",
]
