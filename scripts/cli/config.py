"""CLI configuration: settings file location and backup directory."""

import os
from pathlib import Path

# Project root (parent of scripts/)
ROOT = Path(__file__).resolve().parent.parent.parent

# Settings file; CASHFLOW_CONFIG overrides, missing file means defaults
CONFIG_PATH = Path(os.environ.get("CASHFLOW_CONFIG", ROOT / "cashflow.yaml"))

BACKUP_DIR = ROOT / "backups"
