#!/usr/bin/env python3
"""
Cashflow ledger CLI.

Usage:
    python3 scripts/cashflow.py add-inflow tithe-offering 100.00 "Culto de domingo"
    python3 scripts/cashflow.py dashboard
"""

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from scripts.cli.main import main  # noqa: E402

if __name__ == "__main__":
    sys.exit(main())
