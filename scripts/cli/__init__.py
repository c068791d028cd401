"""
Cashflow CLI -- command line front-end for the ledger.

Record inflows and outflows, list them, show fund totals, sync with the
remote backend, and export backups.

Entry point: scripts/cashflow.py or python -m scripts.cli
"""

from scripts.cli.main import main

__all__ = ["main"]
