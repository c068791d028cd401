"""Read-only views over the ledger."""

from cashflow_kernel.selectors.ledger_selector import (
    DashboardView,
    LedgerRow,
    LedgerSelector,
)

__all__ = ["DashboardView", "LedgerRow", "LedgerSelector"]
