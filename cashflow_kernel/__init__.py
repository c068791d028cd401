"""
Cashflow Kernel - offline-first ledger core

A small-organization cash ledger with:
- Two record collections (inflows, outflows) in durable local storage
- A durable FIFO of remote writes awaiting replay
- Explicit connectivity probing and ordered, idempotent-safe replay
- Allocation totals derived on demand from the raw records
"""

__version__ = "0.1.0"
