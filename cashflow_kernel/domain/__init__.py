"""Domain layer: pure types and functions, no persistence or network."""

from cashflow_kernel.domain.allocation import AllocationTotals, compute_totals
from cashflow_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from cashflow_kernel.domain.pending import PendingOperation
from cashflow_kernel.domain.records import (
    ANONYMOUS_ACTOR,
    Collection,
    FinancialRecord,
    InflowKind,
    make_record,
    validate_record,
)

__all__ = [
    "ANONYMOUS_ACTOR",
    "AllocationTotals",
    "Clock",
    "Collection",
    "DeterministicClock",
    "FinancialRecord",
    "InflowKind",
    "PendingOperation",
    "SystemClock",
    "compute_totals",
    "make_record",
    "validate_record",
]
