"""
Allocation -- derives the four fund totals from the raw records.

Responsibility:
    ``compute_totals`` applies the fixed classification policy:

        tithe-offering  60% central fund, 40% local fund
        communion       100% missions fund
        construction    100% construction fund
        other kinds     excluded from every total
        every outflow   subtracted in full from the local fund

Architecture position:
    Kernel > Domain -- pure function, no I/O apart from a WARNING log line
    for inflow kinds outside the policy.

Invariants enforced:
    - Totals are never stored; they are recomputed from the collections.
    - No rounding beyond the precision of the Decimal amounts.
    - Totals may be negative; they are never clamped.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from cashflow_kernel.domain.records import FinancialRecord, InflowKind
from cashflow_kernel.logging_config import get_logger

logger = get_logger("domain.allocation")

CENTRAL_SHARE = Decimal("0.6")
LOCAL_SHARE = Decimal("0.4")

ZERO = Decimal("0")


@dataclass(frozen=True, slots=True)
class AllocationTotals:
    central_fund: Decimal = ZERO
    local_fund: Decimal = ZERO
    missions_fund: Decimal = ZERO
    construction_fund: Decimal = ZERO


def compute_totals(
    inflows: Iterable[FinancialRecord],
    outflows: Iterable[FinancialRecord],
) -> AllocationTotals:
    central = local = missions = construction = ZERO

    for record in inflows:
        if record.kind == InflowKind.TITHE_OFFERING.value:
            central += record.amount * CENTRAL_SHARE
            local += record.amount * LOCAL_SHARE
        elif record.kind == InflowKind.COMMUNION.value:
            missions += record.amount
        elif record.kind == InflowKind.CONSTRUCTION.value:
            construction += record.amount
        else:
            logger.warning(
                "unknown_inflow_kind",
                extra={"record_id": record.id, "kind": record.kind},
            )

    for record in outflows:
        local -= record.amount

    return AllocationTotals(
        central_fund=central,
        local_fund=local,
        missions_fund=missions,
        construction_fund=construction,
    )
