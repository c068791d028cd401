"""
Module: cashflow_kernel.selectors.ledger_selector
Responsibility: Read-only views of the ledger for display: per-collection
    rows (newest first, with labels and formatted amounts) and the dashboard
    allocation totals with the overall balance.
Architecture position: Kernel > Selectors.  Reads through RecordStore only;
    never writes.

Invariants enforced:
    - Totals are recomputed from the stored records on every call; nothing
      derived is persisted.
    - Negative totals are displayed as negative, never clamped.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from cashflow_kernel.domain.allocation import AllocationTotals, compute_totals
from cashflow_kernel.domain.formatting import (
    format_currency,
    format_date,
    inflow_kind_label,
)
from cashflow_kernel.domain.records import Collection, FinancialRecord
from cashflow_kernel.services.record_store import RecordStore


def _net(inflows, outflows) -> Decimal:
    """Total inflows minus total outflows."""
    return sum((r.amount for r in inflows), Decimal("0")) - sum(
        (r.amount for r in outflows), Decimal("0")
    )


@dataclass(frozen=True, slots=True)
class LedgerRow:
    record_id: str
    date: str
    label: str
    description: str
    amount: str
    recorded_by: str


@dataclass(frozen=True, slots=True)
class DashboardView:
    totals: AllocationTotals
    central_fund: str
    local_fund: str
    missions_fund: str
    construction_fund: str
    balance: str
    inflow_count: int
    outflow_count: int


class LedgerSelector:
    """
    Contract:
        Accepts the RecordStore from the caller and returns frozen view DTOs.
    """

    def __init__(self, records: RecordStore):
        self._records = records

    @staticmethod
    def _row(record: FinancialRecord) -> LedgerRow:
        label = inflow_kind_label(record.kind) if record.is_inflow else record.kind
        return LedgerRow(
            record_id=record.id,
            date=format_date(record.occurred_on),
            label=label,
            description=record.description,
            amount=format_currency(record.amount),
            recorded_by=record.recorded_by,
        )

    def rows(self, collection: Collection) -> list[LedgerRow]:
        """Rows sorted by the date the transaction represents, newest first."""
        records = sorted(
            self._records.list(collection),
            key=lambda r: r.occurred_on,
            reverse=True,
        )
        return [self._row(r) for r in records]

    def dashboard(self) -> DashboardView:
        inflows = self._records.inflows()
        outflows = self._records.outflows()
        totals = compute_totals(inflows, outflows)
        return DashboardView(
            totals=totals,
            central_fund=format_currency(totals.central_fund),
            local_fund=format_currency(totals.local_fund),
            missions_fund=format_currency(totals.missions_fund),
            construction_fund=format_currency(totals.construction_fund),
            balance=format_currency(_net(inflows, outflows)),
            inflow_count=len(inflows),
            outflow_count=len(outflows),
        )
