"""Tests for LedgerSelector display views."""

from datetime import date
from decimal import Decimal

import pytest

from cashflow_kernel.domain.records import Collection
from cashflow_kernel.selectors.ledger_selector import LedgerSelector


@pytest.fixture
def selector(records):
    return LedgerSelector(records)


def test_rows_newest_first(selector, records, make_inflow):
    records.append(Collection.INFLOWS, make_inflow(record_id="old", occurred_on=date(2024, 1, 7)))
    records.append(Collection.INFLOWS, make_inflow(record_id="new", occurred_on=date(2024, 2, 4)))

    assert [row.record_id for row in selector.rows(Collection.INFLOWS)] == ["new", "old"]


def test_inflow_row_formatting(selector, records, make_inflow):
    records.append(
        Collection.INFLOWS,
        make_inflow(kind="communion", amount="1500.5", occurred_on=date(2024, 3, 3)),
    )

    row = selector.rows(Collection.INFLOWS)[0]

    assert row.label == "Santa Ceia"
    assert row.amount == "R$ 1.500,50"
    assert row.date == "03/03/2024"
    assert row.recorded_by == "Treasurer"


def test_outflow_row_shows_category(selector, records, make_outflow):
    records.append(Collection.OUTFLOWS, make_outflow(category="Manutenção"))
    assert selector.rows(Collection.OUTFLOWS)[0].label == "Manutenção"


def test_dashboard_balance_counts_every_inflow(selector, records, make_inflow, make_outflow):
    records.append(Collection.INFLOWS, make_inflow(amount="100"))
    records.append(Collection.INFLOWS, make_inflow(kind="unknown-kind", amount="5"))
    records.append(Collection.OUTFLOWS, make_outflow(amount="120.50"))

    assert selector.dashboard().balance == "-R$ 15,50"


def test_dashboard(selector, records, make_inflow, make_outflow):
    records.append(Collection.INFLOWS, make_inflow(kind="tithe-offering", amount="100"))
    records.append(Collection.INFLOWS, make_inflow(kind="communion", amount="50"))
    records.append(Collection.INFLOWS, make_inflow(kind="construction", amount="30"))
    records.append(Collection.OUTFLOWS, make_outflow(amount="20"))

    view = selector.dashboard()

    assert view.central_fund == "R$ 60,00"
    assert view.local_fund == "R$ 20,00"
    assert view.missions_fund == "R$ 50,00"
    assert view.construction_fund == "R$ 30,00"
    assert view.inflow_count == 3
    assert view.outflow_count == 1


def test_dashboard_negative_local_fund(selector, records, make_outflow):
    records.append(Collection.OUTFLOWS, make_outflow(amount="20"))

    view = selector.dashboard()

    assert view.totals.local_fund == Decimal("-20")
    assert view.local_fund == "-R$ 20,00"


def test_dashboard_reflects_deletes(selector, records, make_inflow):
    records.append(Collection.INFLOWS, make_inflow(record_id="gone", kind="communion", amount="10"))
    records.remove(Collection.INFLOWS, "gone")

    assert selector.dashboard().missions_fund == "R$ 0,00"
