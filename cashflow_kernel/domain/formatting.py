"""Display helpers for ledger views: pt-BR money, dates and kind labels."""

from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from cashflow_kernel.domain.records import InflowKind

MONEY_DECIMAL_PLACES = 2

INFLOW_KIND_LABELS: dict[str, str] = {
    InflowKind.TITHE_OFFERING.value: "Dízimo e Oferta",
    InflowKind.COMMUNION.value: "Santa Ceia",
    InflowKind.CONSTRUCTION.value: "Oferta Construção",
}


def round_money(amount: Decimal, places: int = MONEY_DECIMAL_PLACES) -> Decimal:
    """Round half-up for display.  Never used on stored amounts."""
    return amount.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def format_currency(amount: Decimal) -> str:
    """
    Format as Brazilian reais: ``R$ 1.234,56``; negatives as ``-R$ 20,00``.
    """
    rounded = round_money(amount)
    sign = "-" if rounded < 0 else ""
    # en-US grouping first, then swap the separators
    text = f"{abs(rounded):,.2f}"
    text = text.replace(",", "_").replace(".", ",").replace("_", ".")
    return f"{sign}R$ {text}"


def format_date(value: date) -> str:
    return value.strftime("%d/%m/%Y")


def inflow_kind_label(kind: str) -> str:
    # Unknown kinds are shown verbatim
    return INFLOW_KIND_LABELS.get(kind, kind)
