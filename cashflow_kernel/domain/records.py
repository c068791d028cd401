"""
Records -- the two kinds of monetary events kept by the ledger.

Responsibility:
    Defines FinancialRecord (an inflow or an outflow), its storage/wire form,
    creation via ``make_record`` and the invariant check ``validate_record``.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - amount is a finite Decimal > 0 (floats are refused at creation).
    - description and kind are non-blank.
    - id is non-blank; uniqueness within a collection is the RecordStore's job.

Failure modes:
    - ValidationError from validate_record()/make_record() listing every
      violated field.
    - ValueError/KeyError from FinancialRecord.from_dict() on a malformed
      document (callers reading storage translate this to StorageError).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any
from uuid import uuid4

from cashflow_kernel.domain.clock import Clock
from cashflow_kernel.exceptions import ValidationError

ANONYMOUS_ACTOR = "anonymous"


class Collection(str, Enum):
    """The two record collections."""

    INFLOWS = "inflows"
    OUTFLOWS = "outflows"


class InflowKind(str, Enum):
    """Inflow kinds with an allocation rule.  Other kinds are accepted."""

    TITHE_OFFERING = "tithe-offering"
    COMMUNION = "communion"
    CONSTRUCTION = "construction"


@dataclass(frozen=True, slots=True)
class FinancialRecord:
    """
    One inflow or outflow.

    ``kind`` is the inflow kind for inflows and the free-form category for
    outflows.
    """

    id: str
    collection: Collection
    kind: str
    amount: Decimal
    description: str
    occurred_on: date
    recorded_at: datetime
    recorded_by: str = ANONYMOUS_ACTOR

    @property
    def is_inflow(self) -> bool:
        return self.collection is Collection.INFLOWS

    def to_dict(self) -> dict[str, Any]:
        """Storage and wire form.  Amount is a string to keep precision."""
        return {
            "id": self.id,
            "collection": self.collection.value,
            "kind": self.kind,
            "amount": str(self.amount),
            "description": self.description,
            "occurred_on": self.occurred_on.isoformat(),
            "recorded_at": self.recorded_at.isoformat(),
            "recorded_by": self.recorded_by,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FinancialRecord:
        try:
            amount = Decimal(str(data["amount"]))
        except InvalidOperation as exc:
            raise ValueError(f"invalid amount {data['amount']!r}") from exc
        return cls(
            id=str(data["id"]),
            collection=Collection(data["collection"]),
            kind=str(data["kind"]),
            amount=amount,
            description=str(data["description"]),
            occurred_on=date.fromisoformat(data["occurred_on"]),
            recorded_at=datetime.fromisoformat(data["recorded_at"]),
            recorded_by=str(data.get("recorded_by") or ANONYMOUS_ACTOR),
        )


def coerce_amount(value: Decimal | int | str) -> Decimal:
    """
    Convert user input to a Decimal amount.

    Raises:
        ValidationError: for floats, bools and unparseable strings.
    """
    if isinstance(value, (float, bool)):
        raise ValidationError({"amount": f"use Decimal or str, not {type(value).__name__}"})
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise ValidationError({"amount": f"not a number: {value!r}"}) from exc


def validate_record(record: FinancialRecord) -> None:
    """
    Check the record invariants.

    Raises:
        ValidationError: with one entry per violated field.
    """
    errors: dict[str, str] = {}

    if not record.id or not record.id.strip():
        errors["id"] = "must not be blank"

    amount = record.amount
    if not isinstance(amount, Decimal) or not amount.is_finite():
        errors["amount"] = "must be a finite decimal"
    elif amount <= 0:
        errors["amount"] = "must be greater than zero"

    if not record.description or not record.description.strip():
        errors["description"] = "must not be blank"

    if not record.kind or not record.kind.strip():
        label = "kind" if record.is_inflow else "category"
        errors["kind"] = f"{label} must not be blank"

    if errors:
        raise ValidationError(errors)


def make_record(
    collection: Collection | str,
    kind: str,
    amount: Decimal | int | str,
    description: str,
    occurred_on: date,
    *,
    clock: Clock,
    recorded_by: str | None = None,
    record_id: str | None = None,
) -> FinancialRecord:
    """
    Create a new record with a fresh id and the current recording time.

    The result is not validated here so that an invalid submission can be
    reported as a rejected outcome by the caller; only the amount type is
    checked, since a float cannot be represented faithfully.
    """
    return FinancialRecord(
        id=record_id or str(uuid4()),
        collection=Collection(collection),
        kind=kind,
        amount=coerce_amount(amount),
        description=description,
        occurred_on=occurred_on,
        recorded_at=clock.now(),
        recorded_by=recorded_by or ANONYMOUS_ACTOR,
    )
