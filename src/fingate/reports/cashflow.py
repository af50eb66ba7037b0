"""Cashflow aggregation over settlement report rows."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation, Overflow
from typing import Any

CREDIT_FIELD = "NET_CREDIT_AMOUNT"
DEBIT_FIELD = "NET_DEBIT_AMOUNT"

_ZERO = Decimal("0")


def parse_amount(value: str | None) -> Decimal:
    """Parse a report cell as a decimal; anything unparsable counts as zero."""
    if not value:
        return _ZERO
    try:
        amount = Decimal(value.strip())
    except InvalidOperation:
        return _ZERO
    if not amount.is_finite():
        return _ZERO
    try:
        # Unary plus applies the context; exponents beyond Emax overflow here.
        return +amount
    except Overflow:
        return _ZERO


@dataclass(frozen=True)
class CashflowTotals:
    total_inflow: Decimal
    total_outflow: Decimal
    transaction_count: int

    @property
    def net_change(self) -> Decimal:
        return self.total_inflow - self.total_outflow


@dataclass(frozen=True)
class CashflowSummary:
    period_start: date
    period_end: date
    total_inflow: Decimal
    total_outflow: Decimal
    transaction_count: int

    @property
    def net_change(self) -> Decimal:
        return self.total_inflow - self.total_outflow

    @classmethod
    def for_period(cls, period_start: date, period_end: date, totals: CashflowTotals) -> CashflowSummary:
        return cls(
            period_start=period_start,
            period_end=period_end,
            total_inflow=totals.total_inflow,
            total_outflow=totals.total_outflow,
            transaction_count=totals.transaction_count,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "period": {
                "start_date": self.period_start.isoformat(),
                "end_date": self.period_end.isoformat(),
            },
            "total_inflow": float(self.total_inflow),
            "total_outflow": float(self.total_outflow),
            "net_change": float(self.net_change),
            "transaction_count": self.transaction_count,
        }


def aggregate(
    rows: Iterable[Mapping[str, str]],
    credit_field: str = CREDIT_FIELD,
    debit_field: str = DEBIT_FIELD,
) -> CashflowTotals:
    """Sum absolute credit and debit amounts across ``rows``.

    Every row counts as a transaction, including rows whose amounts do not parse.
    """
    inflow = _ZERO
    outflow = _ZERO
    count = 0
    for row in rows:
        inflow += abs(parse_amount(row.get(credit_field)))
        outflow += abs(parse_amount(row.get(debit_field)))
        count += 1
    return CashflowTotals(total_inflow=inflow, total_outflow=outflow, transaction_count=count)
