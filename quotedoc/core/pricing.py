"""
Quote arithmetic.

All amounts are whole CLP. Rounding happens at every stage, half-up:
each line is rounded, the rounded lines are summed, and IVA is computed on
the rounded net. Rounding only once at the end can differ by a peso or two
on some inputs; the staged form is what the printed quote shows.
"""

from dataclasses import dataclass
from decimal import Decimal

from .formatting import round_half_up

TAX_RATE = Decimal("0.19")
TAX_LABEL = "IVA (19%)"


def _d(value) -> Decimal:
    return Decimal(str(value))


@dataclass(frozen=True)
class LineAmounts:
    gross: int       # qty × unit price, before discount
    subtotal: int    # qty × unit price × (1 − discount%)

    @property
    def discount(self) -> int:
        return self.gross - self.subtotal


def line_amounts(item) -> LineAmounts:
    qty = _d(item.quantity)
    price = _d(item.unit_price)
    factor = 1 - _d(item.discount_percent) / 100
    return LineAmounts(
        gross=round_half_up(qty * price),
        subtotal=round_half_up(qty * price * factor),
    )


def tax_for(net: int) -> int:
    return round_half_up(_d(net) * TAX_RATE)


@dataclass
class QuoteTotals:
    """Running totals, fed one line at a time by the typesetter."""
    gross: int = 0
    net: int = 0
    lines: int = 0

    def add(self, amounts: LineAmounts) -> "QuoteTotals":
        self.gross += amounts.gross
        self.net += amounts.subtotal
        self.lines += 1
        return self

    @property
    def discount(self) -> int:
        return self.gross - self.net

    @property
    def tax(self) -> int:
        return tax_for(self.net)

    @property
    def grand_total(self) -> int:
        return self.net + self.tax

    def as_dict(self) -> dict:
        return {
            "gross": self.gross, "net": self.net, "discount": self.discount,
            "tax": self.tax, "total": self.grand_total, "lines": self.lines,
        }


def compute_totals(items) -> QuoteTotals:
    totals = QuoteTotals()
    for item in items:
        totals.add(line_amounts(item))
    return totals
