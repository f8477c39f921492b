from __future__ import annotations

"""Money helpers for cart pricing.

All arithmetic is done with :class:`~decimal.Decimal` and rounded to 0.01
with ``ROUND_HALF_UP``. Prices shown before submission are display only; the
backend recomputes the order total from its own catalog.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable, Protocol

ROUND = Decimal("0.01")
VAT_RATE = Decimal("0.15")

Money = Decimal | int | float | str


class _Priced(Protocol):
    price: Decimal


class _Line(Protocol):
    product: _Priced
    quantity: int


@dataclass(frozen=True)
class PriceBreakdown:
    """Subtotal, VAT and total for a set of cart lines."""

    subtotal: Decimal
    vat: Decimal
    total: Decimal


def to_decimal(value: Money) -> Decimal:
    """Convert ``value`` to ``Decimal`` going through ``str`` for floats."""

    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise ValueError(f"invalid amount: {value!r}") from exc


def to_money(value: Money) -> Decimal:
    """Quantize ``value`` to two decimal places."""

    return to_decimal(value).quantize(ROUND, rounding=ROUND_HALF_UP)


def calculate_discount(price: Money, original_price: Money | None) -> int | None:
    """Return the whole-number discount percentage or ``None``.

    A discount exists only when ``original_price`` is present and strictly
    greater than ``price``.
    """

    if original_price is None or original_price == "":
        return None
    current = to_decimal(price)
    original = to_decimal(original_price)
    if original <= current:
        return None
    pct = (original - current) / original * 100
    return int(pct.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def line_subtotal(line: _Line) -> Decimal:
    """Return ``price * quantity`` for a single cart line."""

    return to_decimal(line.product.price) * line.quantity


def cart_subtotal(lines: Iterable[_Line]) -> Decimal:
    """Return the rounded sum of all line subtotals."""

    total = sum((line_subtotal(line) for line in lines), Decimal("0"))
    return to_money(total)


def vat(subtotal: Money) -> Decimal:
    """Return the flat 15% VAT due on ``subtotal``."""

    return to_money(to_decimal(subtotal) * VAT_RATE)


def grand_total(subtotal: Money) -> Decimal:
    """Return ``subtotal`` plus VAT."""

    return to_money(to_money(subtotal) + vat(subtotal))


def price_breakdown(lines: Iterable[_Line]) -> PriceBreakdown:
    """Compute the pre-submission summary shown at checkout."""

    subtotal = cart_subtotal(lines)
    return PriceBreakdown(subtotal=subtotal, vat=vat(subtotal), total=grand_total(subtotal))
