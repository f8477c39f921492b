from decimal import Decimal

import pytest

from buzzer.pricing import (
    calculate_discount,
    cart_subtotal,
    grand_total,
    price_breakdown,
    to_money,
    vat,
)
from buzzer.client.cart import CartLine


def test_vat_and_grand_total():
    assert vat("100.00") == Decimal("15.00")
    assert grand_total("100.00") == Decimal("115.00")


def test_vat_rounds_half_up():
    # 0.15 * 0.10 = 0.015
    assert vat("0.10") == Decimal("0.02")


@pytest.mark.parametrize(
    "price,original,expected",
    [
        ("50", "50", None),
        ("50", None, None),
        ("50", "", None),
        ("60", "50", None),
        ("40", "50", 20),
        ("10.00", "12.00", 17),
        (9.99, 19.99, 50),
    ],
)
def test_calculate_discount(price, original, expected):
    assert calculate_discount(price, original) == expected


def test_cart_subtotal_exact(burger, fries):
    lines = [CartLine(product=burger, quantity=2), CartLine(product=fries, quantity=3)]
    assert cart_subtotal(lines) == Decimal("36.50")


def test_price_breakdown(burger):
    summary = price_breakdown([CartLine(product=burger, quantity=10)])
    assert summary.subtotal == Decimal("100.00")
    assert summary.vat == Decimal("15.00")
    assert summary.total == Decimal("115.00")


def test_float_goes_through_str():
    assert to_money(0.1 + 0.2) == Decimal("0.30")


def test_invalid_amount_raises():
    with pytest.raises(ValueError):
        to_money("ten")
