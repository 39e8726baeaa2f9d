"""Unit tests for checkout money arithmetic."""

from __future__ import annotations

from decimal import Decimal

import pytest
from storefront.services.checkout import pricing


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("1.005", "1.01"), ("2.675", "2.68"), (3, "3.00"), (0.1, "0.10"), ("-0.005", "-0.01")],
)
def test_to_money_rounds_half_up(raw, expected):
    assert pricing.to_money(raw) == Decimal(expected)


def test_line_and_order_totals():
    subtotal = pricing.sum_money(
        [pricing.line_total(Decimal("499.99"), 2), pricing.line_total(Decimal("0.10"), 3)]
    )
    assert subtotal == Decimal("1000.28")
    assert pricing.order_total(subtotal, Decimal("50"), Decimal("0.28")) == Decimal("1050.00")


def test_floats_do_not_drift():
    total = pricing.sum_money([Decimal("0.1")] * 3)
    assert total == Decimal("0.30")


@pytest.mark.parametrize(
    ("total", "advance", "remaining"),
    [("900.00", "300.00", "600.00"), ("100.00", "33.33", "66.67"), ("0.01", "0.00", "0.01")],
)
def test_cod_split_adds_up_exactly(total, advance, remaining):
    a, r = pricing.cod_split(Decimal(total), 3)
    assert (a, r) == (Decimal(advance), Decimal(remaining))
    assert a + r == Decimal(total)


@pytest.mark.parametrize(
    ("amount", "paise"),
    [("999.98", 99998), ("300", 30000), ("0.01", 1), ("10.005", 1001)],
)
def test_to_minor_units(amount, paise):
    assert pricing.to_minor_units(Decimal(amount)) == paise
