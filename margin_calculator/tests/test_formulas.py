"""
Tests: pricing formulas and numeric input coercion.

Run with:
    pytest margin_calculator/tests/test_formulas.py -v
"""

import pytest

from margin_calculator.engine import formulas
from margin_calculator.utils.numbers import coerce_amount, coerce_target


class TestFormulas:
    def test_markup_and_margin(self):
        assert formulas.markup_from(10, 12.5) == pytest.approx(25.0)
        assert formulas.margin_from(10, 12.5) == pytest.approx(20.0)

    def test_division_guards(self):
        assert formulas.markup_from(0, 10) == 0
        assert formulas.margin_from(10, 0) == 0

    def test_reverse_prices(self):
        assert formulas.price_from_markup(10, 25) == pytest.approx(12.5)
        assert formulas.price_from_margin(10, 20) == pytest.approx(12.5)
        assert formulas.cost_from_markup(12.5, 25) == pytest.approx(10.0)
        assert formulas.cost_from_margin(12.5, 20) == pytest.approx(10.0)

    @pytest.mark.parametrize("margin", [100, 150, 1000])
    def test_degenerate_margin_clamps_to_cost(self, margin):
        assert formulas.price_from_margin(10, margin) == 10

    def test_degenerate_markup_clamps_to_price(self):
        assert formulas.cost_from_markup(10, -100) == 10
        assert formulas.cost_from_markup(10, -250) == 10


class TestCoercion:
    @pytest.mark.parametrize("raw, expected", [
        (10, 10.0),
        (12.5, 12.5),
        ("7", 7.0),
        (" 3.25 ", 3.25),
        ("-4", -4.0),
    ])
    def test_numbers(self, raw, expected):
        assert coerce_amount(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "  ", "12abc", "nan", "inf", float("nan"), True])
    def test_unusable_values_are_absent(self, raw):
        assert coerce_amount(raw) is None

    def test_target_falls_back_to_zero(self):
        assert coerce_target("abc") == 0.0
        assert coerce_target("35") == 35.0
