"""
Money value object tests.

Verifies:
- Currency codes are validated and normalized
- Arithmetic refuses mixed currencies
- Percentage math rounds half-up and truncates shares
"""

import pytest

from storefront.errors import CurrencyMismatch
from storefront.money import Money


class TestConstruction:

    def test_currency_is_uppercased(self):
        assert Money(100, "bwp").currency == "BWP"

    def test_rejects_float_amounts(self):
        with pytest.raises(TypeError):
            Money(10.5, "BWP")

    def test_rejects_bool_amounts(self):
        with pytest.raises(TypeError):
            Money(True, "BWP")

    def test_rejects_bad_currency_code(self):
        with pytest.raises(ValueError):
            Money(100, "PULA")


class TestArithmetic:

    def test_add_and_subtract(self):
        assert Money(6000, "BWP") + Money(2000, "BWP") == Money(8000, "BWP")
        assert Money(10000, "BWP") - Money(6000, "BWP") == Money(4000, "BWP")

    def test_mixed_currency_raises(self):
        with pytest.raises(CurrencyMismatch):
            Money(100, "BWP") + Money(100, "ZAR")

    def test_mixed_currency_comparison_raises(self):
        with pytest.raises(CurrencyMismatch):
            Money(100, "BWP") < Money(200, "ZAR")

    def test_ordering(self):
        assert Money(15000, "BWP") > Money(10000, "BWP")
        assert Money(10000, "BWP") >= Money(10000, "BWP")
        assert Money(0, "BWP").compare(Money(1, "BWP")) == -1


class TestPercentages:

    @pytest.mark.parametrize(
        "amount,percentage,expected",
        [
            (10000, 60, 6000),
            (10001, 50, 5001),  # 5000.5 rounds up
            (333, 33, 110),     # 109.89
            (199, 50, 100),     # 99.5 rounds up
            (10000, 100, 10000),
            (10000, 0, 0),
        ],
    )
    def test_multiply_by_percentage_rounds_half_up(self, amount, percentage, expected):
        assert Money(amount, "BWP").multiply_by_percentage(percentage) == Money(expected, "BWP")

    def test_multiply_rejects_out_of_range(self):
        with pytest.raises(ValueError):
            Money(100, "BWP").multiply_by_percentage(101)

    def test_percentage_of_truncates(self):
        assert Money(6666, "BWP").percentage_of(Money(10000, "BWP")) == 66
        assert Money(1, "BWP").percentage_of(Money(10000, "BWP")) == 0

    def test_percentage_of_zero_total_is_zero(self):
        assert Money(0, "BWP").percentage_of(Money(0, "BWP")) == 0


def test_format():
    assert str(Money(1250, "BWP")) == "BWP 12.50"
    assert Money(-5, "BWP").format() == "BWP -0.05"
