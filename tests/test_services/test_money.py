"""Tests for money helpers."""
from decimal import Decimal

import pytest

from app.services.money import round2, to_decimal


class TestToDecimal:
    @pytest.mark.parametrize('value,expected', [
        (0.1, Decimal('0.1')),
        ('  12.50 ', Decimal('12.50')),
        (7, Decimal('7')),
        ('9999999999999999', Decimal('9999999999999999')),
    ])
    def test_accepted(self, value, expected):
        assert to_decimal(value) == expected

    @pytest.mark.parametrize('value', [True, None, 'abc', 'NaN', 'Infinity', [1]])
    def test_not_a_number(self, value):
        with pytest.raises(ValueError):
            to_decimal(value)

    @pytest.mark.parametrize('value', ['1e16', '-1e16', 1e30, '1E+400'])
    def test_too_large(self, value):
        with pytest.raises(ValueError, match='too large'):
            to_decimal(value)


class TestRound2:
    def test_half_up(self):
        assert round2(Decimal('2.345')) == Decimal('2.35')
        assert round2(Decimal('-2.345')) == Decimal('-2.35')

    def test_product_of_largest_inputs(self):
        largest = Decimal('9999999999999999.99')
        value = largest * largest * largest

        assert round2(value) == value
        assert round2(value).as_tuple().exponent == -2
