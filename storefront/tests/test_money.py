"""
Tests for the fixed-point Money type.
"""

from decimal import Decimal
from fractions import Fraction

import pytest
from pydantic import BaseModel

from storefront.money import Money, round_half_up, to_fraction


class TestMoneyConstruction:
    def test_of_decimal_string(self) -> None:
        assert Money.of("12.34").minor == 1234

    def test_of_integer_major_units(self) -> None:
        assert Money.of(5).minor == 500

    def test_of_refuses_floats(self) -> None:
        with pytest.raises(TypeError):
            Money.of(0.1)  # type: ignore[arg-type]

    def test_of_refuses_sub_centime_amounts(self) -> None:
        with pytest.raises(ValueError, match="decimal places"):
            Money.of("1.005")

    @pytest.mark.parametrize("amount", ["abc", "NaN", "Infinity"])
    def test_of_refuses_non_numbers(self, amount: str) -> None:
        with pytest.raises(ValueError):
            Money.of(amount)

    def test_amount_always_has_two_places(self) -> None:
        assert Money.of("3").amount == Decimal("3.00")
        assert str(Money.of("3")) == "3.00 MAD"


class TestMoneyArithmetic:
    def test_sums_are_exact(self) -> None:
        # 0.1 + 0.2 is not 0.3 in binary floating point
        total = Money.of("0.10") + Money.of("0.20")
        assert total == Money.of("0.30")

    def test_integer_quantity_multiplication(self) -> None:
        assert Money.of("19.99") * 3 == Money.of("59.97")
        assert 3 * Money.of("19.99") == Money.of("59.97")

    def test_rate_multiplication_rounds_half_up_once(self) -> None:
        # 0.05 * 0.10 = 0.005 rounds up to 0.01
        assert Money.of("0.05").multiply("0.10") == Money.of("0.01")
        # 0.04 * 0.10 = 0.004 rounds down
        assert Money.of("0.04").multiply("0.10") == Money.of("0.00")

    def test_negative_ties_round_away_from_zero(self) -> None:
        assert Money.of("-0.05").multiply("0.10") == Money.of("-0.01")

    def test_rates_must_be_exact(self) -> None:
        with pytest.raises(TypeError):
            Money.of("1.00").multiply(0.2)  # type: ignore[arg-type]

    def test_currency_mismatch_is_refused(self) -> None:
        with pytest.raises(ValueError, match="Currency mismatch"):
            Money.of("1.00") + Money.of("1.00", currency="EUR")

    def test_sum_of_empty_iterable_is_zero(self) -> None:
        assert Money.sum([]).is_zero()

    def test_comparisons(self) -> None:
        assert Money.of("499.99") < Money.of("500.00")
        assert Money.of("500.00") >= Money.of("500.00")


class TestRounding:
    @pytest.mark.parametrize(
        "value,expected",
        [
            (Fraction(1, 2), 1),
            (Fraction(-1, 2), -1),
            (Fraction(149, 100), 1),
            (Fraction(15, 10), 2),
            (Fraction(0), 0),
        ],
    )
    def test_round_half_up(self, value: Fraction, expected: int) -> None:
        assert round_half_up(value) == expected

    def test_to_fraction_accepts_decimal_strings(self) -> None:
        assert to_fraction("0.20") == Fraction(1, 5)

    def test_to_fraction_rejects_garbage(self) -> None:
        with pytest.raises(ValueError):
            to_fraction("twenty percent")


class PricedThing(BaseModel):
    price: Money


class TestMoneyAsPydanticField:
    def test_validates_from_string_and_int(self) -> None:
        assert PricedThing(price="10.50").price == Money.of("10.50")
        assert PricedThing(price=10).price == Money.of("10.00")

    def test_json_numbers_use_their_shortest_repr(self) -> None:
        thing = PricedThing.model_validate_json('{"price": 19.99}')
        assert thing.price == Money.of("19.99")

    def test_serializes_to_json_number(self) -> None:
        assert PricedThing(price="10.50").model_dump(mode="json") == {
            "price": 10.5
        }

    def test_python_dump_keeps_decimal(self) -> None:
        assert PricedThing(price="10.50").model_dump() == {
            "price": Decimal("10.50")
        }

    def test_invalid_amount_is_a_validation_error(self) -> None:
        with pytest.raises(ValueError):
            PricedThing(price="10.505")
