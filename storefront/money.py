"""
Fixed-point money for all pricing and ledger arithmetic.

Amounts are held as an integer count of minor units (centimes) so that sums
and comparisons are exact. Multiplication by a rate (discount or tax
percentage) is done on exact rationals and rounded exactly once, using
ROUND_HALF_UP: ties go away from zero, so 0.005 becomes 0.01 and -0.005
becomes -0.01.

Money is also a Pydantic-compatible field type: domain models can declare
``price: Money`` and accept ``Money``, ``Decimal``, ``int`` or decimal
strings. JSON serialization emits the decimal amount.
"""

from decimal import Decimal, InvalidOperation
from fractions import Fraction
from typing import Any, Iterable, Union

from pydantic import GetCoreSchemaHandler, GetJsonSchemaHandler
from pydantic.json_schema import JsonSchemaValue
from pydantic_core import core_schema

DEFAULT_CURRENCY = "MAD"
MINOR_UNITS = 2
_SCALE = 10**MINOR_UNITS

Rate = Union[Fraction, Decimal, int, str]


def round_half_up(value: Fraction) -> int:
    """Round an exact rational to the nearest integer, ties away from
    zero."""
    sign = -1 if value < 0 else 1
    magnitude = abs(value)
    quotient, remainder = divmod(magnitude.numerator, magnitude.denominator)
    if 2 * remainder >= magnitude.denominator:
        quotient += 1
    return sign * quotient


def to_fraction(rate: Rate) -> Fraction:
    """Convert a rate to an exact Fraction. Floats are refused."""
    if isinstance(rate, bool) or isinstance(rate, float):
        raise TypeError(f"Rates must be exact, got {type(rate).__name__}")
    if isinstance(rate, (Fraction, int)):
        return Fraction(rate)
    if isinstance(rate, Decimal):
        return Fraction(rate)
    if isinstance(rate, str):
        try:
            return Fraction(Decimal(rate.strip()))
        except InvalidOperation:
            raise ValueError(f"Invalid rate: {rate!r}")
    raise TypeError(f"Unsupported rate type: {type(rate).__name__}")


class Money:
    """Immutable amount of money in integer minor units."""

    __slots__ = ("_minor", "_currency")

    def __init__(self, minor: int, currency: str = DEFAULT_CURRENCY):
        if isinstance(minor, bool) or not isinstance(minor, int):
            raise TypeError("Money minor units must be an int")
        self._minor = minor
        self._currency = currency

    @classmethod
    def zero(cls, currency: str = DEFAULT_CURRENCY) -> "Money":
        return cls(0, currency)

    @classmethod
    def of(
        cls, amount: Union[Decimal, int, str], currency: str = DEFAULT_CURRENCY
    ) -> "Money":
        """Build Money from a decimal amount in major units.

        Raises:
            ValueError: if the amount has more than two decimal places or
                is not a number
            TypeError: for floats, which cannot carry exact amounts
        """
        if isinstance(amount, bool) or isinstance(amount, float):
            raise TypeError("Money amounts must not be floats")
        if isinstance(amount, int):
            return cls(amount * _SCALE, currency)
        try:
            value = Decimal(
                amount.strip() if isinstance(amount, str) else amount
            )
        except InvalidOperation:
            raise ValueError(f"Invalid money amount: {amount!r}")
        if not value.is_finite():
            raise ValueError(f"Invalid money amount: {amount!r}")
        exact = Fraction(value) * _SCALE
        if exact.denominator != 1:
            raise ValueError(
                f"Money amount {amount!r} has more than {MINOR_UNITS} "
                "decimal places"
            )
        return cls(int(exact), currency)

    @classmethod
    def sum(
        cls, amounts: Iterable["Money"], currency: str = DEFAULT_CURRENCY
    ) -> "Money":
        total = cls.zero(currency)
        for amount in amounts:
            total = total + amount
        return total

    @property
    def minor(self) -> int:
        return self._minor

    @property
    def currency(self) -> str:
        return self._currency

    @property
    def amount(self) -> Decimal:
        """Decimal amount in major units, always with two places."""
        return Decimal(self._minor).scaleb(-MINOR_UNITS)

    def multiply(self, rate: Rate) -> "Money":
        """Multiply by an exact rate and round once to a minor unit."""
        exact = Fraction(self._minor) * to_fraction(rate)
        return Money(round_half_up(exact), self._currency)

    def is_zero(self) -> bool:
        return self._minor == 0

    def is_negative(self) -> bool:
        return self._minor < 0

    def _check(self, other: Any) -> "Money":
        if not isinstance(other, Money):
            raise TypeError(
                f"Cannot combine Money with {type(other).__name__}"
            )
        if other._currency != self._currency:
            raise ValueError(
                f"Currency mismatch: {self._currency} vs {other._currency}"
            )
        return other

    def __add__(self, other: "Money") -> "Money":
        other = self._check(other)
        return Money(self._minor + other._minor, self._currency)

    def __sub__(self, other: "Money") -> "Money":
        other = self._check(other)
        return Money(self._minor - other._minor, self._currency)

    def __neg__(self) -> "Money":
        return Money(-self._minor, self._currency)

    def __mul__(self, quantity: int) -> "Money":
        # Only integer quantities; use multiply() for rates.
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            return NotImplemented
        return Money(self._minor * quantity, self._currency)

    __rmul__ = __mul__

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        return (self._minor, self._currency) == (other._minor, other._currency)

    def __hash__(self) -> int:
        return hash((self._minor, self._currency))

    def __lt__(self, other: "Money") -> bool:
        return self._minor < self._check(other)._minor

    def __le__(self, other: "Money") -> bool:
        return self._minor <= self._check(other)._minor

    def __gt__(self, other: "Money") -> bool:
        return self._minor > self._check(other)._minor

    def __ge__(self, other: "Money") -> bool:
        return self._minor >= self._check(other)._minor

    def __repr__(self) -> str:
        return f"Money('{self.amount}', '{self._currency}')"

    def __str__(self) -> str:
        return f"{self.amount} {self._currency}"

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source_type: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        """Validate from Money, Decimal, int or string; serialize to the
        decimal amount (a number in JSON)."""
        return core_schema.no_info_plain_validator_function(
            cls._validate,
            serialization=core_schema.plain_serializer_function_ser_schema(
                cls._serialize, info_arg=True
            ),
        )

    @classmethod
    def __get_pydantic_json_schema__(
        cls, schema: core_schema.CoreSchema, handler: GetJsonSchemaHandler
    ) -> JsonSchemaValue:
        return {"type": "number", "multipleOf": 0.01}

    @classmethod
    def _validate(cls, v: Any) -> "Money":
        if isinstance(v, cls):
            return v
        if isinstance(v, float):
            # JSON numbers arrive as floats; accept them only through their
            # shortest decimal representation.
            v = repr(v)
        if isinstance(v, (Decimal, int, str)) and not isinstance(v, bool):
            return cls.of(v)
        raise ValueError(f"Money expects a decimal amount, got {type(v)}")

    @staticmethod
    def _serialize(
        value: "Money", info: core_schema.SerializationInfo
    ) -> Union[Decimal, float]:
        # The console consumes plain JSON numbers.
        if info.mode == "json":
            return float(value.amount)
        return value.amount
