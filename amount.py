from decimal import Decimal, InvalidOperation, ROUND_DOWN
from functools import total_ordering
from typing import Any, Union

from pydantic_core import core_schema

PRECISION = 4
SCALE = 10 ** PRECISION
QUANTUM = Decimal(1).scaleb(-PRECISION)


@total_ordering
class Amount:
    """Money as an integer count of ten-thousandths of a unit.

    Parsing truncates toward zero at four decimal places. Floats are
    rejected outright.
    """

    __slots__ = ("_units",)

    def __init__(self, units: int = 0):
        if isinstance(units, bool) or not isinstance(units, int):
            raise TypeError("Amount units must be an integer")
        self._units = units

    @classmethod
    def zero(cls) -> "Amount":
        return cls(0)

    @classmethod
    def parse(cls, value: Union["Amount", Decimal, int, str]) -> "Amount":
        if isinstance(value, Amount):
            return value
        if isinstance(value, float):
            raise ValueError("Floating point amounts are not accepted")
        if isinstance(value, bool):
            raise ValueError("Boolean is not a valid amount")
        if isinstance(value, int):
            return cls(value * SCALE)
        if isinstance(value, str):
            value = value.strip()
            if not value:
                raise ValueError("Amount cannot be empty")
            try:
                value = Decimal(value)
            except InvalidOperation:
                raise ValueError(f"Invalid amount: {value!r}") from None
        if not isinstance(value, Decimal):
            raise ValueError(f"Unsupported amount type: {type(value).__name__}")
        if not value.is_finite():
            raise ValueError(f"Amount must be finite, got {value}")

        try:
            truncated = value.quantize(QUANTUM, rounding=ROUND_DOWN)
        except InvalidOperation:
            raise ValueError(f"Amount out of range: {value}") from None
        return cls(int(truncated.scaleb(PRECISION)))

    @property
    def units(self) -> int:
        return self._units

    def is_negative(self) -> bool:
        return self._units < 0

    def to_decimal(self) -> Decimal:
        return Decimal(str(self))

    def __add__(self, other: "Amount") -> "Amount":
        if not isinstance(other, Amount):
            return NotImplemented
        return Amount(self._units + other._units)

    def __sub__(self, other: "Amount") -> "Amount":
        if not isinstance(other, Amount):
            return NotImplemented
        return Amount(self._units - other._units)

    def __neg__(self) -> "Amount":
        return Amount(-self._units)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Amount):
            return self._units == other._units
        if isinstance(other, (Decimal, int)) and not isinstance(other, bool):
            return self.to_decimal() == other
        return NotImplemented

    def __lt__(self, other: "Amount") -> bool:
        if not isinstance(other, Amount):
            return NotImplemented
        return self._units < other._units

    def __hash__(self) -> int:
        # Equal Decimals and ints must hash alike
        return hash(self.to_decimal())

    def __bool__(self) -> bool:
        return self._units != 0

    def __str__(self) -> str:
        whole, fraction = divmod(abs(self._units), SCALE)
        sign = "-" if self._units < 0 else ""
        return f"{sign}{whole}.{fraction:0{PRECISION}d}"

    def __repr__(self) -> str:
        return f"Amount('{self}')"

    @classmethod
    def __get_pydantic_core_schema__(cls, source_type: Any, handler: Any) -> core_schema.CoreSchema:
        return core_schema.no_info_plain_validator_function(
            cls.parse,
            serialization=core_schema.plain_serializer_function_ser_schema(str),
        )
