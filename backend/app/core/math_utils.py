"""
Numeric helpers shared by the lifecycle, scoring and analytics code.
"""
import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Union

Number = Union[int, float, Decimal]

TWO_PLACES = Decimal("0.01")


def round_half_up(value: Number) -> int:
    """
    Round to the nearest integer, with halves rounding up.

    Python's built-in round() uses banker's rounding (round(2.5) == 2),
    which would make displayed percentages disagree with clients.
    """
    if isinstance(value, Decimal):
        return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    return int(math.floor(value + 0.5))


def round_to(value: float, places: int) -> float:
    """Round a float to ``places`` decimals, halves away from zero."""
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def to_decimal(value: Number) -> Decimal:
    """Convert a number to Decimal without binary float artifacts."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(value)


def quantize_score(value: Number) -> Decimal:
    """Quantize a score to the two decimal places used for storage."""
    return to_decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
