"""
PURPOSE: Mathematical utilities for tick arithmetic, bounds clamping and
numeric extraction used by the normalizer and the compiler.
"""

import math
import numbers
import re
from decimal import Decimal
from typing import Optional

_NUMBER_PATTERN = re.compile(r"(\d+(?:\.\d+)?)")

# Float noise tolerance when converting price distances into whole ticks
_TICK_EPSILON = 1e-9


def clamp(value: float, low: float, high: float) -> float:
    """
    PURPOSE: Clamp a value into the inclusive range [low, high].

    Args:
        value: Value to clamp.
        low: Lower bound.
        high: Upper bound.

    Returns:
        float: Clamped value.
    """
    return max(low, min(high, value))


def clamp_int(value: float, bounds: tuple[int, int]) -> int:
    """Round `value` to the nearest int and clamp it into `bounds`."""
    low, high = bounds
    return int(clamp(int(round(value)), low, high))


def is_finite_number(value: object) -> bool:
    """True for real numbers (numpy scalars and Decimal included) that are finite; bools excluded."""
    if isinstance(value, Decimal):
        return value.is_finite()
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        return False
    return math.isfinite(value)


def price_to_ticks(distance: float, tick_size: float) -> float:
    """
    PURPOSE: Convert an absolute price distance into a (fractional) tick count.

    Args:
        distance: Price distance (sign ignored).
        tick_size: Instrument minimum price increment.

    Returns:
        float: Number of ticks, 0.0 when the tick size is not positive.
    """
    if tick_size <= 0:
        return 0.0
    return abs(distance) / tick_size


def ticks_to_price(ticks: float, tick_size: float) -> float:
    """Convert a tick count into a price distance."""
    return ticks * tick_size


def round_to_tick(price: float, tick_size: float) -> float:
    """
    PURPOSE: Snap a price onto the instrument's tick grid.

    Args:
        price: Raw price.
        tick_size: Instrument minimum price increment.

    Returns:
        float: Nearest valid price (unchanged when the tick size is not positive).
    """
    if tick_size <= 0:
        return price
    return round(round(price / tick_size) * tick_size, 10)


def floor_with_tolerance(value: float) -> int:
    """Floor that does not lose a whole unit to float noise (99.9999999 -> 100)."""
    return math.floor(value + _TICK_EPSILON)


def first_number(text: str) -> Optional[float]:
    """
    PURPOSE: Pull the first decimal number out of free text.

    Args:
        text: Free-text fragment description.

    Returns:
        Optional[float]: First number found, or None.
    """
    matched = _NUMBER_PATTERN.search(text or "")
    if not matched:
        return None
    return float(matched.group(1))
