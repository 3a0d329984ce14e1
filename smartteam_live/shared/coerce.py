import math
from typing import Any, TypeVar

T = TypeVar("T")

def to_finite_number(value: Any, fallback: T) -> float | T:
    """
    Coerce a loosely typed wire value to a finite float.
    Numbers and numeric strings are accepted, booleans count as 0/1 and a
    blank string counts as 0. Anything else (None, NaN, inf, containers,
    garbage strings) yields `fallback`.
    """
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return fallback
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        try:
            number = float(text)
        except ValueError:
            return fallback
    else:
        return fallback
    return number if math.isfinite(number) else fallback

def round2(value: float) -> float:
    """Round half-up to 2 decimals. Never returns -0.0."""
    rounded = math.floor(value * 100 + 0.5) / 100
    return 0.0 if rounded == 0 else rounded
