"""Small numeric helpers shared by the calculators."""

from __future__ import annotations

import math
from typing import Optional


def round_half_up(value: float, ndigits: int = 0) -> float:
    """Round with ties going toward +infinity (2.5 -> 3, -2.5 -> -2).

    Python's round() uses banker's rounding, which makes displayed
    scores flip between neighbours on exact .5 inputs.
    """
    if not math.isfinite(value):
        return value
    factor = 10 ** ndigits
    return math.floor(value * factor + 0.5) / factor


def round_int(value: float) -> int:
    return int(round_half_up(value))


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def safe_div(numerator: float, denominator: float, default: float = 0.0) -> float:
    return numerator / denominator if denominator else default


def finite_or_none(value: Optional[float]) -> Optional[float]:
    """Map inf/nan to None so the value survives strict JSON encoding."""
    if value is None:
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value


def json_safe(obj):
    """Recursively replace non-finite floats inside dicts/lists with None."""
    if isinstance(obj, float):
        return finite_or_none(obj)
    if isinstance(obj, dict):
        return {k: json_safe(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [json_safe(v) for v in obj]
    return obj
