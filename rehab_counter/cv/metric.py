"""
Arithmetic over optional metrics.

A metric is a float or None. None means the value is unknown (joint not
detected, low confidence, off-screen) and every combinator below returns None
as soon as any operand is None. Nothing is ever replaced by a default.
"""

from typing import Optional

Metric = Optional[float]


def is_known(*values: Metric) -> bool:
    """True when every value is known."""
    return all(v is not None for v in values)


def ema(current: Metric, previous: Metric, alpha: float) -> Metric:
    """Exponential moving average step: alpha * current + (1 - alpha) * previous."""
    if current is None or previous is None:
        return None
    return alpha * current + (1.0 - alpha) * previous


def difference(a: Metric, b: Metric) -> Metric:
    """a - b"""
    if a is None or b is None:
        return None
    return a - b


def abs_difference(a: Metric, b: Metric) -> Metric:
    """|a - b|"""
    diff = difference(a, b)
    return None if diff is None else abs(diff)


def scale(value: Metric, factor: float) -> Metric:
    if value is None:
        return None
    return value * factor
