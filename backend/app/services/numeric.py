r"""backend\app\services\numeric.py

Rounding and ratio helpers shared by the forecasting services."""

from __future__ import annotations

import math


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves rounded towards +infinity.

    Python's ``round`` uses banker's rounding, which would make ``2.5 -> 2``.
    Unit counts are rounded the conventional way.
    """

    return int(math.floor(float(value) + 0.5))


def clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))


def growth_pct(previous: float, current: float) -> float:
    """Return the percentage change from ``previous`` to ``current``.

    A zero (or non-finite) baseline yields ``0.0`` rather than inf/NaN.
    """

    if not previous or not math.isfinite(previous):
        return 0.0
    change = ((current - previous) / previous) * 100.0
    return change if math.isfinite(change) else 0.0
