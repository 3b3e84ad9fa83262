"""Mapping from a raw heart rate to the parameters the UI animates with."""

from __future__ import annotations

import math

from hrpulse._constants import DEFAULT_MIN_PERIOD, SECONDS_PER_MINUTE
from hrpulse.models.state import DerivedState


def beat_period(value: float, *, min_period: float = DEFAULT_MIN_PERIOD) -> float:
    """Seconds per beat for *value* beats per minute, never below *min_period*.

    Zero, negative and vanishingly small rates clamp to *min_period*.
    """
    if not value > 0:
        return min_period
    period = SECONDS_PER_MINUTE / value
    if not math.isfinite(period):
        return min_period
    return max(min_period, period)


def map_value(value: float, *, min_period: float = DEFAULT_MIN_PERIOD) -> DerivedState:
    """Derive the display state for an accepted sample value."""
    return DerivedState(
        display_value=round(value),
        period=beat_period(value, min_period=min_period),
        pulsing=True,
    )
