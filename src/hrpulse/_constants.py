"""Internal constants shared across the library."""

USER_AGENT = "hrpulse/1"

# ------------------------------------------------------------------
# Metric and capability identifiers
# ------------------------------------------------------------------

HEART_RATE = "heart_rate"

#: Beats per minute, the unit the pipeline works in.
UNIT_COUNT_PER_MINUTE = "count/min"
UNIT_COUNT_PER_SECOND = "count/s"
DISPLAY_UNIT = "BPM"

# ------------------------------------------------------------------
# Animation period  (seconds per beat)
# ------------------------------------------------------------------

SECONDS_PER_MINUTE = 60.0
DEFAULT_MIN_PERIOD = 0.1
DEFAULT_PERIOD = 1.0

_UNIT_FACTORS: dict[str, float] = {
    UNIT_COUNT_PER_MINUTE: 1.0,
    "bpm": 1.0,
    UNIT_COUNT_PER_SECOND: SECONDS_PER_MINUTE,
    "hz": SECONDS_PER_MINUTE,
}


def unit_factor(unit: str) -> float:
    """Return the multiplier converting *unit* into ``count/min``.

    Raises :class:`ValueError` for units that are not a rate of counts.
    """
    factor = _UNIT_FACTORS.get(unit.strip().lower())
    if factor is None:
        raise ValueError(f"unsupported rate unit {unit!r}, expected one of {sorted(_UNIT_FACTORS)}")
    return factor
