from __future__ import annotations

import math

import pytest

from hrpulse._constants import DEFAULT_MIN_PERIOD
from hrpulse.mapper import beat_period, map_value
from hrpulse.models.state import DerivedState


def test_resting_rate() -> None:
    state = map_value(72)
    assert state.display_value == 72
    assert state.period == pytest.approx(60 / 72)
    assert state.period == pytest.approx(0.833, abs=1e-3)
    assert state.pulsing is True


def test_high_rate() -> None:
    state = map_value(180)
    assert state.display_value == 180
    assert state.period == pytest.approx(0.333, abs=1e-3)


@pytest.mark.parametrize("value", [0.5, 1.0, 30.0, 59.9, 72.4, 72.6, 200.0, 599.0, 600.0, 1000.0, 12345.6])
def test_positive_values_follow_formula(value: float) -> None:
    state = map_value(value)
    assert state.display_value == round(value)
    assert state.period == max(DEFAULT_MIN_PERIOD, 60.0 / value)


@pytest.mark.parametrize("value", [0.0, -0.0, -1.0, -72.0, 1e-300, 5e-324, 1e9])
def test_period_never_below_minimum_and_always_finite(value: float) -> None:
    state = map_value(value)
    assert state.period >= DEFAULT_MIN_PERIOD
    assert math.isfinite(state.period)


def test_zero_clamps_without_division_error() -> None:
    state = map_value(0)
    assert state.period == DEFAULT_MIN_PERIOD
    assert state.display_value == 0


def test_custom_minimum_period() -> None:
    assert beat_period(1000, min_period=0.25) == 0.25
    assert map_value(1000, min_period=0.25).period == 0.25


def test_map_is_pure() -> None:
    assert map_value(88.8) == map_value(88.8)
    assert map_value(88.8) == DerivedState(display_value=89, period=60 / 88.8, pulsing=True)
