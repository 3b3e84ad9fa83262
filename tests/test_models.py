"""Tests for sample/state model parsing."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from hrpulse.models.sample import MetricSample, UpdateBatch
from hrpulse.models.state import AuthorizationState, DerivedState

# ------------------------------------------------------------------
# MetricSample
# ------------------------------------------------------------------


class TestMetricSample:
    def test_epoch_seconds_and_milliseconds_agree(self) -> None:
        seconds = MetricSample.model_validate({"value": 70, "acquiredAt": 1767254400})
        millis = MetricSample.model_validate({"value": 70, "acquiredAt": 1767254400000})
        assert seconds.acquisition_order == millis.acquisition_order
        assert seconds.acquisition_order == datetime(2026, 1, 1, 8, 0, tzinfo=UTC)

    def test_naive_datetime_is_assumed_utc(self) -> None:
        sample = MetricSample(value=70, acquisition_order=datetime(2026, 1, 1, 8, 0))
        assert sample.acquisition_order.tzinfo is not None

    def test_blank_optional_fields_use_defaults(self) -> None:
        sample = MetricSample.model_validate({"value": 70, "acquiredAt": 1, "uuid": "", "unit": None})
        assert sample.sample_id is None
        assert sample.unit == "count/min"

    def test_unit_conversion(self) -> None:
        sample = MetricSample(value=1.2, acquisition_order=datetime(2026, 1, 1, tzinfo=UTC), unit="count/s")
        assert sample.value_in() == pytest.approx(72.0)
        assert sample.value_in("count/s") == pytest.approx(1.2)

    @pytest.mark.parametrize("value", [float("inf"), float("-inf"), float("nan")])
    def test_non_finite_values_rejected(self, value: float) -> None:
        with pytest.raises(ValidationError):
            MetricSample(value=value, acquisition_order=datetime(2026, 1, 1, tzinfo=UTC))

    def test_rate_must_stay_finite_after_conversion(self) -> None:
        with pytest.raises(ValidationError):
            MetricSample(value=1e307, acquisition_order=datetime(2026, 1, 1, tzinfo=UTC), unit="count/s")

    def test_out_of_range_timestamp_rejected(self) -> None:
        with pytest.raises(ValidationError):
            MetricSample.model_validate({"value": 70, "acquiredAt": 1e30})

    def test_samples_are_immutable(self) -> None:
        sample = MetricSample(value=70, acquisition_order=datetime(2026, 1, 1, tzinfo=UTC))
        with pytest.raises(ValidationError):
            sample.value = 80  # type: ignore[misc]


# ------------------------------------------------------------------
# UpdateBatch
# ------------------------------------------------------------------


class TestUpdateBatch:
    def test_numeric_anchor_is_wrapped(self) -> None:
        batch = UpdateBatch.model_validate({"anchor": 17})
        assert batch.anchor is not None
        assert batch.anchor.token == "17"

    def test_empty(self) -> None:
        assert UpdateBatch().is_empty
        assert not UpdateBatch(deleted_sample_ids=frozenset({"x"})).is_empty


# ------------------------------------------------------------------
# State
# ------------------------------------------------------------------


class TestDerivedState:
    def test_initial(self) -> None:
        assert DerivedState.initial(2.0) == DerivedState(display_value=0, period=2.0, pulsing=False)

    @pytest.mark.parametrize("period", [0.0, -1.0, float("inf"), float("nan")])
    def test_period_must_be_positive_and_finite(self, period: float) -> None:
        with pytest.raises(ValidationError):
            DerivedState(display_value=60, period=period, pulsing=True)

    def test_unknown_fields_rejected(self) -> None:
        with pytest.raises(ValidationError):
            DerivedState(display_value=60, period=1.0, pulsing=True, colour="red")  # type: ignore[call-arg]


def test_authorization_state_terminal_members() -> None:
    assert {s for s in AuthorizationState if s.is_terminal} == {AuthorizationState.GRANTED, AuthorizationState.DENIED}
