from __future__ import annotations

from datetime import UTC, datetime, timedelta

from hrpulse.models.sample import MetricSample, UpdateBatch
from hrpulse.selector import select_latest

_T0 = datetime(2026, 1, 1, 8, 0, tzinfo=UTC)


def _sample(value: float, offset_s: float, sample_id: str | None = None) -> MetricSample:
    return MetricSample(value=value, acquisition_order=_T0 + timedelta(seconds=offset_s), sample_id=sample_id)


def test_empty_batch_selects_nothing() -> None:
    assert select_latest(UpdateBatch()) is None
    assert select_latest([]) is None


def test_single_sample_is_selected() -> None:
    sample = _sample(72, 0)
    assert select_latest(UpdateBatch(new_samples=(sample,))) == sample


def test_last_in_delivery_order_wins_for_ordered_batch() -> None:
    batch = UpdateBatch(new_samples=(_sample(40, 0), _sample(180, 5)))
    selected = select_latest(batch)
    assert selected is not None
    assert selected.value == 180


def test_highest_acquisition_order_wins_regardless_of_position() -> None:
    samples = [_sample(60, 10), _sample(99, 30), _sample(75, 20)]
    selected = select_latest(samples)
    assert selected is not None
    assert selected.value == 99


def test_ties_resolve_to_later_delivered_sample() -> None:
    first = _sample(70, 10, sample_id="a")
    second = _sample(71, 10, sample_id="b")
    selected = select_latest([first, second])
    assert selected is not None
    assert selected.sample_id == "b"


def test_no_plausibility_filtering() -> None:
    selected = select_latest([_sample(80, 0), _sample(-5, 1)])
    assert selected is not None
    assert selected.value == -5
