"""Latest-wins selection of the newest sample in a batch."""

from __future__ import annotations

from collections.abc import Sequence

from hrpulse.models.sample import MetricSample, UpdateBatch


def select_latest(batch: UpdateBatch | Sequence[MetricSample]) -> MetricSample | None:
    """Return the sample with the highest acquisition order, or ``None``.

    Samples sharing the highest order resolve to the one delivered last.
    No plausibility filtering is applied.
    """
    samples = batch.new_samples if isinstance(batch, UpdateBatch) else batch
    if not samples:
        return None
    # max() keeps the first maximum it sees, so scan back to front.
    return max(reversed(samples), key=lambda sample: sample.acquisition_order)
