"""Samples, anchors and update batches delivered by a subscription."""

from __future__ import annotations

import math
from typing import Any

from pydantic import Field, field_validator, model_validator

from hrpulse._constants import UNIT_COUNT_PER_MINUTE, unit_factor
from hrpulse.models._base import HrBaseModel, Timestamp


class MetricSample(HrBaseModel):
    """One sensor reading."""

    value: float
    acquisition_order: Timestamp = Field(validation_alias="acquiredAt")
    sample_id: str | None = Field(default=None, validation_alias="uuid")
    unit: str = UNIT_COUNT_PER_MINUTE
    source_id: str | None = Field(default=None, validation_alias="sourceId")

    @field_validator("value")
    @classmethod
    def _finite(cls, value: float) -> float:
        if not math.isfinite(value):
            raise ValueError("sample value must be finite")
        return value

    @field_validator("unit")
    @classmethod
    def _known_unit(cls, value: str) -> str:
        unit_factor(value)
        return value

    @model_validator(mode="after")
    def _finite_rate(self) -> MetricSample:
        if not math.isfinite(self.value_in()):
            raise ValueError(f"sample value {self.value} {self.unit} overflows as a rate in count/min")
        return self

    def value_in(self, unit: str = UNIT_COUNT_PER_MINUTE) -> float:
        """Return the sample value converted into *unit*."""
        return self.value * unit_factor(self.unit) / unit_factor(unit)


class QueryAnchor(HrBaseModel):
    """Opaque resumption token for an anchored query."""

    token: str


class UpdateBatch(HrBaseModel):
    """One push delivery: new samples in acquisition order plus deletions."""

    new_samples: tuple[MetricSample, ...] = Field(default=(), validation_alias="samples")
    deleted_sample_ids: frozenset[str] = Field(default=frozenset(), validation_alias="deleted")
    anchor: QueryAnchor | None = None

    @field_validator("anchor", mode="before")
    @classmethod
    def _wrap_anchor(cls, value: Any) -> Any:
        if isinstance(value, (str, int)):
            return {"token": str(value)}
        return value

    @property
    def is_empty(self) -> bool:
        return not self.new_samples and not self.deleted_sample_ids
