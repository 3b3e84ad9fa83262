"""Base model for payloads pushed by the health bridge.

Every wire model inherits from :class:`HrBaseModel` which provides:

* ``alias_generator=to_camel`` so camelCase bridge keys map
  automatically to snake_case fields.
* A ``model_validator(mode="before")`` that drops ``None`` and blank
  strings so the field default is used.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Annotated, Any

from pydantic import AfterValidator, BaseModel, BeforeValidator, ConfigDict, model_validator
from pydantic.alias_generators import to_camel

# Threshold to distinguish seconds from milliseconds.
_MS_THRESHOLD = 1_000_000_000_000


def parse_timestamp(value: Any) -> Any:
    """Convert an epoch timestamp (seconds **or** milliseconds) to a UTC datetime.

    Datetimes and strings are left for pydantic (ISO-8601 parsing).
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return value
    ts = float(value)
    if ts >= _MS_THRESHOLD:
        ts = ts / 1000.0
    try:
        return datetime.fromtimestamp(ts, tz=UTC)
    except (OverflowError, OSError) as exc:
        raise ValueError(f"timestamp out of range: {value!r}") from exc


def _ensure_tz_aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


Timestamp = Annotated[datetime, BeforeValidator(parse_timestamp), AfterValidator(_ensure_tz_aware)]
"""Annotated type that coerces epoch numbers (seconds or ms) and naive datetimes to aware UTC datetimes."""


class HrBaseModel(BaseModel):
    """Base for bridge payload models."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_blank_values(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        return {
            key: value
            for key, value in values.items()
            if value is not None and not (isinstance(value, str) and not value.strip())
        }
