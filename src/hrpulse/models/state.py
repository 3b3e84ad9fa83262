"""Authorization and derived display state."""

from __future__ import annotations

import math
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from hrpulse._constants import DEFAULT_PERIOD


class AuthorizationState(StrEnum):
    UNREQUESTED = "unrequested"
    PENDING = "pending"
    GRANTED = "granted"
    DENIED = "denied"

    @property
    def is_terminal(self) -> bool:
        return self in (AuthorizationState.GRANTED, AuthorizationState.DENIED)


class AuthorizationOutcome(BaseModel):
    """Terminal result of an authorization request."""

    model_config = ConfigDict(frozen=True)

    granted: bool
    error: str | None = None


class DerivedState(BaseModel):
    """UI-facing parameters derived from the latest accepted sample.

    Instances are immutable snapshots; the presentation layer only ever
    sees complete values handed over by :class:`~hrpulse.publisher.StatePublisher`.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    display_value: int = 0
    period: float = Field(default=DEFAULT_PERIOD, gt=0)
    pulsing: bool = False

    @field_validator("period")
    @classmethod
    def _finite_period(cls, value: float) -> float:
        if not math.isfinite(value):
            raise ValueError("period must be finite")
        return value

    @classmethod
    def initial(cls, default_period: float = DEFAULT_PERIOD) -> DerivedState:
        """State shown before any sample has been accepted."""
        return cls(display_value=0, period=default_period, pulsing=False)
