"""Pydantic models for samples, batches and derived state."""

from hrpulse.models.sample import MetricSample, QueryAnchor, UpdateBatch
from hrpulse.models.state import AuthorizationOutcome, AuthorizationState, DerivedState

__all__ = [
    "AuthorizationOutcome",
    "AuthorizationState",
    "DerivedState",
    "MetricSample",
    "QueryAnchor",
    "UpdateBatch",
]
