"""hrpulse - Live heart rate subscription and pulse animation state."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("hrpulse")
except PackageNotFoundError:
    __version__ = "0+local"
from hrpulse.authorization import AuthorizationGate
from hrpulse.config import HrPulseConfig
from hrpulse.exceptions import (
    AuthorizationError,
    CapabilityUnavailableError,
    HrPulseConfigError,
    HrPulseError,
    HrPulseTransportError,
    SubscriptionDeliveryError,
)
from hrpulse.mapper import map_value
from hrpulse.models import (
    AuthorizationOutcome,
    AuthorizationState,
    DerivedState,
    MetricSample,
    QueryAnchor,
    UpdateBatch,
)
from hrpulse.monitor import HeartRateMonitor
from hrpulse.publisher import StatePublisher
from hrpulse.selector import select_latest
from hrpulse.store import AnchoredQuery, HealthStore, InMemoryHealthStore, RemoteHealthStore, SourceFilter
from hrpulse.subscription import SampleSubscription, SubscriptionHandle

__all__ = [
    "__version__",
    "AnchoredQuery",
    "AuthorizationError",
    "AuthorizationGate",
    "AuthorizationOutcome",
    "AuthorizationState",
    "CapabilityUnavailableError",
    "DerivedState",
    "HealthStore",
    "HeartRateMonitor",
    "HrPulseConfig",
    "HrPulseConfigError",
    "HrPulseError",
    "HrPulseTransportError",
    "InMemoryHealthStore",
    "MetricSample",
    "QueryAnchor",
    "RemoteHealthStore",
    "SampleSubscription",
    "SourceFilter",
    "StatePublisher",
    "SubscriptionDeliveryError",
    "SubscriptionHandle",
    "UpdateBatch",
    "map_value",
    "select_latest",
]
