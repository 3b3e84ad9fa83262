"""Custom exception hierarchy for hrpulse."""

from __future__ import annotations


class HrPulseError(Exception):
    """Base exception for all hrpulse errors."""


class HrPulseConfigError(HrPulseError):
    """Invalid or missing configuration."""


class CapabilityUnavailableError(HrPulseConfigError):
    """The health store does not offer a capability the monitor needs.

    Raised once at startup so a platform without a heart rate sensor fails
    fast instead of waiting forever for samples.
    """

    def __init__(self, message: str, *, missing: frozenset[str] = frozenset()) -> None:
        self.missing = missing
        super().__init__(message)


class HrPulseTransportError(HrPulseError):
    """HTTP-level failure (network, non-200, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class AuthorizationError(HrPulseError):
    """Access to a capability was denied or could not be requested."""


class SubscriptionDeliveryError(HrPulseError):
    """A pushed batch could not be decoded into samples.

    The subscription treats such a batch as empty; this error never
    escapes the delivery callback.
    """
