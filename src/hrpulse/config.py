"""Monitor configuration for hrpulse."""

from __future__ import annotations

import dataclasses
import math
import os
from typing import Any

from hrpulse._constants import DEFAULT_MIN_PERIOD, DEFAULT_PERIOD, HEART_RATE
from hrpulse.exceptions import HrPulseConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_set(value: str) -> frozenset[str]:
    return frozenset(part.strip() for part in value.split(",") if part.strip())


@dataclasses.dataclass(frozen=True)
class HrPulseConfig:
    """Monitor configuration.

    Parameters
    ----------
    base_url : str
        Base URL of the health bridge HTTP API.
    access_token : str or None
        Bearer token sent with every bridge request.
    device_id : str or None
        Only samples recorded by this device are delivered. ``None``
        accepts samples from every source.
    metric_type : str
        Metric type identifier to subscribe to.
    capabilities : frozenset of str
        Capabilities requested at startup. Defaults to ``{metric_type}``.
    min_period : float
        Lower bound of the animation period in seconds.
    default_period : float
        Animation period shown before the first sample arrives.
    request_timeout : float
        Total timeout for a single HTTP request, in seconds.
    mqtt_host : str or None
        Broker host for pushed batches. Defaults to the host of ``base_url``.
    mqtt_port : int
        Broker port.
    mqtt_keepalive : int
        MQTT keepalive in seconds.
    mqtt_tls : bool
        Connect to the broker over TLS.
    """

    base_url: str = "http://127.0.0.1:8787"
    access_token: str | None = None
    device_id: str | None = None
    metric_type: str = HEART_RATE
    capabilities: frozenset[str] = frozenset()
    min_period: float = DEFAULT_MIN_PERIOD
    default_period: float = DEFAULT_PERIOD
    request_timeout: float = 10.0
    mqtt_host: str | None = None
    mqtt_port: int = 1883
    mqtt_keepalive: int = 60
    mqtt_tls: bool = False

    def __post_init__(self) -> None:
        if not self.metric_type.strip():
            raise HrPulseConfigError("metric_type must be non-empty")
        if not math.isfinite(self.min_period) or self.min_period <= 0:
            raise HrPulseConfigError(f"min_period must be a positive finite number, got {self.min_period}")
        if not math.isfinite(self.default_period) or self.default_period < self.min_period:
            raise HrPulseConfigError(
                f"default_period must be finite and >= min_period ({self.min_period}), got {self.default_period}"
            )
        if not self.capabilities:
            object.__setattr__(self, "capabilities", frozenset({self.metric_type}))
        else:
            object.__setattr__(self, "capabilities", frozenset(self.capabilities))

    @property
    def broker_host(self) -> str:
        """MQTT broker host, falling back to the bridge host."""
        if self.mqtt_host:
            return self.mqtt_host
        value = self.base_url
        if "://" in value:
            value = value.split("://", 1)[1]
        value = value.split("/", 1)[0]
        return value.rsplit(":", 1)[0] if ":" in value else value

    @classmethod
    def from_env(cls, **overrides: Any) -> HrPulseConfig:
        """Create configuration from environment variables.

        Reads optional ``HRPULSE_*`` variables. Explicit keyword arguments
        override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        HrPulseConfig
            Populated configuration.

        Raises
        ------
        HrPulseConfigError
            If a numeric variable cannot be parsed.
        """
        env = os.environ

        _ENV_STR_MAP = {
            "HRPULSE_BASE_URL": "base_url",
            "HRPULSE_ACCESS_TOKEN": "access_token",
            "HRPULSE_DEVICE_ID": "device_id",
            "HRPULSE_METRIC_TYPE": "metric_type",
            "HRPULSE_MQTT_HOST": "mqtt_host",
        }
        _ENV_NUM_MAP: dict[str, tuple[str, type]] = {
            "HRPULSE_MIN_PERIOD": ("min_period", float),
            "HRPULSE_DEFAULT_PERIOD": ("default_period", float),
            "HRPULSE_REQUEST_TIMEOUT": ("request_timeout", float),
            "HRPULSE_MQTT_PORT": ("mqtt_port", int),
            "HRPULSE_MQTT_KEEPALIVE": ("mqtt_keepalive", int),
        }

        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = val

        for env_key, (field_name, cast) in _ENV_NUM_MAP.items():
            val = env.get(env_key)
            if val is None or field_name in overrides:
                continue
            try:
                config_kwargs[field_name] = cast(val)
            except ValueError as exc:
                raise HrPulseConfigError(f"{env_key} is not a valid {cast.__name__}: {val!r}") from exc

        capabilities_env = env.get("HRPULSE_CAPABILITIES")
        if capabilities_env is not None and "capabilities" not in overrides:
            config_kwargs["capabilities"] = _env_set(capabilities_env)

        if "mqtt_tls" not in overrides:
            config_kwargs["mqtt_tls"] = _env_bool(env.get("HRPULSE_MQTT_TLS"), False)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
