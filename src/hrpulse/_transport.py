"""JSON-over-HTTP transport for the health bridge."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from hrpulse._constants import USER_AGENT
from hrpulse._redact import redact_for_log
from hrpulse.config import HrPulseConfig
from hrpulse.exceptions import HrPulseTransportError

_logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Structural transport interface used by :class:`RemoteHealthStore`.

    Having a protocol here makes it easy to pass test doubles while
    keeping the production implementation (`JsonTransport`) concrete.
    """

    async def get_json(self, endpoint: str) -> dict[str, Any]:
        ...

    async def post_json(self, endpoint: str, payload: Mapping[str, Any]) -> dict[str, Any]:
        ...


class JsonTransport:
    """HTTP transport sending bearer-authenticated JSON requests."""

    def __init__(self, config: HrPulseConfig, http_session: aiohttp.ClientSession) -> None:
        self._config = config
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=config.request_timeout)

    def _headers(self) -> dict[str, str]:
        headers: dict[str, str] = {
            "accept": "application/json",
            "content-type": "application/json; charset=UTF-8",
            "user-agent": USER_AGENT,
        }
        if self._config.access_token:
            headers["authorization"] = f"Bearer {self._config.access_token}"
        return headers

    async def get_json(self, endpoint: str) -> dict[str, Any]:
        return await self._request("GET", endpoint, None)

    async def post_json(self, endpoint: str, payload: Mapping[str, Any]) -> dict[str, Any]:
        return await self._request("POST", endpoint, payload)

    async def _request(self, method: str, endpoint: str, payload: Mapping[str, Any] | None) -> dict[str, Any]:
        url = f"{self._config.base_url.rstrip('/')}{endpoint}"
        body = json.dumps(payload, separators=(",", ":")) if payload is not None else None

        _logger.debug("%s %s payload=%s", method, url, redact_for_log(payload))

        try:
            async with self._http.request(
                method,
                url,
                data=body,
                headers=self._headers(),
                timeout=self._timeout,
            ) as resp:
                text = await resp.text()
                if resp.status != 200:
                    raise HrPulseTransportError(
                        f"HTTP {resp.status} from {endpoint}: {text[:200]}",
                        status_code=resp.status,
                        endpoint=endpoint,
                    )
        except HrPulseTransportError:
            raise
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise HrPulseTransportError(
                f"Request to {endpoint} failed: {exc}",
                endpoint=endpoint,
            ) from exc

        try:
            result = json.loads(text)
        except json.JSONDecodeError as exc:
            raise HrPulseTransportError(
                f"Invalid JSON from {endpoint}: {text[:200]}",
                endpoint=endpoint,
            ) from exc

        if not isinstance(result, dict):
            raise HrPulseTransportError(
                f"Response from {endpoint} is not a JSON object",
                endpoint=endpoint,
            )

        _logger.debug("Response %s %s", endpoint, redact_for_log(result))
        return result
