"""Health store backed by a companion health bridge.

Endpoints:
  - GET  /v1/capabilities
  - POST /v1/authorization
  - POST /v1/queries

Authorization and query registration go over HTTP; batches for a
registered query are pushed as JSON on the MQTT topic the bridge returns.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
from typing import Any

import aiohttp

from hrpulse._mqtt import MqttBootstrap, MqttRuntime
from hrpulse._transport import JsonTransport, Transport
from hrpulse.config import HrPulseConfig
from hrpulse.exceptions import HrPulseError, HrPulseTransportError
from hrpulse.store.base import AnchoredQuery, BatchHandler

_logger = logging.getLogger(__name__)

_CAPABILITIES = "/v1/capabilities"
_AUTHORIZATION = "/v1/authorization"
_QUERIES = "/v1/queries"


def build_query_request(query: AnchoredQuery) -> dict[str, Any]:
    """Build the JSON body registering *query* with the bridge."""
    return {
        "metricType": query.metric_type,
        "devices": sorted(query.source_filter.device_ids),
        "anchor": query.anchor.token if query.anchor is not None else None,
        "limit": query.limit,
    }


class RemoteHealthStore:
    """HTTP + MQTT health store client.

    Usage::

        async with RemoteHealthStore(config) as store:
            granted = await store.request_authorization(frozenset({"heart_rate"}))
    """

    def __init__(
        self,
        config: HrPulseConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        transport: Transport | None = None,
        runtime_factory: type[MqttRuntime] = MqttRuntime,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._transport = transport
        self._runtime_factory = runtime_factory
        self._runtimes: dict[str, MqttRuntime] = {}
        self._loop: asyncio.AbstractEventLoop | None = None

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> RemoteHealthStore:
        await self._ensure_transport()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def _ensure_transport(self) -> Transport:
        self._loop = asyncio.get_running_loop()
        if self._transport is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._transport = JsonTransport(self._config, self._http_session)
        return self._transport

    async def close(self) -> None:
        """Release the HTTP session and MQTT network loops on process exit."""
        runtimes = list(self._runtimes.values())
        self._runtimes.clear()
        for runtime in runtimes:
            runtime.stop()
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        self._transport = None

    # ------------------------------------------------------------------
    # HealthStore
    # ------------------------------------------------------------------

    async def available_capabilities(self) -> frozenset[str]:
        transport = await self._ensure_transport()
        response = await transport.get_json(_CAPABILITIES)
        raw = response.get("capabilities")
        if not isinstance(raw, list):
            raise HrPulseTransportError("Capability listing missing 'capabilities'", endpoint=_CAPABILITIES)
        return frozenset(str(item) for item in raw)

    async def request_authorization(self, capabilities: frozenset[str]) -> bool:
        transport = await self._ensure_transport()
        response = await transport.post_json(_AUTHORIZATION, {"read": sorted(capabilities)})
        granted = response.get("granted")
        if not isinstance(granted, bool):
            raise HrPulseTransportError("Authorization response missing 'granted'", endpoint=_AUTHORIZATION)
        if not granted:
            _logger.debug("Bridge denied capabilities=%s reason=%s", sorted(capabilities), response.get("reason"))
        return granted

    def execute_anchored_query(self, query: AnchoredQuery, handler: BatchHandler) -> str:
        """Register *query* and start pushing its batches to *handler*.

        Must be called from the event loop thread that owns this store; the
        registration itself completes in the background.
        """
        loop = self._loop or asyncio.get_running_loop()
        query_id = f"hrpulse-{secrets.token_hex(6)}"
        task = loop.create_task(self._register(query_id, query, handler))
        task.add_done_callback(self._log_registration_failure)
        return query_id

    async def register_query(self, query: AnchoredQuery, handler: BatchHandler) -> str:
        """Awaitable variant of :meth:`execute_anchored_query`."""
        query_id = f"hrpulse-{secrets.token_hex(6)}"
        return await self._register(query_id, query, handler)

    async def _register(self, client_ref: str, query: AnchoredQuery, handler: BatchHandler) -> str:
        transport = await self._ensure_transport()
        response = await transport.post_json(_QUERIES, build_query_request(query))

        topic = response.get("topic")
        if not isinstance(topic, str) or not topic.strip():
            raise HrPulseTransportError("Query registration missing 'topic'", endpoint=_QUERIES)
        query_id = str(response.get("queryId") or client_ref)

        initial = response.get("batch")
        if isinstance(initial, dict):
            handler(initial)

        bootstrap = MqttBootstrap(
            broker_host=self._config.broker_host,
            broker_port=self._config.mqtt_port,
            topic=topic.strip(),
            client_id=client_ref,
            username="hrpulse" if self._config.access_token else None,
            password=self._config.access_token,
            tls=self._config.mqtt_tls,
        )
        runtime = self._runtime_factory(
            on_payload=handler,
            keepalive=self._config.mqtt_keepalive,
            logger=_logger,
        )
        loop = self._loop or asyncio.get_running_loop()
        await loop.run_in_executor(None, runtime.start, bootstrap)
        self._runtimes[query_id] = runtime
        _logger.debug("Query %s registered topic=%s", query_id, bootstrap.topic)
        return query_id

    @staticmethod
    def _log_registration_failure(task: asyncio.Task[str]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if isinstance(exc, HrPulseError):
            _logger.warning("Query registration failed: %s", exc)
        elif exc is not None:
            _logger.error("Query registration failed", exc_info=exc)
