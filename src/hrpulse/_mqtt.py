"""Internal MQTT runtime delivering pushed sample batches."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, cast

import paho.mqtt.client as mqtt

from hrpulse.exceptions import SubscriptionDeliveryError


@dataclass(frozen=True)
class MqttBootstrap:
    """Broker data required to receive one query's batches."""

    broker_host: str
    broker_port: int
    topic: str
    client_id: str
    username: str | None = None
    password: str | None = None
    tls: bool = False


def decode_batch_payload(payload: bytes) -> dict[str, Any]:
    """Parse MQTT payload bytes into a JSON object.

    Raises :class:`SubscriptionDeliveryError` for anything that is not a
    UTF-8 JSON object.
    """
    try:
        parsed = json.loads(payload.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise SubscriptionDeliveryError(f"MQTT payload is not JSON: {exc}") from exc
    if not isinstance(parsed, dict):
        raise SubscriptionDeliveryError("MQTT payload decoded to non-object JSON")
    return parsed


class MqttRuntime:
    """Threaded paho-mqtt runtime feeding one topic into a handler.

    ``on_payload`` runs on paho's network thread; it must hand state over
    to other contexts itself.
    """

    def __init__(
        self,
        *,
        on_payload: Callable[[Any], None],
        keepalive: int = 60,
        logger: logging.Logger | None = None,
    ) -> None:
        self._on_payload = on_payload
        self._keepalive = keepalive
        self._logger = logger or logging.getLogger(__name__)
        self._client: mqtt.Client | None = None
        self._running = False
        self._topic: str | None = None

    @property
    def is_running(self) -> bool:
        """Whether the MQTT runtime is actively running."""
        return self._running

    def start(self, bootstrap: MqttBootstrap) -> None:
        """Connect and subscribe with provided broker details."""
        self.stop()
        self._logger.debug(
            "MQTT runtime start requested host=%s port=%s topic=%s client_id=%s",
            bootstrap.broker_host,
            bootstrap.broker_port,
            bootstrap.topic,
            bootstrap.client_id,
        )

        client = mqtt.Client(
            callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
            client_id=bootstrap.client_id,
            protocol=mqtt.MQTTv5,
        )
        client.enable_logger(self._logger)
        if bootstrap.username:
            client.username_pw_set(bootstrap.username, bootstrap.password)
        if bootstrap.tls:
            client.tls_set()

        self._topic = bootstrap.topic

        def on_connect(
            c: mqtt.Client,
            _userdata: Any,
            _flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if reason_code.value != 0:
                self._logger.warning("MQTT connect failed: %s", reason_code)
                return
            # Resubscribes after automatic reconnects too.
            if self._topic:
                self._logger.debug("MQTT subscribing topic=%s", self._topic)
                c.subscribe(self._topic, qos=1)

        def on_disconnect(
            _client: mqtt.Client,
            _userdata: Any,
            _disconnect_flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if self._running:
                self._logger.debug("MQTT disconnected: %s", reason_code)

        client.on_connect = on_connect
        client.on_message = self._on_message
        client.on_disconnect = on_disconnect

        client.connect(bootstrap.broker_host, bootstrap.broker_port, keepalive=self._keepalive)
        client.loop_start()

        self._client = client
        self._running = True
        self._logger.debug("MQTT network loop started")

    def _on_message(self, _c: mqtt.Client, _userdata: Any, msg: mqtt.MQTTMessage) -> None:
        try:
            payload: Any = decode_batch_payload(msg.payload)
        except SubscriptionDeliveryError as exc:
            # Forward the raw bytes; the subscription records the drop.
            self._logger.debug("MQTT payload parse failure topic=%s: %s", msg.topic, exc)
            payload = msg.payload
        try:
            self._on_payload(payload)
        except Exception:
            # Must not escape into paho's network thread.
            self._logger.warning("MQTT batch handler failed topic=%s", msg.topic, exc_info=True)

    def stop(self) -> None:
        """Stop and disconnect current MQTT client if running."""
        client = self._client
        self._client = None
        was_running = self._running
        self._running = False
        self._topic = None

        if client is None:
            return
        try:
            if was_running:
                client.disconnect()
        finally:
            client.loop_stop()
            self._logger.debug("MQTT network loop stopped")
