"""Live heart rate monitor: authorization, subscription and state hand-off."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from hrpulse.authorization import AuthorizationGate
from hrpulse.config import HrPulseConfig
from hrpulse.exceptions import CapabilityUnavailableError
from hrpulse.mapper import map_value
from hrpulse.models.sample import UpdateBatch
from hrpulse.models.state import AuthorizationState
from hrpulse.publisher import StatePublisher
from hrpulse.selector import select_latest
from hrpulse.store.base import HealthStore, SourceFilter
from hrpulse.subscription import SampleSubscription, SubscriptionHandle

_logger = logging.getLogger(__name__)


class HeartRateMonitor:
    """Wires a health store to a :class:`StatePublisher`.

    Usage::

        async with HeartRateMonitor(config, store) as monitor:
            monitor.publisher.subscribe(render)
            await monitor.start()
            await asyncio.Event().wait()
    """

    def __init__(
        self,
        config: HrPulseConfig,
        store: HealthStore,
        *,
        publisher: StatePublisher | None = None,
    ) -> None:
        self._config = config
        self._store = store
        self._publisher = publisher or StatePublisher(default_period=config.default_period)
        self._gate = AuthorizationGate(store)
        self._subscription = SampleSubscription(store, self.handle_batch)
        self._start_lock: asyncio.Lock | None = None

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> HeartRateMonitor:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self._store.close()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def publisher(self) -> StatePublisher:
        return self._publisher

    @property
    def authorization_state(self) -> AuthorizationState:
        return self._gate.state

    @property
    def subscription(self) -> SubscriptionHandle | None:
        return self._subscription.handle

    async def validate_capabilities(self) -> None:
        """Fail fast when the platform lacks a configured capability."""
        available = await self._store.available_capabilities()
        missing = self._config.capabilities - available
        if missing:
            raise CapabilityUnavailableError(
                f"Health store does not offer: {', '.join(sorted(missing))}",
                missing=frozenset(missing),
            )

    async def start(self) -> SubscriptionHandle | None:
        """Authorize and open the subscription.

        Returns the subscription handle, or ``None`` when access was denied.
        Calling again returns the existing handle.

        Raises
        ------
        CapabilityUnavailableError
            If the store lacks a capability the config asks for.
        """
        if self._start_lock is None:
            self._start_lock = asyncio.Lock()
        async with self._start_lock:
            if self._subscription.handle is not None:
                return self._subscription.handle

            self._publisher.attach(asyncio.get_running_loop())
            await self.validate_capabilities()

            outcome = await self._gate.request(self._config.capabilities)
            self._publisher.report_authorization(outcome)
            if not outcome.granted:
                return None
            return self._subscription.open(
                self._config.metric_type,
                SourceFilter.local(self._config.device_id),
            )

    def handle_batch(self, batch: UpdateBatch) -> None:
        """Select, map and publish; runs on the delivering thread."""
        sample = select_latest(batch)
        if sample is None:
            return
        state = map_value(sample.value_in(), min_period=self._config.min_period)
        _logger.debug("Accepted %.1f bpm -> %s", sample.value_in(), state)
        self._publisher.publish(state)
