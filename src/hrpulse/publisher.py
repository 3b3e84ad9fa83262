"""Single-slot hand-off of derived state to the UI event loop.

Delivery callbacks run on background threads (the MQTT network loop, or
whatever thread a store uses). The presentation layer runs on one asyncio
loop. :class:`StatePublisher` is the only bridge between them: background
threads :meth:`~StatePublisher.publish`, the UI loop :meth:`~StatePublisher.drain`
and observes.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Callable

from hrpulse._constants import DEFAULT_PERIOD
from hrpulse.models.state import AuthorizationOutcome, DerivedState

_logger = logging.getLogger(__name__)

StateObserver = Callable[[DerivedState], None]


class StatePublisher:
    """Thread-safe, last-write-wins state cell drained on the UI loop.

    ``publish`` never blocks on the UI and applies no backpressure: a
    burst of publishes between two drains collapses into the most recent
    state. Readers only ever see whole :class:`DerivedState` snapshots.
    """

    def __init__(
        self,
        *,
        initial: DerivedState | None = None,
        default_period: float = DEFAULT_PERIOD,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._lock = threading.Lock()
        self._current = initial if initial is not None else DerivedState.initial(default_period)
        self._pending: DerivedState | None = None
        self._pending_authorization: AuthorizationOutcome | None = None
        self._authorization: AuthorizationOutcome | None = None
        self._drain_scheduled = False
        self._loop = loop
        self._observers: list[StateObserver] = []
        self._published = 0

    # ------------------------------------------------------------------
    # UI side
    # ------------------------------------------------------------------

    def attach(self, loop: asyncio.AbstractEventLoop) -> None:
        """Designate *loop* as the UI context that drains this publisher."""
        with self._lock:
            self._loop = loop
            pending = self._pending is not None or self._pending_authorization is not None
            schedule = pending and not self._drain_scheduled
            if schedule:
                self._drain_scheduled = True
        if schedule:
            loop.call_soon_threadsafe(self.drain)

    def subscribe(self, observer: StateObserver) -> Callable[[], None]:
        """Register *observer* to be called on the UI loop after each drain.

        Returns a callable that removes the observer again.
        """
        self._observers.append(observer)

        def _unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return _unsubscribe

    @property
    def current(self) -> DerivedState:
        """The state most recently applied on the UI context."""
        with self._lock:
            return self._current

    @property
    def authorization_denied(self) -> bool:
        """Whether a terminal authorization failure has been applied."""
        with self._lock:
            return self._authorization is not None and not self._authorization.granted

    @property
    def authorization_error(self) -> str | None:
        """Error text of the applied authorization failure, if any."""
        with self._lock:
            return self._authorization.error if self._authorization is not None else None

    @property
    def published_count(self) -> int:
        """Number of states handed to :meth:`publish` so far."""
        with self._lock:
            return self._published

    def drain(self) -> DerivedState:
        """Apply the pending state, if any, and notify observers.

        Must run on the UI context. Returns the state now current.
        """
        with self._lock:
            pending = self._pending
            authorization = self._pending_authorization
            self._pending = None
            self._pending_authorization = None
            self._drain_scheduled = False
            if pending is not None:
                self._current = pending
            if authorization is not None:
                self._authorization = authorization
            current = self._current

        if pending is not None or authorization is not None:
            for observer in list(self._observers):
                try:
                    observer(current)
                except Exception:
                    _logger.exception("State observer %r failed", observer)
        return current

    # ------------------------------------------------------------------
    # Delivery side (any thread)
    # ------------------------------------------------------------------

    def publish(self, state: DerivedState) -> None:
        """Hand *state* to the UI context; supersedes any undrained state."""
        with self._lock:
            self._pending = state
            self._published += 1
            loop = self._schedule_locked()
        if loop is not None:
            self._call_drain(loop)

    def report_authorization(self, outcome: AuthorizationOutcome) -> None:
        """Hand the terminal authorization outcome to the UI context."""
        with self._lock:
            self._pending_authorization = outcome
            loop = self._schedule_locked()
        if loop is not None:
            self._call_drain(loop)

    def _schedule_locked(self) -> asyncio.AbstractEventLoop | None:
        if self._drain_scheduled or self._loop is None or self._loop.is_closed():
            return None
        self._drain_scheduled = True
        return self._loop

    def _call_drain(self, loop: asyncio.AbstractEventLoop) -> None:
        try:
            loop.call_soon_threadsafe(self.drain)
        except RuntimeError:
            # Loop closed between the check and the call; state stays pending.
            with self._lock:
                self._drain_scheduled = False
            _logger.debug("UI loop closed; state left pending", exc_info=True)
