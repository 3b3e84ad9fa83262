"""One-shot authorization against the health store."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable

from hrpulse.exceptions import AuthorizationError, HrPulseError
from hrpulse.models.state import AuthorizationOutcome, AuthorizationState
from hrpulse.store.base import HealthStore

_logger = logging.getLogger(__name__)


class AuthorizationGate:
    """Requests read access once and remembers the terminal outcome.

    Callers arriving while a request is in flight share its result instead
    of issuing a second request. Denials and store errors are terminal;
    nothing is retried.
    """

    def __init__(self, store: HealthStore) -> None:
        self._store = store
        self._state = AuthorizationState.UNREQUESTED
        self._inflight: asyncio.Future[AuthorizationOutcome] | None = None
        self._outcome: AuthorizationOutcome | None = None

    @property
    def state(self) -> AuthorizationState:
        return self._state

    @property
    def outcome(self) -> AuthorizationOutcome | None:
        return self._outcome

    async def request(self, capabilities: Iterable[str]) -> AuthorizationOutcome:
        """Request access to *capabilities*, suspending until the store answers."""
        if self._outcome is not None:
            return self._outcome
        if self._inflight is not None:
            _logger.debug("Authorization already pending; joining in-flight request")
            return await asyncio.shield(self._inflight)

        wanted = frozenset(capabilities)
        if not wanted:
            raise ValueError("at least one capability must be requested")

        future: asyncio.Future[AuthorizationOutcome] = asyncio.get_running_loop().create_future()
        self._inflight = future
        self._state = AuthorizationState.PENDING
        try:
            outcome = await self._ask(wanted)
        except asyncio.CancelledError:
            # Cancelled before the store answered; the gate stays re-requestable.
            self._inflight = None
            self._state = AuthorizationState.UNREQUESTED
            future.cancel()
            raise
        except Exception as exc:
            self._inflight = None
            self._state = AuthorizationState.UNREQUESTED
            future.set_exception(exc)
            # Joiners re-raise it; mark it retrieved for the no-joiner case.
            future.exception()
            raise

        self._outcome = outcome
        self._state = AuthorizationState.GRANTED if outcome.granted else AuthorizationState.DENIED
        self._inflight = None
        future.set_result(outcome)
        return outcome

    async def _ask(self, capabilities: frozenset[str]) -> AuthorizationOutcome:
        try:
            granted = await self._store.request_authorization(capabilities)
        except HrPulseError as exc:
            _logger.warning("Authorization request failed: %s", exc)
            return AuthorizationOutcome(granted=False, error=str(exc))

        if not granted:
            error = AuthorizationError(f"Access denied for {', '.join(sorted(capabilities))}")
            _logger.warning("%s", error)
            return AuthorizationOutcome(granted=False, error=str(error))

        _logger.debug("Authorization granted for %s", sorted(capabilities))
        return AuthorizationOutcome(granted=True)
