from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

import pytest

from hrpulse.authorization import AuthorizationGate
from hrpulse.exceptions import HrPulseTransportError
from hrpulse.models.state import AuthorizationState
from hrpulse.store.base import AnchoredQuery, BatchHandler


@dataclass
class SlowStore:
    """Store whose authorization answer is released by the test."""

    grant: bool = True
    error: Exception | None = None
    calls: list[frozenset[str]] = field(default_factory=list)
    release: asyncio.Event = field(default_factory=asyncio.Event)

    async def available_capabilities(self) -> frozenset[str]:
        return frozenset({"heart_rate"})

    async def request_authorization(self, capabilities: frozenset[str]) -> bool:
        self.calls.append(capabilities)
        await self.release.wait()
        if self.error is not None:
            raise self.error
        return self.grant

    def execute_anchored_query(self, query: AnchoredQuery, handler: BatchHandler) -> str:  # pragma: no cover
        raise AssertionError("not used")

    async def close(self) -> None:  # pragma: no cover
        return None


@pytest.mark.asyncio
async def test_grant_transitions_through_pending() -> None:
    store = SlowStore()
    gate = AuthorizationGate(store)
    assert gate.state == AuthorizationState.UNREQUESTED

    task = asyncio.create_task(gate.request({"heart_rate"}))
    await asyncio.sleep(0)
    assert gate.state == AuthorizationState.PENDING

    store.release.set()
    outcome = await task
    assert outcome.granted is True
    assert outcome.error is None
    assert gate.state == AuthorizationState.GRANTED
    assert gate.state.is_terminal


@pytest.mark.asyncio
async def test_concurrent_requests_are_coalesced() -> None:
    store = SlowStore()
    gate = AuthorizationGate(store)

    tasks = [asyncio.create_task(gate.request({"heart_rate"})) for _ in range(5)]
    await asyncio.sleep(0)
    store.release.set()
    outcomes = await asyncio.gather(*tasks)

    assert len(store.calls) == 1
    assert all(outcome.granted for outcome in outcomes)


@pytest.mark.asyncio
async def test_resolved_outcome_is_terminal_and_not_requested_again() -> None:
    store = SlowStore(grant=False)
    store.release.set()
    gate = AuthorizationGate(store)

    first = await gate.request({"heart_rate"})
    second = await gate.request({"heart_rate"})

    assert first.granted is False
    assert first.error is not None and "heart_rate" in first.error
    assert second is first
    assert gate.state == AuthorizationState.DENIED
    assert len(store.calls) == 1


@pytest.mark.asyncio
async def test_store_error_becomes_denied_outcome() -> None:
    store = SlowStore(error=HrPulseTransportError("HTTP 503", status_code=503, endpoint="/v1/authorization"))
    store.release.set()
    gate = AuthorizationGate(store)

    outcome = await gate.request({"heart_rate"})
    assert outcome.granted is False
    assert outcome.error == "HTTP 503"
    assert gate.state == AuthorizationState.DENIED


@pytest.mark.asyncio
async def test_empty_capability_set_is_rejected() -> None:
    gate = AuthorizationGate(SlowStore())
    with pytest.raises(ValueError):
        await gate.request(set())
    assert gate.state == AuthorizationState.UNREQUESTED


@pytest.mark.asyncio
async def test_cancelled_request_can_be_requested_again() -> None:
    store = SlowStore()
    gate = AuthorizationGate(store)

    task = asyncio.create_task(gate.request({"heart_rate"}))
    await asyncio.sleep(0)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    assert gate.state == AuthorizationState.UNREQUESTED

    store.release.set()
    outcome = await gate.request({"heart_rate"})
    assert outcome.granted is True
    assert len(store.calls) == 2
