from __future__ import annotations

import asyncio
import threading

import pytest

from hrpulse.models.state import AuthorizationOutcome, DerivedState
from hrpulse.publisher import StatePublisher


def _state(i: int) -> DerivedState:
    # Every field derives from i so a torn snapshot would be detectable.
    return DerivedState(display_value=i, period=0.1 + i / 1000.0, pulsing=i % 2 == 0)


def test_defaults_before_any_publish() -> None:
    publisher = StatePublisher(default_period=1.5)
    assert publisher.current == DerivedState(display_value=0, period=1.5, pulsing=False)
    assert publisher.drain() == publisher.current


def test_publish_is_not_visible_until_drained() -> None:
    publisher = StatePublisher()
    publisher.publish(_state(5))
    assert publisher.current.display_value == 0
    assert publisher.drain() == _state(5)
    assert publisher.current == _state(5)


def test_last_write_wins_between_drains() -> None:
    publisher = StatePublisher()
    worker = threading.Thread(target=lambda: [publisher.publish(_state(i)) for i in range(1, 501)])
    worker.start()
    worker.join()

    assert publisher.drain() == _state(500)
    assert publisher.published_count == 500


def test_concurrent_publishers_never_tear_state() -> None:
    publisher = StatePublisher()
    barrier = threading.Barrier(8)
    last_by_thread: dict[int, DerivedState] = {}

    def _worker(tid: int) -> None:
        barrier.wait()
        for n in range(200):
            state = _state(tid * 1000 + n)
            publisher.publish(state)
        last_by_thread[tid] = _state(tid * 1000 + 199)

    threads = [threading.Thread(target=_worker, args=(tid,)) for tid in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    drained = publisher.drain()
    # The winner is some thread's final publish, with all fields from that call.
    assert drained in last_by_thread.values()
    assert drained == _state(drained.display_value)
    assert publisher.published_count == 8 * 200


def test_observer_errors_do_not_break_drain() -> None:
    publisher = StatePublisher()
    seen: list[DerivedState] = []

    def _broken(_state: DerivedState) -> None:
        raise RuntimeError("boom")

    publisher.subscribe(_broken)
    publisher.subscribe(seen.append)
    publisher.publish(_state(3))
    publisher.drain()
    assert seen == [_state(3)]


def test_unsubscribe_stops_notifications() -> None:
    publisher = StatePublisher()
    seen: list[DerivedState] = []
    unsubscribe = publisher.subscribe(seen.append)
    unsubscribe()
    unsubscribe()
    publisher.publish(_state(2))
    publisher.drain()
    assert seen == []


def test_drain_without_pending_does_not_notify() -> None:
    publisher = StatePublisher()
    seen: list[DerivedState] = []
    publisher.subscribe(seen.append)
    publisher.drain()
    assert seen == []


@pytest.mark.asyncio
async def test_background_publish_is_applied_on_attached_loop() -> None:
    loop = asyncio.get_running_loop()
    publisher = StatePublisher()
    publisher.attach(loop)

    delivered = asyncio.Event()
    observed: list[tuple[DerivedState, bool]] = []

    def _observer(state: DerivedState) -> None:
        observed.append((state, threading.current_thread() is threading.main_thread()))
        delivered.set()

    publisher.subscribe(_observer)

    await asyncio.to_thread(lambda: [publisher.publish(_state(i)) for i in range(1, 51)])
    await asyncio.wait_for(delivered.wait(), timeout=1.0)
    await asyncio.sleep(0)

    assert publisher.current == _state(50)
    assert observed[-1] == (_state(50), True)


@pytest.mark.asyncio
async def test_attach_drains_states_published_before_loop_was_known() -> None:
    publisher = StatePublisher()
    publisher.publish(_state(7))
    publisher.attach(asyncio.get_running_loop())
    await asyncio.sleep(0)
    assert publisher.current == _state(7)


@pytest.mark.asyncio
async def test_authorization_outcome_is_handed_over() -> None:
    publisher = StatePublisher()
    publisher.attach(asyncio.get_running_loop())
    assert publisher.authorization_denied is False

    publisher.report_authorization(AuthorizationOutcome(granted=False, error="denied"))
    assert publisher.authorization_denied is False
    await asyncio.sleep(0)

    assert publisher.authorization_denied is True
    assert publisher.authorization_error == "denied"
    assert publisher.current == DerivedState.initial()
