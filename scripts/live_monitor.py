#!/usr/bin/env python3
"""Console heart rate display.

Connects to a health bridge (or an in-process demo store), authorizes
heart rate access and renders the published state as a pulsing line:

    🫀 (1.14x)  72 BPM   period=0.83s

The heart scales between 1.0x and 1.2x on an ease-in-out loop whose
period follows the latest sample, the way the watch face animates it.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import math
import random
import sys
import time
from datetime import UTC, datetime
from pathlib import Path

# Allow running from repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from hrpulse import (  # noqa: E402
    CapabilityUnavailableError,
    DerivedState,
    HeartRateMonitor,
    HrPulseConfig,
    HrPulseError,
    InMemoryHealthStore,
    MetricSample,
    RemoteHealthStore,
)
from hrpulse._constants import DISPLAY_UNIT  # noqa: E402

_LOG = logging.getLogger("live_monitor")

_SCALE_MIN = 1.0
_SCALE_MAX = 1.2


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Live heart rate display for an hrpulse health bridge.")
    parser.add_argument(
        "--demo",
        action="store_true",
        help="Use an in-process store fed with synthetic samples instead of a bridge.",
    )
    parser.add_argument(
        "--duration",
        type=float,
        default=0.0,
        help="Maximum runtime in seconds (0 = run until Ctrl+C).",
    )
    parser.add_argument(
        "--fps",
        type=float,
        default=20.0,
        help="Redraw rate of the console animation.",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logs.",
    )
    return parser.parse_args()


def ease_in_out(phase: float) -> float:
    """Ease-in-out sine for *phase* in [0, 1]."""
    return 0.5 - 0.5 * math.cos(math.pi * phase)


def icon_scale(state: DerivedState, now: float) -> float:
    """Autoreversing scale: one half-cycle out, one back, per period."""
    if not state.pulsing:
        return _SCALE_MIN
    cycle = (now / state.period) % 2.0
    phase = cycle if cycle <= 1.0 else 2.0 - cycle
    return _SCALE_MIN + (_SCALE_MAX - _SCALE_MIN) * ease_in_out(phase)


def _render(monitor: HeartRateMonitor) -> None:
    publisher = monitor.publisher
    if publisher.authorization_denied:
        line = f"heart rate access denied: {publisher.authorization_error or 'unknown reason'}"
    else:
        state = publisher.current
        line = f"🫀 ({icon_scale(state, time.monotonic()):.2f}x) {state.display_value:>4} {DISPLAY_UNIT}   period={state.period:.2f}s"
    print(f"\r{line:<72}", end="", flush=True)


async def _feed_demo(store: InMemoryHealthStore, metric_type: str, device_id: str | None) -> None:
    bpm = 70.0
    while True:
        bpm = max(40.0, min(180.0, bpm + random.uniform(-4.0, 4.0)))
        sample = MetricSample(value=bpm, acquisition_order=datetime.now(UTC), source_id=device_id)
        # Delivery happens on a worker thread, like a real store callback.
        await asyncio.to_thread(store.add_samples, metric_type, [sample])
        await asyncio.sleep(1.0)


async def _run(args: argparse.Namespace) -> int:
    config = HrPulseConfig.from_env()
    store = InMemoryHealthStore(capabilities=config.capabilities) if args.demo else RemoteHealthStore(config)

    async with HeartRateMonitor(config, store) as monitor:
        try:
            handle = await monitor.start()
        except CapabilityUnavailableError as exc:
            print(f"[live] {exc}", file=sys.stderr)
            return 2
        except HrPulseError as exc:
            print(f"[live] startup failed: {exc}", file=sys.stderr)
            return 1

        feeder: asyncio.Task[None] | None = None
        if handle is not None and isinstance(store, InMemoryHealthStore):
            feeder = asyncio.create_task(_feed_demo(store, config.metric_type, config.device_id))

        started = time.monotonic()
        interval = 1.0 / max(args.fps, 1.0)
        try:
            while args.duration <= 0 or time.monotonic() - started < args.duration:
                _render(monitor)
                await asyncio.sleep(interval)
        finally:
            if feeder is not None:
                feeder.cancel()
            print()
    return 0


def main() -> int:
    args = _parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        return asyncio.run(_run(args))
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
