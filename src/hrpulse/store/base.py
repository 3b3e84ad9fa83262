"""Structural interface of the health data store the monitor talks to."""

from __future__ import annotations

import dataclasses
from collections.abc import Callable, Iterable, Mapping
from typing import Any, Protocol

from hrpulse.models.sample import MetricSample, QueryAnchor, UpdateBatch

#: Receives one pushed batch, either already decoded or as the raw mapping
#: the store received. May be invoked from any thread.
BatchHandler = Callable[[UpdateBatch | Mapping[str, Any]], None]


@dataclasses.dataclass(frozen=True)
class SourceFilter:
    """Predicate restricting samples to a set of recording devices.

    An empty filter accepts samples from every source.
    """

    device_ids: frozenset[str] = frozenset()

    @classmethod
    def local(cls, device_id: str | None) -> SourceFilter:
        """Samples recorded by *device_id* only (or any device for ``None``)."""
        return cls(frozenset({device_id})) if device_id else cls()

    @classmethod
    def of(cls, device_ids: Iterable[str]) -> SourceFilter:
        return cls(frozenset(device_ids))

    def __call__(self, sample: MetricSample) -> bool:
        if not self.device_ids:
            return True
        return sample.source_id in self.device_ids


@dataclasses.dataclass(frozen=True)
class AnchoredQuery:
    """A long-lived query for samples of one metric type.

    ``limit=None`` means no cap on the number of samples per delivery.
    """

    metric_type: str
    source_filter: SourceFilter = dataclasses.field(default_factory=SourceFilter)
    anchor: QueryAnchor | None = None
    limit: int | None = None


class HealthStore(Protocol):
    """Upstream collaborator: authorization plus push subscriptions.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production implementations concrete.
    """

    async def available_capabilities(self) -> frozenset[str]:
        ...

    async def request_authorization(self, capabilities: frozenset[str]) -> bool:
        ...

    def execute_anchored_query(self, query: AnchoredQuery, handler: BatchHandler) -> str:
        ...

    async def close(self) -> None:
        ...
