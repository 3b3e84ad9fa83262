"""In-process health store.

Samples are numbered in insertion order and anchors carry the last
sequence number a query has seen. Deliveries run synchronously on the
thread that adds or deletes samples, so tests can drive "background"
delivery from worker threads.
"""

from __future__ import annotations

import dataclasses
import itertools
import logging
import threading
from collections.abc import Iterable

from hrpulse.models.sample import MetricSample, QueryAnchor, UpdateBatch
from hrpulse.store.base import AnchoredQuery, BatchHandler

_logger = logging.getLogger(__name__)


@dataclasses.dataclass
class _StoredSample:
    seq: int
    metric_type: str
    sample: MetricSample


@dataclasses.dataclass
class _ActiveQuery:
    query_id: str
    query: AnchoredQuery
    handler: BatchHandler
    last_seq: int = 0


def _anchor_seq(anchor: QueryAnchor | None) -> int:
    if anchor is None:
        return 0
    try:
        return int(anchor.token)
    except ValueError:
        _logger.debug("Ignoring foreign anchor %r", anchor.token)
        return 0


class InMemoryHealthStore:
    """Health store keeping samples in memory.

    Parameters
    ----------
    capabilities : iterable of str
        Capabilities the "platform" offers.
    grant : bool
        Whether authorization requests are granted.
    """

    def __init__(self, *, capabilities: Iterable[str] = ("heart_rate",), grant: bool = True) -> None:
        self._capabilities = frozenset(capabilities)
        self._grant = grant
        self._lock = threading.RLock()
        self._seq = itertools.count(1)
        self._samples: list[_StoredSample] = []
        self._queries: dict[str, _ActiveQuery] = {}
        self._query_ids = itertools.count(1)
        self.authorization_requests: list[frozenset[str]] = []

    async def available_capabilities(self) -> frozenset[str]:
        return self._capabilities

    async def request_authorization(self, capabilities: frozenset[str]) -> bool:
        self.authorization_requests.append(frozenset(capabilities))
        return self._grant and capabilities <= self._capabilities

    def execute_anchored_query(self, query: AnchoredQuery, handler: BatchHandler) -> str:
        with self._lock:
            query_id = f"query-{next(self._query_ids)}"
            active = _ActiveQuery(query_id=query_id, query=query, handler=handler, last_seq=_anchor_seq(query.anchor))
            self._queries[query_id] = active
            initial = self._collect(active, [s for s in self._samples if s.seq > active.last_seq], frozenset())
        # The initial result is delivered like any later update.
        handler(initial)
        return query_id

    @property
    def query_ids(self) -> list[str]:
        with self._lock:
            return list(self._queries)

    def add_samples(self, metric_type: str, samples: Iterable[MetricSample]) -> None:
        """Insert *samples* and push them to every matching query."""
        with self._lock:
            stored = [_StoredSample(next(self._seq), metric_type, sample) for sample in samples]
            self._samples.extend(stored)
            deliveries = [(q.handler, self._collect(q, stored, frozenset())) for q in self._queries.values()]
        self._dispatch(deliveries)

    def delete_samples(self, sample_ids: Iterable[str]) -> None:
        """Remove samples by id and report the deletion to every query."""
        ids = frozenset(sample_ids)
        with self._lock:
            removed = [s for s in self._samples if s.sample.sample_id in ids]
            self._samples = [s for s in self._samples if s.sample.sample_id not in ids]
            deliveries = []
            for active in self._queries.values():
                deleted = frozenset(
                    s.sample.sample_id
                    for s in removed
                    if s.sample.sample_id is not None and s.metric_type == active.query.metric_type
                )
                if deleted:
                    deliveries.append((active.handler, self._collect(active, [], deleted)))
        self._dispatch(deliveries)

    def deliver_raw(self, payload: object) -> None:
        """Push an undecoded payload to every query (for malformed-data paths)."""
        with self._lock:
            handlers = [q.handler for q in self._queries.values()]
        for handler in handlers:
            handler(payload)  # type: ignore[arg-type]

    async def close(self) -> None:
        return None

    def _collect(self, active: _ActiveQuery, stored: list[_StoredSample], deleted: frozenset[str]) -> UpdateBatch:
        query = active.query
        matching = [s for s in stored if s.metric_type == query.metric_type and query.source_filter(s.sample)]
        if query.limit is not None:
            matching = matching[: query.limit]
        matching.sort(key=lambda s: s.sample.acquisition_order)
        if stored:
            active.last_seq = max(active.last_seq, max(s.seq for s in stored))
        return UpdateBatch(
            new_samples=tuple(s.sample for s in matching),
            deleted_sample_ids=deleted,
            anchor=QueryAnchor(token=str(active.last_seq)),
        )

    @staticmethod
    def _dispatch(deliveries: list[tuple[BatchHandler, UpdateBatch]]) -> None:
        for handler, batch in deliveries:
            handler(batch)
