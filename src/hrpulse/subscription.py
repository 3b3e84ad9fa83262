"""Long-lived push subscription to one metric stream."""

from __future__ import annotations

import dataclasses
import logging
import threading
from collections.abc import Callable, Mapping
from typing import Any

from pydantic import ValidationError

from hrpulse._redact import redact_for_log
from hrpulse.exceptions import SubscriptionDeliveryError
from hrpulse.models.sample import QueryAnchor, UpdateBatch
from hrpulse.store.base import AnchoredQuery, HealthStore, SourceFilter

_logger = logging.getLogger(__name__)

_EMPTY_BATCH = UpdateBatch()


def decode_update_batch(payload: Any) -> UpdateBatch:
    """Turn a pushed payload into an :class:`UpdateBatch`.

    Raises :class:`SubscriptionDeliveryError` when the payload is not a
    mapping or any of its samples cannot be cast.
    """
    if isinstance(payload, UpdateBatch):
        return payload
    if not isinstance(payload, Mapping):
        raise SubscriptionDeliveryError(f"Batch payload is {type(payload).__name__}, expected an object")
    try:
        return UpdateBatch.model_validate(dict(payload))
    except ValidationError as exc:
        raise SubscriptionDeliveryError(f"Malformed batch: {exc.error_count()} invalid field(s)") from exc


@dataclasses.dataclass
class SubscriptionHandle:
    """Book-keeping for an open subscription.

    The anchor advances with every successfully decoded batch so a later
    query could resume from it; it is never persisted.
    """

    query_id: str
    metric_type: str
    source_filter: SourceFilter
    anchor: QueryAnchor | None = None
    batches_delivered: int = 0
    batches_dropped: int = 0
    _lock: threading.Lock = dataclasses.field(default_factory=threading.Lock, repr=False, compare=False)

    def _record(self, batch: UpdateBatch | None) -> None:
        with self._lock:
            if batch is None:
                self.batches_dropped += 1
                return
            self.batches_delivered += 1
            if batch.anchor is not None:
                self.anchor = batch.anchor


class SampleSubscription:
    """Opens an anchored query and forwards decoded batches to *on_batch*.

    ``on_batch`` runs in whatever context the store delivers on and is only
    called for batches that carry at least one new sample.
    """

    def __init__(self, store: HealthStore, on_batch: Callable[[UpdateBatch], None]) -> None:
        self._store = store
        self._on_batch = on_batch
        self._handle: SubscriptionHandle | None = None

    @property
    def handle(self) -> SubscriptionHandle | None:
        return self._handle

    def open(
        self,
        metric_type: str,
        source_filter: SourceFilter | None = None,
        anchor: QueryAnchor | None = None,
    ) -> SubscriptionHandle:
        """Start the push subscription; it stays open for the process lifetime."""
        if self._handle is not None:
            raise RuntimeError(f"subscription already open (query {self._handle.query_id})")

        query = AnchoredQuery(
            metric_type=metric_type,
            source_filter=source_filter or SourceFilter(),
            anchor=anchor,
            limit=None,
        )
        handle = SubscriptionHandle(
            query_id="",
            metric_type=metric_type,
            source_filter=query.source_filter,
            anchor=anchor,
        )
        # The store may deliver the initial result before returning.
        self._handle = handle
        handle.query_id = self._store.execute_anchored_query(query, self._deliver)
        _logger.debug("Subscription open query=%s metric=%s", handle.query_id, metric_type)
        return handle

    def _deliver(self, payload: UpdateBatch | Mapping[str, Any]) -> None:
        handle = self._handle
        try:
            batch = decode_update_batch(payload)
        except SubscriptionDeliveryError as exc:
            _logger.warning("Dropping undeliverable batch: %s", exc)
            _logger.debug("Undeliverable payload: %s", redact_for_log(payload))
            if handle is not None:
                handle._record(None)
            batch = _EMPTY_BATCH
        else:
            if handle is not None:
                handle._record(batch)

        if batch.deleted_sample_ids:
            # Latest-wins: a deleted sample that is on screen stays there.
            _logger.debug("Ignoring %d deleted sample(s)", len(batch.deleted_sample_ids))
        if not batch.new_samples:
            return
        self._on_batch(batch)
