"""Health data store collaborators."""

from hrpulse.store.base import AnchoredQuery, BatchHandler, HealthStore, SourceFilter
from hrpulse.store.memory import InMemoryHealthStore
from hrpulse.store.remote import RemoteHealthStore

__all__ = [
    "AnchoredQuery",
    "BatchHandler",
    "HealthStore",
    "InMemoryHealthStore",
    "RemoteHealthStore",
    "SourceFilter",
]
