"""Snapshot persistence and key-value backends."""

from entitykit.infrastructure.persistence.debouncer import Debouncer, loop_timer, thread_timer
from entitykit.infrastructure.persistence.key_value import (
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    KeyValueStore,
)
from entitykit.infrastructure.persistence.snapshot_persistence import SnapshotPersistence

__all__ = [
    "Debouncer",
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "KeyValueStore",
    "SnapshotPersistence",
    "loop_timer",
    "thread_timer",
]
