"""Snapshot persistence adapter.

Loads a collection snapshot once at startup and writes the whole
collection back, debounced, after every mutation. Persistence is
best-effort: read and write failures are logged and reported through
the notification channel, never raised to the caller. The in-memory
collection stays the source of truth for the session.
"""

import json
import threading
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Iterator, Sequence

from entitykit.core.exceptions import PersistenceError
from entitykit.core.hooks import MUTATION_EVENTS
from entitykit.core.logging import get_logger
from entitykit.infrastructure.notifications.notification_channel import NotificationChannel
from entitykit.infrastructure.persistence.debouncer import Debouncer, TimerFactory, thread_timer
from entitykit.infrastructure.persistence.key_value import KeyValueStore

if TYPE_CHECKING:
    from entitykit.application.services.entity_store import EntityStore

logger = get_logger(__name__)

Entity = dict[str, Any]


class SnapshotPersistence:
    """Debounced JSON snapshots of stores in a key-value backend."""

    def __init__(
        self,
        backend: KeyValueStore,
        channel: NotificationChannel | None = None,
        debounce_seconds: float = 0.25,
        timer_factory: TimerFactory = thread_timer,
    ) -> None:
        self.backend = backend
        self.channel = channel
        self.debounce_seconds = debounce_seconds
        self._timer_factory = timer_factory
        self._debouncers: dict[str, Debouncer] = {}
        self._attachments: list[tuple["EntityStore", list[str]]] = []
        self._local = threading.local()

    def load(self, key: str, seed: Sequence[Entity] | None = None) -> list[Entity]:
        """Read and decode the snapshot under ``key``.

        Returns ``seed`` (or an empty list) when no snapshot exists, and an
        empty list when the snapshot cannot be read or decoded.
        """
        try:
            raw = self.backend.get(key)
        except PersistenceError as e:
            logger.error("Snapshot read failed", key=key, error=str(e))
            return []

        if raw is None:
            logger.debug("No snapshot found", key=key, seeded=seed is not None)
            return list(seed or [])

        try:
            data = json.loads(raw)
        except ValueError as e:
            logger.error("Snapshot is corrupt", key=key, error=str(e))
            return []

        if not isinstance(data, list):
            logger.error("Snapshot is not a list", key=key, type=type(data).__name__)
            return []
        return [entity for entity in data if isinstance(entity, dict)]

    def save(self, key: str, entities: Sequence[Entity]) -> bool:
        """Write the full collection under ``key``.

        Returns:
            True on success; False if the write failed (already reported).
        """
        try:
            payload = json.dumps(list(entities))
            self.backend.set(key, payload)
        except (PersistenceError, TypeError, ValueError) as e:
            logger.error("Snapshot write failed", key=key, error=str(e))
            failures = getattr(self._local, "failures", None)
            if failures is not None:
                failures.append(str(e))
            elif self.channel is not None:
                self.channel.error(f"Failed to save data: {e}")
            return False

        logger.debug("Snapshot written", key=key, count=len(entities))
        return True

    @contextmanager
    def deferred_failures(self) -> Iterator[list[str]]:
        """Collect write failures of this thread instead of publishing them.

        Writes that run synchronously inside the block (a zero debounce
        window, or a flush) append their error message to the yielded list,
        so the caller can report them as its own single notification.
        Writes fired later by a timer are still published directly.
        """
        previous = getattr(self._local, "failures", None)
        failures: list[str] = []
        self._local.failures = failures
        try:
            yield failures
        finally:
            self._local.failures = previous

    def schedule_save(self, key: str, entities: Sequence[Entity]) -> None:
        """Debounced save; a burst of calls results in one write of the last state."""
        debouncer = self._debouncers.get(key)
        if debouncer is None:
            debouncer = Debouncer(self.debounce_seconds, self.save, self._timer_factory)
            self._debouncers[key] = debouncer
        debouncer.call(key, entities)

    def attach(self, store: "EntityStore", key: str) -> None:
        """Schedule a save of ``store`` under ``key`` after each of its mutations.

        The payload is captured at mutation time, so a delayed write never
        reads the live collection.
        """

        def on_mutation(event: str, data: dict[str, Any]) -> None:
            self.schedule_save(key, store.snapshot())

        hook_ids = [
            store.hooks.register(event, on_mutation, filters={"collection": store.kind}, priority=-10)
            for event in MUTATION_EVENTS
        ]
        self._attachments.append((store, hook_ids))

    def has_pending(self, key: str | None = None) -> bool:
        if key is not None:
            debouncer = self._debouncers.get(key)
            return debouncer is not None and debouncer.pending
        return any(d.pending for d in self._debouncers.values())

    def flush(self, key: str | None = None) -> None:
        """Write pending snapshots now (one key, or all)."""
        targets = [self._debouncers[key]] if key in self._debouncers else []
        if key is None:
            targets = list(self._debouncers.values())
        for debouncer in targets:
            debouncer.flush()

    def close(self) -> None:
        """Flush pending writes and stop observing stores."""
        self.flush()
        for store, hook_ids in self._attachments:
            for hook_id in hook_ids:
                store.hooks.unregister(hook_id)
        self._attachments = []
