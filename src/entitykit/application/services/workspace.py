"""Workspace: every collection of an application over shared services.

An EntityWorkspace owns one hook registry, one notification channel, one
key-value backend and one store registry. Collections added to the same
workspace can reference each other and detach when targets are removed.
"""

from typing import Any, Iterator, Sequence

from entitykit.core.config import Settings, get_settings
from entitykit.core.hooks import HookDecorator, HookRegistry
from entitykit.core.logging import get_logger
from entitykit.application.services.entity_engine import EntityEngine
from entitykit.application.services.query_view import QueryView
from entitykit.application.services.store_registry import StoreRegistry
from entitykit.application.services.tabular_codec import TabularCodec
from entitykit.domain.entities.schema import Schema
from entitykit.infrastructure.notifications.notification_channel import NotificationChannel
from entitykit.infrastructure.persistence.debouncer import TimerFactory, thread_timer
from entitykit.infrastructure.persistence.key_value import JsonFileKeyValueStore, KeyValueStore
from entitykit.infrastructure.persistence.snapshot_persistence import SnapshotPersistence

logger = get_logger(__name__)


class EntityWorkspace:
    """Registry of EntityEngines sharing hooks, notifications and storage.

    Example:
        workspace = EntityWorkspace(backend=InMemoryKeyValueStore())
        vehicles = workspace.add_collection("vehicles", vehicle_schema)
        shipments = workspace.add_collection("shipments", shipment_schema)

        @workspace.hook.on_entity_after_update("shipments")
        def refresh(event, data):
            ...
    """

    def __init__(
        self,
        backend: KeyValueStore | None = None,
        settings: Settings | None = None,
        hooks: HookRegistry | None = None,
        channel: NotificationChannel | None = None,
        timer_factory: TimerFactory = thread_timer,
    ) -> None:
        self.settings = settings or get_settings()
        self.hooks = hooks or HookRegistry()
        self.backend = backend or JsonFileKeyValueStore(
            self.settings.storage_path, encoding=self.settings.csv_encoding
        )
        self.channel = channel or NotificationChannel(
            ttl_seconds=self.settings.notification_ttl_seconds, hooks=self.hooks
        )
        self.registry = StoreRegistry(self.hooks)
        self.persistence = SnapshotPersistence(
            self.backend,
            channel=self.channel,
            debounce_seconds=self.settings.persistence_debounce_seconds,
            timer_factory=timer_factory,
        )
        self.hook = HookDecorator(self.hooks)
        self._engines: dict[str, EntityEngine] = {}

    def __enter__(self) -> "EntityWorkspace":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def __getitem__(self, kind: str) -> EntityEngine:
        return self._engines[kind]

    def __contains__(self, kind: object) -> bool:
        return kind in self._engines

    def __iter__(self) -> Iterator[EntityEngine]:
        return iter(list(self._engines.values()))

    def add_collection(
        self,
        kind: str,
        schema: Schema,
        seed: Sequence[dict[str, Any]] | None = None,
        search_fields: Sequence[str] | None = None,
        storage_key: str | None = None,
    ) -> EntityEngine:
        """Register a collection, hydrate it and start persisting it.

        Args:
            kind: Collection kind (``vehicles``).
            schema: Field declarations.
            seed: Entities used when no snapshot exists yet.
            search_fields: Fields searched by the view's free-text filter.
            storage_key: Snapshot key; ``<app_name>_<kind>`` by default.

        Raises:
            SchemaDefinitionError: If the kind is invalid or already added.
        """
        store = self.registry.create_store(kind, schema)
        key = storage_key or self.settings.storage_key(kind)
        engine = EntityEngine(
            store=store,
            persistence=self.persistence,
            channel=self.channel,
            storage_key=key,
            codec=TabularCodec(
                schema,
                encoding=self.settings.csv_encoding,
                min_columns=self.settings.import_min_columns,
            ),
            view=QueryView(store, search_fields=search_fields),
        )
        # Hydrate before attaching so loading never triggers a write
        engine.hydrate(seed)
        self.persistence.attach(store, key)
        self._engines[kind] = engine

        logger.info("Collection added", collection=kind, storage_key=key, count=len(store))
        return engine

    def get(self, kind: str) -> EntityEngine | None:
        return self._engines.get(kind)

    @property
    def kinds(self) -> list[str]:
        return list(self._engines)

    def flush(self) -> None:
        """Write every pending snapshot now."""
        self.persistence.flush()

    def close(self) -> None:
        """Flush pending writes and detach every observer."""
        for engine in self:
            engine.view.close()
        self.persistence.close()
        self.registry.close()
