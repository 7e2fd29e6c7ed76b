"""Registry of entity stores sharing one hook registry.

Reference fields may point from one collection into another. The
StoreRegistry observes removals in every registered store and detaches
the references left behind (cascading detach, never cascading delete).
"""

from typing import Any, Iterator

from entitykit.core.exceptions import SchemaDefinitionError
from entitykit.core.hooks import HookEvent, HookRegistry
from entitykit.core.logging import get_logger
from entitykit.application.services.entity_store import EntityStore
from entitykit.domain.entities.schema import Schema
from entitykit.domain.services.schema_validator import SchemaValidator

logger = get_logger(__name__)


class StoreRegistry:
    """Named stores plus the cascading-detach observer."""

    def __init__(self, hooks: HookRegistry | None = None) -> None:
        self.hooks = hooks or HookRegistry()
        self._stores: dict[str, EntityStore] = {}
        # Runs before persistence/UI observers so they see detached state
        self._hook_ids = [
            self.hooks.register(HookEvent.ON_ENTITY_AFTER_DELETE, self._on_entity_deleted, priority=100),
            self.hooks.register(HookEvent.ON_COLLECTION_AFTER_CLEAR, self._on_collection_cleared, priority=100),
        ]

    def __contains__(self, kind: object) -> bool:
        return kind in self._stores

    def __iter__(self) -> Iterator[EntityStore]:
        return iter(list(self._stores.values()))

    def __getitem__(self, kind: str) -> EntityStore:
        return self._stores[kind]

    @property
    def kinds(self) -> list[str]:
        return list(self._stores)

    def create_store(self, kind: str, schema: Schema) -> EntityStore:
        """Create and register a store for a new collection kind.

        Raises:
            SchemaDefinitionError: If the kind is invalid or already registered.
        """
        errors = SchemaValidator.validate_kind(kind)
        if errors:
            raise SchemaDefinitionError("; ".join(e.message for e in errors))
        if kind in self._stores:
            raise SchemaDefinitionError(f"Collection '{kind}' is already registered")

        store = EntityStore(kind, schema, hooks=self.hooks)
        self._stores[kind] = store
        logger.debug("Store registered", collection=kind, fields=schema.names)
        return store

    def get(self, kind: str) -> EntityStore | None:
        return self._stores.get(kind)

    def detach(self, target_kind: str, target_ids: list[str]) -> dict[str, list[str]]:
        """Detach references to the given entities in every store.

        Returns:
            Mapping of collection kind to the ids of detached entities.
        """
        detached: dict[str, list[str]] = {}
        for store in self:
            for target_id in target_ids:
                ids = store.detach_references(target_kind, target_id)
                if ids:
                    detached.setdefault(store.kind, []).extend(ids)
        return detached

    def close(self) -> None:
        """Stop observing removals."""
        for hook_id in self._hook_ids:
            self.hooks.unregister(hook_id)
        self._hook_ids = []

    def _on_entity_deleted(self, event: str, data: dict[str, Any]) -> None:
        self.detach(data["collection"], [data["entity_id"]])

    def _on_collection_cleared(self, event: str, data: dict[str, Any]) -> None:
        self.detach(data["collection"], list(data.get("entity_ids", [])))
