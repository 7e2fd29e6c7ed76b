"""Identity & store for one collection of entities.

The EntityStore owns the canonical, insertion-ordered list of entities
of one kind. It guarantees unique ids, validates every create and update
against the schema and publishes a change event through the hook
registry after each successful mutation. Callers only ever receive
copies; the stored dicts never leave the store.
"""

from __future__ import annotations

import copy
from typing import Any, Iterable

from entitykit.core.exceptions import DuplicateIdError, EntityNotFoundError, EntityValidationError
from entitykit.core.hooks import HookEvent, HookRegistry
from entitykit.core.logging import get_logger
from entitykit.domain.entities.schema import Schema
from entitykit.domain.services.entity_validator import EntityValidationIssue, EntityValidator
from entitykit.domain.services.id_generator import EntityIdGenerator

logger = get_logger(__name__)

Entity = dict[str, Any]


class EntityStore:
    """Ordered, id-unique collection of entities of one kind."""

    def __init__(
        self,
        kind: str,
        schema: Schema,
        hooks: HookRegistry | None = None,
        id_generator: EntityIdGenerator | None = None,
    ) -> None:
        """Initialize an empty store.

        Args:
            kind: Collection kind (e.g. "vehicles"), used as the hook filter tag.
            schema: Field declarations for the collection.
            hooks: Registry change events are published to.
            id_generator: Generator for ids of entities created without one.
        """
        self.kind = kind
        self.schema = schema
        self.hooks = hooks or HookRegistry()
        self._id_generator = id_generator or EntityIdGenerator()
        self._entities: list[Entity] = []
        self._index: dict[str, Entity] = {}
        self.version = 0

    def __len__(self) -> int:
        return len(self._entities)

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self._index

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list(self) -> list[Entity]:
        """All entities in stored (insertion) order, as copies."""
        return copy.deepcopy(self._entities)

    def get_by_id(self, entity_id: str) -> Entity | None:
        entity = self._index.get(entity_id)
        return copy.deepcopy(entity) if entity is not None else None

    def snapshot(self) -> list[Entity]:
        """JSON-ready copy of the collection, used by persistence."""
        return self.list()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create(self, partial: dict[str, Any]) -> Entity:
        """Validate, fill defaults and append a new entity.

        Raises:
            DuplicateIdError: If ``partial`` carries an id already in use.
            EntityValidationError: If the data violates the schema.
        """
        entity_id = partial.get("id")
        if entity_id is not None:
            if not isinstance(entity_id, str) or not entity_id.strip():
                raise EntityValidationError(
                    [EntityValidationIssue("id", "Entity id must be a non-empty string", "invalid_id")]
                )
            if entity_id in self._index:
                raise DuplicateIdError(entity_id, self.kind)

        processed, issues = EntityValidator.validate_and_apply_defaults(partial, self.schema)
        if issues:
            raise EntityValidationError(issues)

        if entity_id is None:
            entity_id = self._id_generator.generate(self._index)

        entity: Entity = {"id": entity_id, **processed}
        self._entities.append(entity)
        self._index[entity_id] = entity
        self.version += 1

        logger.debug("Entity created", collection=self.kind, entity_id=entity_id)
        self._emit(HookEvent.ON_ENTITY_AFTER_CREATE, entity_id=entity_id, entity=copy.deepcopy(entity))
        return copy.deepcopy(entity)

    def update(self, entity_id: str, patch: dict[str, Any]) -> Entity:
        """Merge a patch into an existing entity, keeping its position.

        Raises:
            EntityNotFoundError: If no entity has ``entity_id``.
            EntityValidationError: If the patch violates the schema or changes the id.
        """
        entity = self._index.get(entity_id)
        if entity is None:
            raise EntityNotFoundError(entity_id, self.kind)

        if "id" in patch and patch["id"] != entity_id:
            raise EntityValidationError(
                [EntityValidationIssue("id", "Entity id cannot be changed", "immutable_id")]
            )

        processed, issues = EntityValidator.validate_and_apply_defaults(patch, self.schema, partial=True)
        if issues:
            raise EntityValidationError(issues)

        return self._apply(entity, processed)

    def remove(self, entity_id: str) -> None:
        """Remove an entity.

        Observers of ON_ENTITY_AFTER_DELETE (see StoreRegistry) detach
        references to it in other collections.

        Raises:
            EntityNotFoundError: If no entity has ``entity_id``.
        """
        entity = self._index.pop(entity_id, None)
        if entity is None:
            raise EntityNotFoundError(entity_id, self.kind)

        self._entities = [e for e in self._entities if e["id"] != entity_id]
        self.version += 1

        logger.debug("Entity removed", collection=self.kind, entity_id=entity_id)
        self._emit(HookEvent.ON_ENTITY_AFTER_DELETE, entity_id=entity_id, entity=entity)

    def clear(self) -> int:
        """Remove every entity. Returns the number removed."""
        removed = self._entities
        self._entities = []
        self._index = {}
        self.version += 1

        logger.debug("Collection cleared", collection=self.kind, count=len(removed))
        self._emit(HookEvent.ON_COLLECTION_AFTER_CLEAR, entity_ids=[e["id"] for e in removed])
        return len(removed)

    def hydrate(self, entities: Iterable[Entity]) -> int:
        """Replace the contents with previously persisted entities.

        Snapshots are trusted as-is (no schema validation). Entries without
        an id (e.g. seed data) get a generated one; entries with a non-string
        or repeated id are dropped.

        Returns:
            Number of entities loaded.
        """
        loaded: list[Entity] = []
        index: dict[str, Entity] = {}
        for raw in entities:
            if isinstance(raw, dict) and raw.get("id") is None:
                raw = {**raw, "id": self._id_generator.generate(index)}
            entity_id = raw.get("id") if isinstance(raw, dict) else None
            if not isinstance(entity_id, str) or not entity_id or entity_id in index:
                logger.warning("Skipping invalid snapshot entry", collection=self.kind, entity_id=entity_id)
                continue
            entity = copy.deepcopy(raw)
            loaded.append(entity)
            index[entity_id] = entity

        self._entities = loaded
        self._index = index
        self.version += 1

        logger.info("Collection hydrated", collection=self.kind, count=len(loaded))
        self._emit(HookEvent.ON_COLLECTION_AFTER_HYDRATE, count=len(loaded))
        return len(loaded)

    def detach_references(self, target_kind: str, target_id: str) -> list[str]:
        """Clear every reference field pointing at a removed entity.

        The referencing entities are kept; the reference becomes None and
        the field's ``on_detach`` resets are applied. Required-ness is not
        enforced here since the target no longer exists.

        Returns:
            Ids of the entities that were detached.
        """
        fields = self.schema.reference_fields(target_kind)
        if not fields:
            return []

        detached: list[str] = []
        for entity in list(self._entities):
            changes: dict[str, Any] = {}
            for definition in fields:
                if entity.get(definition.name) == target_id:
                    changes[definition.name] = None
                    changes.update(copy.deepcopy(definition.on_detach))
            if changes:
                self._apply(entity, changes)
                detached.append(entity["id"])

        if detached:
            logger.info(
                "References detached",
                collection=self.kind,
                target_collection=target_kind,
                target_id=target_id,
                count=len(detached),
            )
        return detached

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _apply(self, entity: Entity, changes: dict[str, Any]) -> Entity:
        entity.update(changes)
        self.version += 1
        logger.debug("Entity updated", collection=self.kind, entity_id=entity["id"], fields=list(changes))
        self._emit(
            HookEvent.ON_ENTITY_AFTER_UPDATE,
            entity_id=entity["id"],
            entity=copy.deepcopy(entity),
            changes=copy.deepcopy(changes),
        )
        return copy.deepcopy(entity)

    def _emit(self, event: str, **payload: Any) -> None:
        self.hooks.trigger(
            event,
            {"collection": self.kind, **payload},
            filters={"collection": self.kind},
        )
