"""Hook event definitions and categories.

This module defines every event the engine emits. Store mutations,
collection lifecycle changes and notifications all flow through the
same registry so that query views, persistence and UI layers can
observe them without knowing about each other.
"""


class HookCategory:
    """Categories for organizing hooks."""

    ENTITY_OPERATIONS = "entity_operations"
    COLLECTION_OPERATIONS = "collection_operations"
    NOTIFICATIONS = "notifications"


class HookEvent:
    """Hook event names.

    Every event carries a payload dict with at least a ``collection`` key,
    except notification events which carry the notification itself.
    """

    # Entity Operations
    ON_ENTITY_AFTER_CREATE = "on_entity_after_create"
    ON_ENTITY_AFTER_UPDATE = "on_entity_after_update"
    ON_ENTITY_AFTER_DELETE = "on_entity_after_delete"

    # Collection Operations
    ON_COLLECTION_AFTER_HYDRATE = "on_collection_after_hydrate"
    ON_COLLECTION_AFTER_CLEAR = "on_collection_after_clear"
    ON_COLLECTION_AFTER_IMPORT = "on_collection_after_import"

    # Notifications
    ON_NOTIFICATION = "on_notification"


EVENT_CATEGORIES: dict[str, str] = {
    HookEvent.ON_ENTITY_AFTER_CREATE: HookCategory.ENTITY_OPERATIONS,
    HookEvent.ON_ENTITY_AFTER_UPDATE: HookCategory.ENTITY_OPERATIONS,
    HookEvent.ON_ENTITY_AFTER_DELETE: HookCategory.ENTITY_OPERATIONS,
    HookEvent.ON_COLLECTION_AFTER_HYDRATE: HookCategory.COLLECTION_OPERATIONS,
    HookEvent.ON_COLLECTION_AFTER_CLEAR: HookCategory.COLLECTION_OPERATIONS,
    HookEvent.ON_COLLECTION_AFTER_IMPORT: HookCategory.COLLECTION_OPERATIONS,
    HookEvent.ON_NOTIFICATION: HookCategory.NOTIFICATIONS,
}

# Events after which the stored collection differs from its last snapshot
MUTATION_EVENTS: frozenset[str] = frozenset({
    HookEvent.ON_ENTITY_AFTER_CREATE,
    HookEvent.ON_ENTITY_AFTER_UPDATE,
    HookEvent.ON_ENTITY_AFTER_DELETE,
    HookEvent.ON_COLLECTION_AFTER_CLEAR,
})

# Events after which derived query views must be recomputed
CHANGE_EVENTS: frozenset[str] = MUTATION_EVENTS | {HookEvent.ON_COLLECTION_AFTER_HYDRATE}


def get_all_events() -> list[str]:
    """Get all available hook event names."""
    return [
        value
        for name, value in vars(HookEvent).items()
        if not name.startswith("_") and isinstance(value, str)
    ]


def is_mutation_event(event: str) -> bool:
    """Check if an event changes the stored collection."""
    return event in MUTATION_EVENTS
