"""Decorator API for hook registration.

Enables the ``@hooks.on_entity_after_create("vehicles")`` syntax for
UI layers and integrations that want to react to store changes.
"""

from typing import Any, Callable, Optional, TypeVar

from entitykit.core.hooks.hook_events import HookEvent
from entitykit.core.hooks.hook_registry import HookRegistry

F = TypeVar("F", bound=Callable[..., Any])


class HookDecorator:
    """Provides decorator syntax for hook registration.

    Example:
        hooks = HookDecorator(registry)

        @hooks.on_entity_after_delete("vehicles")
        def refresh_vehicle_table(event, data):
            table.reload()
    """

    def __init__(self, registry: HookRegistry) -> None:
        self._registry = registry

    @property
    def registry(self) -> HookRegistry:
        """Get the underlying hook registry."""
        return self._registry

    def _register(
        self,
        event: str,
        collection: Optional[str],
        priority: int,
        stop_on_error: bool,
    ) -> Callable[[F], F]:
        filters = {"collection": collection} if collection else None

        def decorator(func: F) -> F:
            self._registry.register(
                event=event,
                callback=func,
                filters=filters,
                priority=priority,
                stop_on_error=stop_on_error,
            )
            return func

        return decorator

    def on_entity_after_create(
        self, collection: Optional[str] = None, priority: int = 0, stop_on_error: bool = False
    ) -> Callable[[F], F]:
        """Register a hook fired after an entity is created."""
        return self._register(HookEvent.ON_ENTITY_AFTER_CREATE, collection, priority, stop_on_error)

    def on_entity_after_update(
        self, collection: Optional[str] = None, priority: int = 0, stop_on_error: bool = False
    ) -> Callable[[F], F]:
        """Register a hook fired after an entity is updated."""
        return self._register(HookEvent.ON_ENTITY_AFTER_UPDATE, collection, priority, stop_on_error)

    def on_entity_after_delete(
        self, collection: Optional[str] = None, priority: int = 0, stop_on_error: bool = False
    ) -> Callable[[F], F]:
        """Register a hook fired after an entity is removed."""
        return self._register(HookEvent.ON_ENTITY_AFTER_DELETE, collection, priority, stop_on_error)

    def on_collection_after_clear(
        self, collection: Optional[str] = None, priority: int = 0, stop_on_error: bool = False
    ) -> Callable[[F], F]:
        """Register a hook fired after a collection is emptied."""
        return self._register(HookEvent.ON_COLLECTION_AFTER_CLEAR, collection, priority, stop_on_error)

    def on_collection_after_import(
        self, collection: Optional[str] = None, priority: int = 0, stop_on_error: bool = False
    ) -> Callable[[F], F]:
        """Register a hook fired once a CSV import has finished."""
        return self._register(HookEvent.ON_COLLECTION_AFTER_IMPORT, collection, priority, stop_on_error)

    def on_notification(self, priority: int = 0) -> Callable[[F], F]:
        """Register a hook fired for every published notification."""
        return self._register(HookEvent.ON_NOTIFICATION, None, priority, False)
