"""Hook system core module.

Store mutations and notifications are published through a
HookRegistry; observers register callbacks directly or via the
decorator API.

Example usage:
    from entitykit.core.hooks import HookDecorator, HookRegistry

    registry = HookRegistry()
    hooks = HookDecorator(registry)

    @hooks.on_entity_after_create("orders")
    def on_order(event, data):
        print(data["entity"]["id"])
"""

from entitykit.core.hooks.hook_decorator import HookDecorator
from entitykit.core.hooks.hook_events import (
    CHANGE_EVENTS,
    EVENT_CATEGORIES,
    MUTATION_EVENTS,
    HookCategory,
    HookEvent,
    get_all_events,
    is_mutation_event,
)
from entitykit.core.hooks.hook_registry import HookRegistry, HookResult, RegisteredHook

__all__ = [
    # Registry
    "HookRegistry",
    "HookResult",
    "RegisteredHook",
    # Decorator
    "HookDecorator",
    # Events
    "HookCategory",
    "HookEvent",
    "EVENT_CATEGORIES",
    "MUTATION_EVENTS",
    "CHANGE_EVENTS",
    "get_all_events",
    "is_mutation_event",
]
