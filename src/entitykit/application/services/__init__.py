"""Application services for EntityKit."""

from entitykit.application.services.entity_store import EntityStore
from entitykit.application.services.store_registry import StoreRegistry
from entitykit.application.services.query_view import QueryView
from entitykit.application.services.tabular_codec import TabularCodec
from entitykit.application.services.entity_engine import EntityEngine
from entitykit.application.services.workspace import EntityWorkspace

__all__ = [
    "EntityEngine",
    "EntityStore",
    "EntityWorkspace",
    "QueryView",
    "StoreRegistry",
    "TabularCodec",
]
