"""EntityKit - schema-driven entity collections.

Identity-keyed stores with validation, filtered and sorted views,
CSV import/export, debounced snapshot persistence and transient
notifications.
"""

__version__ = "0.1.0"

from entitykit.application.services import (
    EntityEngine,
    EntityStore,
    EntityWorkspace,
    QueryView,
    StoreRegistry,
    TabularCodec,
)
from entitykit.domain.entities import FieldDefinition, FieldType, Schema

__all__ = [
    "EntityEngine",
    "EntityStore",
    "EntityWorkspace",
    "FieldDefinition",
    "FieldType",
    "QueryView",
    "Schema",
    "StoreRegistry",
    "TabularCodec",
    "__version__",
]
