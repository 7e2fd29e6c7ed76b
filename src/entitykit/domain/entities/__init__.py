"""Domain entities for EntityKit.

Entities are pure Python dataclasses with no dependencies on
infrastructure.
"""

from entitykit.domain.entities.notification import Notification, NotificationKind
from entitykit.domain.entities.query import FilterSpec, RangeBound, SortDirection, SortKey
from entitykit.domain.entities.schema import FieldDefinition, FieldType, Schema
from entitykit.domain.entities.tabular import ColumnDescriptor, ImportResult

__all__ = [
    "ColumnDescriptor",
    "FieldDefinition",
    "FieldType",
    "FilterSpec",
    "ImportResult",
    "Notification",
    "NotificationKind",
    "RangeBound",
    "Schema",
    "SortDirection",
    "SortKey",
]
