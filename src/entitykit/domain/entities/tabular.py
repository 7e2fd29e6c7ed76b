"""Entities used by the tabular (CSV) codec."""

from dataclasses import dataclass, field
from typing import Any, Callable, Optional


@dataclass(frozen=True)
class ColumnDescriptor:
    """One exported column.

    Attributes:
        header: Column header text.
        field_path: Dotted path of the value on the entity (``customer.name``).
        formatter: Optional callable turning the raw value into cell text.
    """

    header: str
    field_path: str
    formatter: Optional[Callable[[Any], str]] = None


@dataclass
class ImportResult:
    """Outcome of one CSV import.

    Attributes:
        imported: Number of rows that became entities.
        failed: Number of skipped rows.
        missing_columns: Required fields with no matching header.
        column_map: Resolved field name to column index.
        created_ids: Ids of the entities created, in row order.
    """

    imported: int = 0
    failed: int = 0
    missing_columns: list[str] = field(default_factory=list)
    column_map: dict[str, int] = field(default_factory=dict)
    created_ids: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.imported + self.failed

    def to_dict(self) -> dict[str, Any]:
        return {
            "imported": self.imported,
            "failed": self.failed,
            "missing_columns": list(self.missing_columns),
        }
