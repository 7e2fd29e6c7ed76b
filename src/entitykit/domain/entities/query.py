"""Query configuration entities: filters and sort keys."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class SortDirection(str, Enum):
    """Sort direction of a SortKey."""

    ASC = "asc"
    DESC = "desc"

    def toggled(self) -> "SortDirection":
        return SortDirection.DESC if self is SortDirection.ASC else SortDirection.ASC


@dataclass(frozen=True)
class SortKey:
    """A single sort instruction."""

    key: str
    direction: SortDirection = SortDirection.ASC


@dataclass(frozen=True)
class RangeBound:
    """Inclusive bounds for a numeric or date range filter.

    Either bound may be omitted. Date bounds can be ISO strings,
    ``date`` or ``datetime`` objects.
    """

    min: Any = None
    max: Any = None

    @property
    def is_empty(self) -> bool:
        return self.min in (None, "") and self.max in (None, "")


@dataclass
class FilterSpec:
    """Search, exact-match and range filters for a query.

    Attributes:
        search_term: Free-text term; empty matches everything.
        search_fields: Field paths searched for the term (any may match).
        exact_filters: Field path to required value; None or "" means no constraint.
        range_filters: Field path to inclusive bounds.
    """

    search_term: str = ""
    search_fields: list[str] = field(default_factory=list)
    exact_filters: dict[str, Any] = field(default_factory=dict)
    range_filters: dict[str, RangeBound] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return (
            not self.search_term
            and all(v in (None, "") for v in self.exact_filters.values())
            and all(bound.is_empty for bound in self.range_filters.values())
        )
