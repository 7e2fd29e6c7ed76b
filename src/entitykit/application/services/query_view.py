"""Derived, read-only view of a store: filters, sort state and results.

A QueryView keeps the UI-facing query state (search term, exact and
range filters, sort key) and recomputes its results from the latest
store contents. The memoized result is dropped on every change event
of the underlying store, so reads never observe stale data.
"""

from typing import Any, Sequence

from entitykit.core.hooks import CHANGE_EVENTS
from entitykit.application.services.entity_store import EntityStore
from entitykit.domain.entities.query import FilterSpec, RangeBound, SortDirection, SortKey
from entitykit.domain.entities.schema import FieldType
from entitykit.domain.services.query_engine import apply_query, next_sort_spec
from entitykit.domain.services.summary_service import SummaryService

Entity = dict[str, Any]


class QueryView:
    """Filter and sort state bound to one EntityStore."""

    def __init__(
        self,
        store: EntityStore,
        search_fields: Sequence[str] | None = None,
        sort_spec: Sequence[SortKey] | None = None,
    ) -> None:
        """Create a view over ``store``.

        Args:
            store: The store the view reads from.
            search_fields: Fields searched by the free-text term. Defaults to
                every string, enum and reference field of the schema.
            sort_spec: Initial sort; unsorted (insertion order) by default.
        """
        self.store = store
        self.filter_spec = FilterSpec(search_fields=list(search_fields or self._default_search_fields()))
        self.sort_spec: list[SortKey] = list(sort_spec or [])
        self._memo: list[Entity] | None = None
        self._hook_ids = [
            store.hooks.register(event, self._invalidate, filters={"collection": store.kind})
            for event in CHANGE_EVENTS
        ]

    def _default_search_fields(self) -> list[str]:
        text_types = (FieldType.STRING, FieldType.ENUM, FieldType.REFERENCE, FieldType.LIST)
        return [f.name for f in self.store.schema if f.type in text_types]

    def _invalidate(self, event: str | None = None, data: dict[str, Any] | None = None) -> None:
        self._memo = None

    # ------------------------------------------------------------------
    # UI contract
    # ------------------------------------------------------------------

    def set_search_term(self, term: str) -> None:
        self.filter_spec.search_term = term or ""
        self._invalidate()

    def set_search_fields(self, fields: Sequence[str]) -> None:
        self.filter_spec.search_fields = list(fields)
        self._invalidate()

    def set_exact_filter(self, field: str, value: Any) -> None:
        """Constrain a field to a value; None or "" removes the constraint."""
        if value is None or value == "":
            self.filter_spec.exact_filters.pop(field, None)
        else:
            self.filter_spec.exact_filters[field] = value
        self._invalidate()

    def set_range_filter(self, field: str, min_value: Any = None, max_value: Any = None) -> None:
        """Bound a numeric or date field; omitting both bounds removes the filter."""
        bound = RangeBound(min=min_value, max=max_value)
        if bound.is_empty:
            self.filter_spec.range_filters.pop(field, None)
        else:
            self.filter_spec.range_filters[field] = bound
        self._invalidate()

    def clear_filters(self) -> None:
        """Reset search, exact and range filters (sort is kept)."""
        self.filter_spec = FilterSpec(search_fields=self.filter_spec.search_fields)
        self._invalidate()

    def request_sort(self, key: str) -> SortKey:
        """Sort by ``key``; requesting the current key again toggles direction."""
        self.sort_spec = next_sort_spec(self.sort_spec, key)
        self._invalidate()
        return self.sort_spec[0]

    def set_sort(self, key: str, direction: SortDirection = SortDirection.ASC) -> None:
        self.sort_spec = [SortKey(key, direction)]
        self._invalidate()

    def clear_sort(self) -> None:
        self.sort_spec = []
        self._invalidate()

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------

    def results(self) -> list[Entity]:
        """The filtered and sorted entities."""
        if self._memo is None:
            self._memo = apply_query(self.store.list(), self.filter_spec, self.sort_spec, self.store.schema)
        return list(self._memo)

    def ids(self) -> list[str]:
        return [entity["id"] for entity in self.results()]

    def count(self) -> int:
        return len(self.results())

    def count_by(self, field: str) -> dict[Any, int]:
        return SummaryService.count_by(self.results(), field)

    def total(self, field: str) -> float:
        return SummaryService.total(self.results(), field)

    def average(self, field: str) -> float | None:
        return SummaryService.average(self.results(), field)

    def close(self) -> None:
        """Stop observing the store."""
        for hook_id in self._hook_ids:
            self.store.hooks.unregister(hook_id)
        self._hook_ids = []
