"""Query engine: filter predicates and a stable single-key comparator.

Filtering is conjunctive across filter classes (search AND exact AND
range) and disjunctive within the search fields. Sorting uses only the
first SortKey; equal keys keep their original relative order and
missing values always sort last, whatever the direction.
"""

import unicodedata
from typing import Any, Callable, Iterable, Sequence

from entitykit.domain.entities.query import FilterSpec, RangeBound, SortDirection, SortKey
from entitykit.domain.entities.schema import FieldType, Schema
from entitykit.domain.services.field_values import (
    get_field_value,
    to_epoch_ms,
    to_number,
    to_search_text,
)

Entity = dict[str, Any]
Predicate = Callable[[Entity], bool]

_TEXT_TYPES = (FieldType.STRING, FieldType.ENUM, FieldType.REFERENCE)


def _field_type(schema: Schema | None, path: str) -> FieldType | None:
    if schema is None:
        return None
    definition = schema.get(path.split(".", 1)[0])
    if definition is None or "." in path:
        return None
    return definition.type


def _is_unconstrained(value: Any) -> bool:
    return value is None or value == ""


# ---------------------------------------------------------------------------
# Filtering
# ---------------------------------------------------------------------------


def matches_search(entity: Entity, term: str, fields: Iterable[str]) -> bool:
    """True if the term is empty or a case-insensitive substring of any field."""
    if not term:
        return True
    needle = term.lower()
    return any(needle in to_search_text(get_field_value(entity, path)).lower() for path in fields)


def matches_exact(entity: Entity, exact_filters: dict[str, Any]) -> bool:
    """True if every constrained field equals its filter value."""
    for path, expected in exact_filters.items():
        if _is_unconstrained(expected):
            continue
        actual = get_field_value(entity, path)
        if actual == expected:
            continue
        if actual is None or to_search_text(actual) != to_search_text(expected):
            return False
    return True


def _range_value(value: Any, field_type: FieldType | None) -> float | None:
    """Comparable number for a range check: numbers as-is, dates as epoch ms."""
    if field_type == FieldType.DATE:
        return to_epoch_ms(value)

    number = to_number(value)
    if number is not None:
        return number
    if field_type == FieldType.NUMBER and isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    if field_type is None:
        return to_epoch_ms(value)
    return None


def matches_range(
    entity: Entity, range_filters: dict[str, RangeBound], schema: Schema | None = None
) -> bool:
    """True if every bounded field lies within its inclusive bounds.

    Entities without a comparable value fail any non-empty range.
    """
    for path, bound in range_filters.items():
        if bound.is_empty:
            continue
        field_type = _field_type(schema, path)
        actual = _range_value(get_field_value(entity, path), field_type)
        if actual is None:
            return False
        if not _is_unconstrained(bound.min):
            lower = _range_value(bound.min, field_type)
            if lower is not None and actual < lower:
                return False
        if not _is_unconstrained(bound.max):
            upper = _range_value(bound.max, field_type)
            if upper is not None and actual > upper:
                return False
    return True


def build_predicate(spec: FilterSpec, schema: Schema | None = None) -> Predicate:
    """Compose a FilterSpec into one predicate (search AND exact AND range)."""
    if spec.is_empty:
        return lambda entity: True

    def predicate(entity: Entity) -> bool:
        return (
            matches_search(entity, spec.search_term, spec.search_fields)
            and matches_exact(entity, spec.exact_filters)
            and matches_range(entity, spec.range_filters, schema)
        )

    return predicate


def filter_entities(
    entities: Iterable[Entity], spec: FilterSpec, schema: Schema | None = None
) -> list[Entity]:
    predicate = build_predicate(spec, schema)
    return [entity for entity in entities if predicate(entity)]


# ---------------------------------------------------------------------------
# Sorting
# ---------------------------------------------------------------------------


def collation_key(text: str) -> tuple[str, str]:
    """Locale-aware ordering key: accent- and case-insensitive first."""
    decomposed = unicodedata.normalize("NFKD", text)
    folded = "".join(ch for ch in decomposed if not unicodedata.combining(ch)).casefold()
    return folded, text


def _infer_type(values: Sequence[Any]) -> FieldType:
    """Infer a comparison type for a field without a declared schema type."""
    present = [v for v in values if v is not None]
    if present and all(to_number(v) is not None for v in present):
        return FieldType.NUMBER
    if present and all(isinstance(v, str) and to_epoch_ms(v) is not None for v in present):
        return FieldType.DATE
    return FieldType.STRING


def _sort_value(value: Any, field_type: FieldType) -> Any:
    """Comparable key for a value, or None when it cannot be compared."""
    if value is None:
        return None
    if field_type == FieldType.DATE:
        return to_epoch_ms(value)
    if field_type == FieldType.NUMBER:
        return to_number(value)
    if field_type == FieldType.BOOLEAN:
        return int(value) if isinstance(value, bool) else None
    if field_type in _TEXT_TYPES:
        return collation_key(value) if isinstance(value, str) else None
    return collation_key(to_search_text(value))


def sort_entities(
    entities: Sequence[Entity], sort_spec: Sequence[SortKey], schema: Schema | None = None
) -> list[Entity]:
    """Stable sort by the first SortKey.

    Dates compare by epoch milliseconds, numbers numerically and text with
    a locale-aware key. Values that are missing or of the wrong type sort
    last in original order regardless of direction.
    """
    if not sort_spec:
        return list(entities)

    sort_key = sort_spec[0]
    raw_values = [get_field_value(entity, sort_key.key) for entity in entities]
    field_type = _field_type(schema, sort_key.key) or _infer_type(raw_values)

    present: list[tuple[Any, Entity]] = []
    missing: list[Entity] = []
    for entity, raw in zip(entities, raw_values):
        key = _sort_value(raw, field_type)
        if key is None:
            missing.append(entity)
        else:
            present.append((key, entity))

    # sorted() is stable in both directions, so ties keep insertion order
    present.sort(key=lambda pair: pair[0], reverse=sort_key.direction == SortDirection.DESC)
    return [entity for _, entity in present] + missing


def next_sort_spec(current: Sequence[SortKey], key: str) -> list[SortKey]:
    """Sort spec after a column request: same key toggles, new key resets to asc."""
    if current and current[0].key == key:
        return [SortKey(key, current[0].direction.toggled())]
    return [SortKey(key, SortDirection.ASC)]


def apply_query(
    entities: Sequence[Entity],
    filter_spec: FilterSpec,
    sort_spec: Sequence[SortKey],
    schema: Schema | None = None,
) -> list[Entity]:
    """Filter then sort a collection into a derived view."""
    return sort_entities(filter_entities(entities, filter_spec, schema), sort_spec, schema)
