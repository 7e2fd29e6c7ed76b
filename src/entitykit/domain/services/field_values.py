"""Helpers for reading and interpreting entity field values.

Shared by the validator, the query engine and the tabular codec so that
dates, numbers and nested values are interpreted the same way everywhere.
"""

from datetime import date, datetime, time, timezone
from typing import Any

_MISSING = object()


def get_field_value(entity: dict[str, Any], path: str, default: Any = None) -> Any:
    """Resolve a dotted field path (``customer.name``, ``items.0.qty``).

    Returns ``default`` when any segment is missing.
    """
    current: Any = entity
    for segment in path.split("."):
        if isinstance(current, dict):
            current = current.get(segment, _MISSING)
        elif isinstance(current, (list, tuple)) and segment.isdigit():
            index = int(segment)
            current = current[index] if index < len(current) else _MISSING
        else:
            current = _MISSING
        if current is _MISSING:
            return default
    return current


def parse_datetime(value: Any) -> datetime | None:
    """Parse an ISO 8601 string, date or datetime into an aware datetime.

    Naive values are taken as UTC. Returns None when the value is not a date.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    elif isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def to_epoch_ms(value: Any) -> float | None:
    """Epoch milliseconds of a date-like value, or None."""
    parsed = parse_datetime(value)
    if parsed is None:
        return None
    return parsed.timestamp() * 1000


def to_number(value: Any) -> float | None:
    """Numeric value of an int/float (not bool), or None."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def normalize_date(value: Any) -> str:
    """Render a date-like value in the ISO form stored on entities."""
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def to_search_text(value: Any) -> str:
    """Flatten a value into the text searched by the free-text filter."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, dict):
        return " ".join(to_search_text(v) for v in value.values())
    if isinstance(value, (list, tuple)):
        return " ".join(to_search_text(v) for v in value)
    return str(value)
