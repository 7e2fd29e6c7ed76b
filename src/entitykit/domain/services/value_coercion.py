"""Coercion of CSV cell text into typed field values.

Every coercion is total: unparseable input falls back to a fixed value
(numbers to 0, dates to today, enums to their first value) instead of
raising, so a single odd cell never sinks a whole import row.
"""

import json
import re
from datetime import date
from typing import Any

from entitykit.domain.entities.schema import FieldDefinition, FieldType
from entitykit.domain.services.field_values import parse_datetime

LIST_ITEM_SEPARATOR = "|"
LIST_FIELD_SEPARATOR = ","

TRUE_WORDS = frozenset({"true", "yes", "y", "1", "on"})

_ENUM_NOISE = re.compile(r"[\s_\-]+")
_NUMBER_NOISE = re.compile(r"[\s_' ]")
_CURRENCY = re.compile(r"^[^\d\-+.,]+|[^\d.,]+$")


def parse_number(text: str) -> int | float:
    """Locale-agnostic number parse with fallback 0.

    Accepts ``1234.5``, ``1,234.50``, ``1.234,50``, ``1 234,5`` and leading
    currency symbols. Integral text without a decimal part stays an int.
    """
    cleaned = _NUMBER_NOISE.sub("", text or "")
    cleaned = _CURRENCY.sub("", cleaned)
    if not cleaned:
        return 0

    if "," in cleaned and "." in cleaned:
        # The right-most separator is the decimal one
        if cleaned.rfind(",") > cleaned.rfind("."):
            cleaned = cleaned.replace(".", "").replace(",", ".")
        else:
            cleaned = cleaned.replace(",", "")
    elif "," in cleaned:
        head, _, tail = cleaned.rpartition(",")
        if cleaned.count(",") > 1 or len(tail) == 3:
            cleaned = cleaned.replace(",", "")
        else:
            cleaned = f"{head}.{tail}"

    try:
        if re.fullmatch(r"[+-]?\d+", cleaned):
            return int(cleaned)
        return float(cleaned)
    except ValueError:
        return 0


def parse_date(text: str, today: date | None = None) -> str:
    """ISO date parse with fallback to today.

    Valid ISO text is kept as written, so exported values import unchanged.
    """
    stripped = (text or "").strip()
    if parse_datetime(stripped) is None:
        return (today or date.today()).isoformat()
    return stripped


def _enum_token(value: str) -> str:
    return _ENUM_NOISE.sub("", value).upper()


def match_enum(text: str, values: tuple[str, ...]) -> str:
    """Case- and format-insensitive enum match with fallback to the first value.

    ``in progress``, ``IN_PROGRESS`` and ``In-Progress`` all match ``In Progress``.
    """
    token = _enum_token(text or "")
    for value in values:
        if _enum_token(value) == token:
            return value
    return values[0]


def parse_boolean(text: str) -> bool:
    return (text or "").strip().lower() in TRUE_WORDS


def _coerce_primitive(text: str, definition: FieldDefinition, today: date | None) -> Any:
    if definition.type == FieldType.NUMBER:
        return parse_number(text)
    if definition.type == FieldType.BOOLEAN:
        return parse_boolean(text)
    if definition.type == FieldType.DATE:
        return parse_date(text, today)
    if definition.type == FieldType.REFERENCE:
        return text.strip()
    return text


def parse_list(text: str, definition: FieldDefinition, today: date | None = None) -> list[Any]:
    """Decode a pipe-joined list cell.

    With item fields declared, each item is a comma-joined tuple in item
    field order (``Cement,10,4.5|Sand,2,1.25``); extra parts are dropped and
    missing parts are left out of the item.
    """
    items: list[Any] = []
    for chunk in (text or "").split(LIST_ITEM_SEPARATOR):
        if not chunk.strip():
            continue
        if not definition.items:
            items.append(chunk.strip())
            continue
        parts = chunk.split(LIST_FIELD_SEPARATOR)
        item = {
            sub_field.name: _coerce_primitive(part, sub_field, today)
            for sub_field, part in zip(definition.items, parts)
        }
        items.append(item)
    return items


def parse_record(text: str, definition: FieldDefinition) -> Any:
    """Decode a JSON record cell, falling back to the field default."""
    try:
        value = json.loads(text)
    except (TypeError, ValueError):
        return definition.default_value()
    return value if isinstance(value, dict) else definition.default_value()


def coerce_cell(text: str | None, definition: FieldDefinition, today: date | None = None) -> Any:
    """Coerce one cell into a value for ``definition``.

    Returns None for an empty cell so the store can apply the default.
    """
    if text is None or not text.strip():
        return None

    if definition.type == FieldType.ENUM:
        return match_enum(text, definition.values)
    if definition.type == FieldType.LIST:
        return parse_list(text, definition, today)
    if definition.type == FieldType.RECORD:
        return parse_record(text, definition)
    return _coerce_primitive(text, definition, today)
