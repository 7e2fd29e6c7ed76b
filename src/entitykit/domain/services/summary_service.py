"""Summary statistics over a list of entities.

Backs the dashboard cards of list screens: counts per status, totals
and averages of amounts.
"""

from typing import Any, Iterable

from entitykit.domain.services.field_values import get_field_value, to_number, to_search_text


class SummaryService:
    """Aggregations over entity lists (usually the current filtered view)."""

    @staticmethod
    def count_by(entities: Iterable[dict[str, Any]], field: str) -> dict[Any, int]:
        """Count entities per field value, in first-seen order.

        List and record values are counted by their flattened text.
        """
        counts: dict[Any, int] = {}
        for entity in entities:
            value = get_field_value(entity, field)
            if isinstance(value, (list, dict)):
                value = to_search_text(value)
            counts[value] = counts.get(value, 0) + 1
        return counts

    @staticmethod
    def total(entities: Iterable[dict[str, Any]], field: str) -> float:
        """Sum of the numeric values of a field; non-numbers are ignored."""
        return sum(
            number
            for number in (to_number(get_field_value(e, field)) for e in entities)
            if number is not None
        )

    @staticmethod
    def average(entities: Iterable[dict[str, Any]], field: str) -> float | None:
        """Mean of the numeric values of a field, or None when there are none."""
        numbers = [
            number
            for number in (to_number(get_field_value(e, field)) for e in entities)
            if number is not None
        ]
        if not numbers:
            return None
        return sum(numbers) / len(numbers)
