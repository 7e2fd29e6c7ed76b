"""Tabular codec: CSV export and fault-tolerant CSV import.

Export writes a header row and one fully quoted row per entity
(embedded quotes doubled). Import maps header names onto schema fields
once, parses quote-aware rows, coerces each cell to its field type and
creates one entity per good row. Bad rows are counted, never raised.
"""

import asyncio
import csv
import io
import json
import re
from datetime import date
from pathlib import Path
from typing import Any, Callable, Iterable, Sequence

from entitykit.core.exceptions import EntityKitError, ImportRowError
from entitykit.core.logging import LoggingContext, get_logger
from entitykit.application.services.entity_store import EntityStore
from entitykit.domain.entities.schema import FieldDefinition, FieldType, Schema
from entitykit.domain.entities.tabular import ColumnDescriptor, ImportResult
from entitykit.domain.services.field_values import get_field_value
from entitykit.domain.services.value_coercion import (
    LIST_FIELD_SEPARATOR,
    LIST_ITEM_SEPARATOR,
    coerce_cell,
)

logger = get_logger(__name__)

Entity = dict[str, Any]

_HEADER_NOISE = re.compile(r"[^a-z0-9]")


def normalize_header(header: str) -> str:
    """Lower-case a header and drop everything but letters and digits."""
    return _HEADER_NOISE.sub("", (header or "").lstrip("\ufeff").lower())


def format_cell(value: Any, definition: FieldDefinition | None = None) -> str:
    """Render a value as cell text."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, list):
        if definition is not None and definition.items:
            return LIST_ITEM_SEPARATOR.join(
                LIST_FIELD_SEPARATOR.join(
                    format_cell(item.get(sub.name), sub) if isinstance(item, dict) else ""
                    for sub in definition.items
                )
                for item in value
            )
        return LIST_ITEM_SEPARATOR.join(format_cell(item) for item in value)
    if isinstance(value, dict):
        return json.dumps(value)
    return str(value)


class TabularCodec:
    """CSV import/export for one collection schema."""

    MEDIA_TYPE = "text/csv"

    def __init__(
        self,
        schema: Schema,
        encoding: str = "utf-8",
        min_columns: int | None = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        """Initialize the codec.

        Args:
            schema: Schema of the target collection.
            encoding: Text encoding of files read and written.
            min_columns: Fewest cells a data row may have. Derived from the
                position of the right-most required column when unset.
            today: Date provider for the date fallback of unparseable cells.
        """
        self.schema = schema
        self.encoding = encoding
        self.min_columns = min_columns
        self._today = today

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def default_columns(self, include_id: bool = True) -> list[ColumnDescriptor]:
        """One column per schema field, preceded by ``id`` unless excluded."""
        columns = [ColumnDescriptor(header=f.name, field_path=f.name) for f in self.schema]
        if include_id:
            columns.insert(0, ColumnDescriptor(header="id", field_path="id"))
        return columns

    def _cell(self, entity: Entity, column: ColumnDescriptor) -> str:
        value = get_field_value(entity, column.field_path)
        if column.formatter is not None:
            return column.formatter(value)
        return format_cell(value, self.schema.get(column.field_path))

    def export(self, entities: Iterable[Entity], columns: Sequence[ColumnDescriptor] | None = None) -> str:
        """Render entities as CSV text with every field quoted."""
        columns = list(columns or self.default_columns())
        buffer = io.StringIO()
        writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
        writer.writerow([column.header for column in columns])
        for entity in entities:
            writer.writerow([self._cell(entity, column) for column in columns])
        return buffer.getvalue()

    def export_to_file(
        self,
        directory: str | Path,
        kind: str,
        entities: Iterable[Entity],
        columns: Sequence[ColumnDescriptor] | None = None,
    ) -> Path:
        """Write an export to ``<directory>/<kind>_<ISO-date>.csv``."""
        target = Path(directory) / self.export_filename(kind, self._today())
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.export(entities, columns), encoding=self.encoding)
        logger.info("Collection exported", collection=kind, path=str(target))
        return target

    @staticmethod
    def export_filename(kind: str, on: date | None = None) -> str:
        return f"{kind}_{(on or date.today()).isoformat()}.csv"

    def _sample_value(self, definition: FieldDefinition, row: int) -> Any:
        if definition.default is not None:
            return definition.default_value()
        if definition.type == FieldType.NUMBER:
            return (row + 1) * 10
        if definition.type == FieldType.BOOLEAN:
            return row % 2 == 0
        if definition.type == FieldType.DATE:
            return self._today().isoformat()
        if definition.type == FieldType.ENUM:
            return definition.values[row % len(definition.values)]
        if definition.type == FieldType.RECORD:
            return {}
        if definition.type == FieldType.LIST:
            if definition.items:
                return [{sub.name: self._sample_value(sub, row) for sub in definition.items}]
            return [f"Example {definition.name} {row + 1}"]
        return f"Example {definition.name} {row + 1}"

    def export_template(self, sample_rows: Sequence[Entity] | None = None, rows: int = 1) -> str:
        """Header row plus 1-3 sample rows a user can fill in and re-import.

        Args:
            sample_rows: Explicit sample entities; generated from the schema when omitted.
            rows: Number of generated samples (clamped to 1-3).
        """
        if sample_rows is None:
            count = max(1, min(rows, 3))
            sample_rows = [
                {f.name: self._sample_value(f, i) for f in self.schema}
                for i in range(count)
            ]
        return self.export(list(sample_rows)[:3], self.default_columns(include_id=False))

    # ------------------------------------------------------------------
    # Import
    # ------------------------------------------------------------------

    def resolve_columns(self, headers: Sequence[str]) -> tuple[dict[str, int], list[str]]:
        """Map schema fields to header positions.

        An exact match of the normalized names wins; otherwise the first
        unclaimed header containing the field name is used (``Total Amount``
        maps to ``amount``). A header named ``id`` is never mapped.

        Returns:
            Tuple of (field name to column index, required fields without a
            column and without a default).
        """
        normalized = [normalize_header(h) for h in headers]
        claimed = {i for i, h in enumerate(normalized) if h == "id"}
        column_map: dict[str, int] = {}

        for definition in self.schema:
            key = normalize_header(definition.name)
            for i, header in enumerate(normalized):
                if i not in claimed and header == key:
                    column_map[definition.name] = i
                    claimed.add(i)
                    break

        for definition in self.schema:
            if definition.name in column_map:
                continue
            key = normalize_header(definition.name)
            for i, header in enumerate(normalized):
                if i not in claimed and key and key in header:
                    column_map[definition.name] = i
                    claimed.add(i)
                    break

        missing = [
            f.name
            for f in self.schema.required_fields
            if f.name not in column_map and f.default is None
        ]
        return column_map, missing

    def _required_width(self, column_map: dict[str, int]) -> int:
        if self.min_columns is not None:
            return self.min_columns
        required = [column_map[f.name] for f in self.schema.required_fields if f.name in column_map]
        return max(required) + 1 if required else 1

    def read_rows(self, text: str) -> tuple[list[str], list[tuple[int, list[str]]]]:
        """Split CSV text into a header and numbered data rows.

        Quoted fields may contain commas, quotes and newlines. Blank lines
        are dropped without counting as failures.
        """
        reader = csv.reader(io.StringIO((text or "").lstrip("\ufeff")))
        headers: list[str] | None = None
        rows: list[tuple[int, list[str]]] = []
        for row in reader:
            if not any(cell.strip() for cell in row):
                continue
            if headers is None:
                headers = [cell.strip() for cell in row]
            else:
                rows.append((reader.line_num, row))
        return headers or [], rows

    def row_to_partial(
        self, row: list[str], line_number: int, column_map: dict[str, int], width: int
    ) -> dict[str, Any]:
        """Coerce one data row into create() input.

        Raises:
            ImportRowError: If the row has fewer cells than ``width``.
        """
        if len(row) < width:
            raise ImportRowError(f"Expected at least {width} fields, got {len(row)}", line_number)

        today = self._today()
        partial: dict[str, Any] = {}
        for name, index in column_map.items():
            if index >= len(row):
                continue
            value = coerce_cell(row[index], self.schema.get(name), today)
            if value is not None:
                partial[name] = value
        return partial

    def import_text(self, text: str, store: EntityStore) -> ImportResult:
        """Import CSV text into ``store``.

        Every good row becomes a new entity with a freshly generated id;
        ids present in the file are ignored. A row is either created whole
        or skipped whole.
        """
        result = ImportResult()
        headers, rows = self.read_rows(text)
        if not headers:
            logger.warning("Import skipped: no header row", collection=store.kind)
            return result

        column_map, missing = self.resolve_columns(headers)
        width = self._required_width(column_map)
        result.column_map = column_map
        result.missing_columns = missing

        with LoggingContext(collection=store.kind):
            if missing:
                logger.warning("Import is missing required columns", missing_columns=missing)

            for line_number, row in rows:
                try:
                    partial = self.row_to_partial(row, line_number, column_map, width)
                    entity = store.create(partial)
                except EntityKitError as e:
                    result.failed += 1
                    logger.debug("Import row skipped", line=line_number, error=str(e))
                    continue
                result.imported += 1
                result.created_ids.append(entity["id"])

            logger.info("Import finished", imported=result.imported, failed=result.failed)
        return result

    async def read_file(self, path: str | Path) -> str:
        """Read a CSV file off the calling thread."""
        return await asyncio.to_thread(Path(path).read_text, encoding=self.encoding)

    async def import_file(
        self,
        path: str | Path,
        store: EntityStore,
        on_complete: Callable[[ImportResult], Any] | None = None,
    ) -> ImportResult:
        """Read a CSV file off-thread, then import it synchronously.

        Args:
            path: File to read.
            store: Target store.
            on_complete: Called once with the result after the import ran.

        Raises:
            OSError: If the file cannot be read.
        """
        text = await self.read_file(path)
        result = self.import_text(text, store)
        if on_complete is not None:
            on_complete(result)
        return result
