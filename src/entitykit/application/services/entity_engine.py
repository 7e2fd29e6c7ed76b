"""Entity engine: one collection's store, query view, codec and persistence.

The EntityEngine is what a list screen talks to. Every mutating call
publishes exactly one notification (success or error); single-entity
errors are re-raised to the caller after being reported, batch imports
report counts, and persistence failures never surface as exceptions.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Sequence

from entitykit.core.exceptions import EntityKitError
from entitykit.core.hooks import HookEvent
from entitykit.core.logging import get_logger
from entitykit.application.services.entity_store import EntityStore
from entitykit.application.services.query_view import QueryView
from entitykit.application.services.tabular_codec import TabularCodec
from entitykit.domain.entities.query import SortKey
from entitykit.domain.entities.tabular import ColumnDescriptor, ImportResult
from entitykit.infrastructure.notifications.notification_channel import NotificationChannel
from entitykit.infrastructure.persistence.snapshot_persistence import SnapshotPersistence

logger = get_logger(__name__)

Entity = dict[str, Any]


class EntityEngine:
    """Facade over the components managing one collection kind."""

    def __init__(
        self,
        store: EntityStore,
        persistence: SnapshotPersistence,
        channel: NotificationChannel,
        storage_key: str,
        codec: TabularCodec | None = None,
        view: QueryView | None = None,
    ) -> None:
        self.store = store
        self.persistence = persistence
        self.channel = channel
        self.storage_key = storage_key
        self.codec = codec or TabularCodec(store.schema)
        self.view = view or QueryView(store)

    @property
    def kind(self) -> str:
        return self.store.kind

    @property
    def label(self) -> str:
        return self.store.kind.replace("_", " ")

    def hydrate(self, seed: Sequence[Entity] | None = None) -> int:
        """Load the stored snapshot (or ``seed`` if none exists) into the store."""
        entities = self.persistence.load(self.storage_key, seed)
        return self.store.hydrate(entities)

    # ------------------------------------------------------------------
    # Identity & store
    # ------------------------------------------------------------------

    def _report_outcome(self, failures: list[str], message: str) -> None:
        # A synchronous write failure replaces the success message
        if failures:
            self.channel.error(f"Failed to save data: {failures[-1]}")
        else:
            self.channel.success(message)

    def create(self, data: dict[str, Any]) -> Entity:
        with self.persistence.deferred_failures() as failures:
            try:
                entity = self.store.create(data)
            except EntityKitError as e:
                self.channel.error(f"Could not add {self.label} entry: {e}")
                raise
        self._report_outcome(failures, f"Added {self.label} entry")
        return entity

    def update(self, entity_id: str, patch: dict[str, Any]) -> Entity:
        with self.persistence.deferred_failures() as failures:
            try:
                entity = self.store.update(entity_id, patch)
            except EntityKitError as e:
                self.channel.error(f"Could not update {self.label} entry: {e}")
                raise
        self._report_outcome(failures, f"Updated {self.label} entry")
        return entity

    def remove(self, entity_id: str) -> None:
        with self.persistence.deferred_failures() as failures:
            try:
                self.store.remove(entity_id)
            except EntityKitError as e:
                self.channel.error(f"Could not delete {self.label} entry: {e}")
                raise
        self._report_outcome(failures, f"Deleted {self.label} entry")

    def clear(self) -> int:
        """Remove every entity of this collection."""
        with self.persistence.deferred_failures() as failures:
            count = self.store.clear()
        self._report_outcome(failures, f"Cleared {count} {self.label} entries")
        return count

    def list(self) -> list[Entity]:
        return self.store.list()

    def get_by_id(self, entity_id: str) -> Entity | None:
        return self.store.get_by_id(entity_id)

    # ------------------------------------------------------------------
    # Query
    # ------------------------------------------------------------------

    def results(self) -> list[Entity]:
        """The current filtered and sorted view."""
        return self.view.results()

    def set_search_term(self, term: str) -> None:
        self.view.set_search_term(term)

    def set_exact_filter(self, field: str, value: Any) -> None:
        self.view.set_exact_filter(field, value)

    def set_range_filter(self, field: str, min_value: Any = None, max_value: Any = None) -> None:
        self.view.set_range_filter(field, min_value, max_value)

    def request_sort(self, key: str) -> SortKey:
        return self.view.request_sort(key)

    # ------------------------------------------------------------------
    # Tabular codec
    # ------------------------------------------------------------------

    def _export_source(self, filtered: bool) -> list[Entity]:
        entities = self.results() if filtered else self.list()
        if not entities:
            self.channel.error("No data to export")
        else:
            self.channel.success(f"Exported {len(entities)} {self.label} entries")
        return entities

    def export_csv(self, columns: Sequence[ColumnDescriptor] | None = None, filtered: bool = False) -> str:
        """CSV text of the collection (or of the current view if ``filtered``)."""
        return self.codec.export(self._export_source(filtered), columns)

    def export_to_file(
        self,
        directory: str | Path,
        columns: Sequence[ColumnDescriptor] | None = None,
        filtered: bool = False,
    ) -> Path:
        """Write ``<kind>_<ISO-date>.csv`` into ``directory``."""
        return self.codec.export_to_file(directory, self.kind, self._export_source(filtered), columns)

    def export_template(self, rows: int = 1) -> str:
        return self.codec.export_template(rows=rows)

    def _report_import(self, result: ImportResult, failures: list[str]) -> ImportResult:
        self.store.hooks.trigger(
            HookEvent.ON_COLLECTION_AFTER_IMPORT,
            {"collection": self.kind, "result": result},
            filters={"collection": self.kind},
        )
        if failures:
            self.channel.error(
                f"Imported {result.imported} {self.label} entries but failed to save data: {failures[-1]}"
            )
        elif result.missing_columns:
            self.channel.error(
                f"CSV file is missing required columns: {', '.join(result.missing_columns)}"
            )
        elif result.failed:
            self.channel.error(
                f"Imported {result.imported} {self.label} entries; {result.failed} rows failed"
            )
        elif result.imported:
            self.channel.success(f"Imported {result.imported} {self.label} entries")
        else:
            self.channel.error("CSV file is empty or has no data rows")
        return result

    def import_csv(self, text: str) -> ImportResult:
        with self.persistence.deferred_failures() as failures:
            result = self.codec.import_text(text, self.store)
        return self._report_import(result, failures)

    async def import_file(
        self,
        path: str | Path,
        on_complete: Callable[[ImportResult], Any] | None = None,
    ) -> ImportResult:
        """Import a CSV file; ``on_complete`` receives the result once.

        Raises:
            OSError: If the file cannot be read (reported as a notification first).
        """
        try:
            text = await self.codec.read_file(path)
        except (OSError, UnicodeDecodeError) as e:
            self.channel.error(f"Could not read {Path(path).name}: {e}")
            raise
        result = self.import_csv(text)
        if on_complete is not None:
            on_complete(result)
        return result

    # ------------------------------------------------------------------
    # Persistence lifecycle
    # ------------------------------------------------------------------

    def flush(self) -> None:
        """Write a pending snapshot now."""
        self.persistence.flush(self.storage_key)

    def close(self) -> None:
        self.flush()
        self.view.close()
