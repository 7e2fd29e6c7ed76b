"""Unit tests for EntityEngine: notifications around every operation."""

import json

import pytest

from entitykit.core.exceptions import EntityNotFoundError, EntityValidationError
from entitykit.core.hooks import HookEvent
from entitykit.application.services.workspace import EntityWorkspace
from entitykit.domain.entities.notification import NotificationKind
from entitykit.infrastructure.persistence.key_value import InMemoryKeyValueStore


@pytest.fixture
def orders(workspace, order_schema):
    return workspace.add_collection("orders", order_schema)


@pytest.fixture
def published(channel):
    notifications = []
    channel.subscribe(notifications.append)
    return notifications


class TestMutations:

    def test_create_publishes_one_success(self, orders, published):
        entity = orders.create({"name": "Cement"})

        assert orders.get_by_id(entity["id"]) == entity
        assert len(published) == 1
        assert published[0].kind == NotificationKind.SUCCESS
        assert published[0].message == "Added orders entry"

    def test_failed_create_publishes_one_error_and_raises(self, orders, published):
        with pytest.raises(EntityValidationError):
            orders.create({"amount": 5})

        assert len(published) == 1
        assert published[0].kind == NotificationKind.ERROR
        assert "name" in published[0].message
        assert orders.list() == []

    def test_update_and_remove(self, orders, published):
        entity = orders.create({"name": "Cement"})

        orders.update(entity["id"], {"amount": 10})
        orders.remove(entity["id"])

        assert [n.message for n in published] == [
            "Added orders entry",
            "Updated orders entry",
            "Deleted orders entry",
        ]

    def test_not_found_is_reported(self, orders, published):
        with pytest.raises(EntityNotFoundError):
            orders.update("nope", {"amount": 1})
        with pytest.raises(EntityNotFoundError):
            orders.remove("nope")

        assert [n.kind for n in published] == [NotificationKind.ERROR, NotificationKind.ERROR]

    def test_clear(self, orders, published):
        orders.create({"name": "a"})
        orders.create({"name": "b"})

        assert orders.clear() == 2
        assert published[-1].message == "Cleared 2 orders entries"


class TestQueryDelegation:

    def test_filters_and_sort(self, orders):
        for name, amount, status in [("Cement", 100, "pending"), ("Sand", 50, "approved"), ("Gravel", 75, "pending")]:
            orders.create({"name": name, "amount": amount, "status": status})

        orders.set_exact_filter("status", "pending")
        orders.request_sort("amount")

        assert [e["name"] for e in orders.results()] == ["Gravel", "Cement"]

        orders.set_search_term("cem")
        assert [e["name"] for e in orders.results()] == ["Cement"]

        orders.set_search_term("")
        orders.set_exact_filter("status", None)
        orders.set_range_filter("amount", max_value=80)
        assert [e["name"] for e in orders.results()] == ["Sand", "Gravel"]


class TestCsv:

    def test_export_empty_collection(self, orders, channel):
        text = orders.export_csv()

        assert text.count("\n") == 1
        assert channel.current.kind == NotificationKind.ERROR
        assert channel.current.message == "No data to export"

    def test_export_filtered_view(self, orders, channel):
        orders.create({"name": "Cement", "status": "pending"})
        orders.create({"name": "Sand", "status": "approved"})
        orders.set_exact_filter("status", "approved")

        text = orders.export_csv(filtered=True)

        assert len(text.splitlines()) == 2
        assert "Sand" in text
        assert channel.current.message == "Exported 1 orders entries"

    def test_export_to_file(self, orders, tmp_path):
        orders.create({"name": "Cement"})

        path = orders.export_to_file(tmp_path)

        assert path.name.startswith("orders_")
        assert path.suffix == ".csv"

    def test_import_success(self, orders, channel, hooks):
        imports = []
        hooks.register(
            HookEvent.ON_COLLECTION_AFTER_IMPORT,
            lambda e, d: imports.append(d["result"]),
            filters={"collection": "orders"},
        )

        result = orders.import_csv("name,amount\nCement,10\nSand,5\n")

        assert result.imported == 2
        assert imports == [result]
        assert channel.current.kind == NotificationKind.SUCCESS
        assert channel.current.message == "Imported 2 orders entries"

    def test_import_partial_failure(self, orders, channel):
        orders.import_csv("name,amount\nCement,10\n,5\n")

        assert channel.current.kind == NotificationKind.ERROR
        assert channel.current.message == "Imported 1 orders entries; 1 rows failed"

    def test_import_missing_columns(self, orders, channel):
        orders.import_csv("customer,amount\nAcme,10\n")

        assert channel.current.message == "CSV file is missing required columns: name"

    def test_import_without_rows(self, orders, channel):
        result = orders.import_csv("name,amount\n")

        assert result.total == 0
        assert channel.current.kind == NotificationKind.ERROR

    def test_template(self, orders):
        assert orders.export_template(rows=2).count("\n") == 3

    @pytest.mark.asyncio
    async def test_import_file(self, orders, channel, tmp_path):
        path = tmp_path / "orders.csv"
        path.write_text("name,amount\nCement,10\n", encoding="utf-8")
        completed = []

        result = await orders.import_file(path, on_complete=completed.append)

        assert completed == [result]
        assert len(orders.list()) == 1
        assert channel.current.message == "Imported 1 orders entries"

    @pytest.mark.asyncio
    async def test_import_file_unreadable(self, orders, channel, tmp_path):
        with pytest.raises(OSError):
            await orders.import_file(tmp_path / "missing.csv")

        assert channel.current.kind == NotificationKind.ERROR
        assert "missing.csv" in channel.current.message


class TestPersistence:

    def test_mutations_are_debounced_into_one_write(self, orders, backend, timers):
        for name in ["a", "b", "c"]:
            orders.create({"name": name})

        assert backend.get("testapp_orders") is None
        assert len(timers.active) == 1

        timers.fire_all()

        saved = json.loads(backend.get("testapp_orders"))
        assert [e["name"] for e in saved] == ["a", "b", "c"]

    def test_flush_writes_pending_snapshot(self, orders, backend):
        orders.create({"name": "a"})

        orders.flush()

        assert backend.get("testapp_orders") is not None


class TestSynchronousWriteFailure:
    """With a zero debounce window a failed write is the one notification."""

    @pytest.fixture
    def full_orders(self, test_settings, hooks, channel, timers, order_schema):
        settings = test_settings.model_copy(update={"persistence_debounce_seconds": 0})
        workspace = EntityWorkspace(
            backend=InMemoryKeyValueStore(quota_bytes=20),
            settings=settings,
            hooks=hooks,
            channel=channel,
            timer_factory=timers,
        )
        yield workspace.add_collection("orders", order_schema)
        workspace.close()

    def test_create_reports_save_failure_instead_of_success(self, full_orders, channel, published):
        entity = full_orders.create({"name": "Cement"})

        assert full_orders.get_by_id(entity["id"]) == entity
        assert len(published) == 1
        assert published[0].kind == NotificationKind.ERROR
        assert published[0].message.startswith("Failed to save data: Storage quota")
        assert channel.current.kind == NotificationKind.ERROR

    def test_update_and_remove_report_save_failure(self, full_orders, published):
        entity = full_orders.create({"name": "Cement"})
        full_orders.update(entity["id"], {"amount": 3})
        full_orders.remove(entity["id"])

        # Removing the last entity writes "[]", which fits the quota
        assert [n.kind for n in published] == [
            NotificationKind.ERROR,
            NotificationKind.ERROR,
            NotificationKind.SUCCESS,
        ]

    def test_import_reports_save_failure_once(self, full_orders, published):
        result = full_orders.import_csv('"name","amount"\n"A","1"\n"B","2"\n')

        assert result.imported == 2
        assert len(published) == 1
        assert published[0].kind == NotificationKind.ERROR
        assert "failed to save data" in published[0].message

    def test_debounced_failure_is_published_when_timer_fires(
        self, test_settings, hooks, channel, timers, order_schema, published
    ):
        workspace = EntityWorkspace(
            backend=InMemoryKeyValueStore(quota_bytes=20),
            settings=test_settings,
            hooks=hooks,
            channel=channel,
            timer_factory=timers,
        )
        orders = workspace.add_collection("orders", order_schema)
        orders.create({"name": "Cement"})

        timers.fire_all()

        assert [n.kind for n in published] == [NotificationKind.SUCCESS, NotificationKind.ERROR]
        assert "Failed to save data" in published[1].message
        workspace.close()
