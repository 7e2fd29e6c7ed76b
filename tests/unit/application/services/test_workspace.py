"""Unit tests for EntityWorkspace."""

import asyncio
import json
import threading

import pytest

from entitykit.core.exceptions import SchemaDefinitionError
from entitykit.application.services.workspace import EntityWorkspace
from entitykit.domain.entities.notification import NotificationKind
from entitykit.infrastructure.persistence.debouncer import loop_timer
from entitykit.infrastructure.persistence.key_value import InMemoryKeyValueStore


class TestWorkspace:

    def test_add_collection_uses_settings_key(self, workspace, vehicle_schema):
        vehicles = workspace.add_collection("vehicles", vehicle_schema)

        assert vehicles.storage_key == "testapp_vehicles"
        assert workspace["vehicles"] is vehicles
        assert "vehicles" in workspace
        assert workspace.kinds == ["vehicles"]
        assert workspace.get("drivers") is None

    def test_duplicate_collection_rejected(self, workspace, vehicle_schema):
        workspace.add_collection("vehicles", vehicle_schema)

        with pytest.raises(SchemaDefinitionError):
            workspace.add_collection("vehicles", vehicle_schema)

    def test_seed_used_only_without_snapshot(self, workspace, backend, vehicle_schema):
        backend.set("testapp_vehicles", json.dumps([{"id": "v9", "plate": "SAVED"}]))
        seed = [{"plate": "SEED-1"}]

        vehicles = workspace.add_collection("vehicles", vehicle_schema, seed=seed)

        assert [v["plate"] for v in vehicles.list()] == ["SAVED"]

    def test_seed_loaded_when_storage_empty(self, workspace, backend, vehicle_schema):
        vehicles = workspace.add_collection("vehicles", vehicle_schema, seed=[{"plate": "SEED-1"}])

        assert [v["plate"] for v in vehicles.list()] == ["SEED-1"]
        assert backend.get("testapp_vehicles") is None

    def test_corrupt_snapshot_loads_empty(self, workspace, backend, vehicle_schema):
        backend.set("testapp_vehicles", "{not json")

        vehicles = workspace.add_collection("vehicles", vehicle_schema)

        assert vehicles.list() == []

    def test_cascading_detach_across_collections(self, workspace, vehicle_schema, shipment_schema, backend):
        vehicles = workspace.add_collection("vehicles", vehicle_schema)
        shipments = workspace.add_collection("shipments", shipment_schema)
        vehicles.create({"id": "v1", "plate": "AB-123"})
        shipments.create({"id": "s1", "destination": "Pune", "assigned_vehicle_id": "v1", "status": "assigned"})

        vehicles.remove("v1")
        workspace.flush()

        s1 = shipments.get_by_id("s1")
        assert s1["assigned_vehicle_id"] is None
        assert s1["status"] == "unassigned"
        saved = json.loads(backend.get("testapp_shipments"))
        assert saved[0]["assigned_vehicle_id"] is None

    def test_hook_decorator(self, workspace, vehicle_schema):
        vehicles = workspace.add_collection("vehicles", vehicle_schema)
        created = []

        @workspace.hook.on_entity_after_create("vehicles")
        def remember(event, data):
            created.append(data["entity_id"])

        entity = vehicles.create({"plate": "AB-123"})

        assert created == [entity["id"]]

    def test_save_failure_is_notified_not_raised(self, test_settings, timers, vehicle_schema):
        backend = InMemoryKeyValueStore(quota_bytes=10)
        workspace = EntityWorkspace(backend=backend, settings=test_settings, timer_factory=timers)
        vehicles = workspace.add_collection("vehicles", vehicle_schema)

        vehicles.create({"plate": "AB-123"})
        timers.fire_all()

        assert workspace.channel.current.kind == NotificationKind.ERROR
        assert workspace.channel.current.message.startswith("Failed to save data")
        assert len(vehicles.list()) == 1
        workspace.close()

    def test_close_flushes_and_context_manager(self, test_settings, timers, vehicle_schema):
        backend = InMemoryKeyValueStore()

        with EntityWorkspace(backend=backend, settings=test_settings, timer_factory=timers) as workspace:
            workspace.add_collection("vehicles", vehicle_schema).create({"plate": "AB-123"})
            assert backend.get("testapp_vehicles") is None

        assert json.loads(backend.get("testapp_vehicles"))[0]["plate"] == "AB-123"

    def test_reload_from_file_backend(self, tmp_path, test_settings, vehicle_schema):
        settings = test_settings.model_copy(update={"storage_path": str(tmp_path)})

        with EntityWorkspace(settings=settings) as workspace:
            workspace.add_collection("vehicles", vehicle_schema).create({"id": "v1", "plate": "AB-123"})

        with EntityWorkspace(settings=settings) as workspace:
            vehicles = workspace.add_collection("vehicles", vehicle_schema)
            assert vehicles.get_by_id("v1")["plate"] == "AB-123"


class TestLoopScheduledPersistence:

    @pytest.mark.asyncio
    async def test_save_failure_published_on_loop_thread(
        self, test_settings, hooks, channel, order_schema
    ):
        settings = test_settings.model_copy(update={"persistence_debounce_seconds": 0.01})
        workspace = EntityWorkspace(
            backend=InMemoryKeyValueStore(quota_bytes=20),
            settings=settings,
            hooks=hooks,
            channel=channel,
            timer_factory=loop_timer(asyncio.get_running_loop()),
        )
        threads = []
        channel.subscribe(lambda notification: threads.append((notification.kind, threading.get_ident())))
        orders = workspace.add_collection("orders", order_schema)

        orders.create({"name": "Cement"})
        await asyncio.sleep(0.1)

        assert threads == [
            (NotificationKind.SUCCESS, threading.get_ident()),
            (NotificationKind.ERROR, threading.get_ident()),
        ]
        workspace.close()
