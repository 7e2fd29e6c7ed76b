"""Unit tests for SnapshotPersistence."""

import json

import pytest

from entitykit.core.exceptions import PersistenceReadError
from entitykit.application.services.entity_store import EntityStore
from entitykit.domain.entities.notification import NotificationKind
from entitykit.infrastructure.persistence.key_value import InMemoryKeyValueStore, JsonFileKeyValueStore
from entitykit.infrastructure.persistence.snapshot_persistence import SnapshotPersistence


class FailingReadStore(InMemoryKeyValueStore):
    def get(self, key):
        raise PersistenceReadError("disk on fire")


@pytest.fixture
def persistence(backend, channel, timers):
    return SnapshotPersistence(backend, channel=channel, debounce_seconds=0.25, timer_factory=timers)


class TestLoad:

    def test_missing_snapshot_returns_seed_or_empty(self, persistence):
        assert persistence.load("app_orders") == []
        assert persistence.load("app_orders", seed=[{"name": "seed"}]) == [{"name": "seed"}]

    def test_valid_snapshot(self, persistence, backend):
        backend.set("app_orders", json.dumps([{"id": "o1"}, "junk", {"id": "o2"}]))

        assert persistence.load("app_orders", seed=[{"name": "seed"}]) == [{"id": "o1"}, {"id": "o2"}]

    @pytest.mark.parametrize("raw", ["{broken", '{"id": "o1"}', "42"])
    def test_corrupt_snapshot_is_empty(self, persistence, backend, raw):
        backend.set("app_orders", raw)

        assert persistence.load("app_orders") == []

    def test_read_error_is_empty(self, channel, timers):
        persistence = SnapshotPersistence(FailingReadStore(), channel=channel, timer_factory=timers)

        assert persistence.load("app_orders") == []

    def test_invalid_file_key_is_empty(self, channel, timers, tmp_path):
        persistence = SnapshotPersistence(JsonFileKeyValueStore(tmp_path), channel=channel, timer_factory=timers)

        assert persistence.load("My App_orders", seed=[{"name": "seed"}]) == []


class TestSave:

    def test_save_writes_json(self, persistence, backend):
        assert persistence.save("app_orders", [{"id": "o1", "name": "Cement"}]) is True

        assert json.loads(backend.get("app_orders")) == [{"id": "o1", "name": "Cement"}]

    def test_quota_failure_is_notified(self, channel, timers):
        persistence = SnapshotPersistence(InMemoryKeyValueStore(quota_bytes=5), channel=channel, timer_factory=timers)

        assert persistence.save("app_orders", [{"id": "o1"}]) is False

        assert channel.current.kind == NotificationKind.ERROR
        assert "quota" in channel.current.message

    def test_unserializable_payload_is_notified(self, persistence, channel):
        assert persistence.save("app_orders", [{"id": "o1", "when": object()}]) is False
        assert channel.current.kind == NotificationKind.ERROR

    def test_deferred_failures_are_collected_not_published(self, channel, timers):
        persistence = SnapshotPersistence(InMemoryKeyValueStore(quota_bytes=5), channel=channel, timer_factory=timers)

        with persistence.deferred_failures() as failures:
            assert persistence.save("app_orders", [{"id": "o1"}]) is False

        assert len(failures) == 1
        assert "quota" in failures[0]
        assert channel.current is None

        persistence.save("app_orders", [{"id": "o1"}])
        assert channel.current.kind == NotificationKind.ERROR


class TestAttach:

    def test_mutations_debounced_into_latest_state(self, persistence, backend, timers, order_store):
        persistence.attach(order_store, "app_orders")

        first = order_store.create({"name": "Cement"})
        order_store.create({"name": "Sand"})
        order_store.update(first["id"], {"amount": 10})

        assert backend.get("app_orders") is None
        assert persistence.has_pending("app_orders") is True

        timers.fire_all()

        saved = json.loads(backend.get("app_orders"))
        assert saved == order_store.list()
        assert persistence.has_pending() is False

    def test_payload_captured_at_mutation_time(self, persistence, backend, timers, order_store):
        persistence.attach(order_store, "app_orders")
        order_store.create({"name": "Cement"})
        pending = timers.active[0]

        # Read-only access never reschedules
        order_store.list()
        pending.fire()

        assert len(json.loads(backend.get("app_orders"))) == 1

    def test_collections_debounce_independently(self, persistence, backend, timers, hooks, order_schema):
        orders = EntityStore("orders", order_schema, hooks=hooks)
        returns = EntityStore("returns", order_schema, hooks=hooks)
        persistence.attach(orders, "app_orders")
        persistence.attach(returns, "app_returns")

        orders.create({"name": "Cement"})
        returns.create({"name": "Sand"})

        assert len(timers.active) == 2
        persistence.flush("app_orders")
        assert backend.get("app_orders") is not None
        assert backend.get("app_returns") is None

    def test_hydrate_does_not_write(self, persistence, backend, timers, order_store):
        persistence.attach(order_store, "app_orders")

        order_store.hydrate([{"id": "o1", "name": "Cement"}])

        assert timers.timers == []

    def test_close_flushes_and_detaches(self, persistence, backend, timers, order_store):
        persistence.attach(order_store, "app_orders")
        order_store.create({"name": "Cement"})

        persistence.close()
        assert len(json.loads(backend.get("app_orders"))) == 1

        order_store.create({"name": "Sand"})
        assert persistence.has_pending() is False
