"""Pytest configuration for unit tests."""

from typing import Any, Callable

import pytest

from entitykit.core.config import Settings
from entitykit.core.hooks import HookRegistry
from entitykit.application.services.entity_store import EntityStore
from entitykit.application.services.workspace import EntityWorkspace
from entitykit.domain.entities.schema import FieldDefinition, FieldType, Schema
from entitykit.infrastructure.notifications.notification_channel import NotificationChannel
from entitykit.infrastructure.persistence.key_value import InMemoryKeyValueStore


class ManualTimer:
    """Timer that only fires when the test says so."""

    def __init__(self, interval: float, function: Callable[[], None]) -> None:
        self.interval = interval
        self.function = function
        self.started = False
        self.cancelled = False

    def start(self) -> None:
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True

    @property
    def active(self) -> bool:
        return self.started and not self.cancelled

    def fire(self) -> None:
        if self.active:
            self.cancelled = True
            self.function()


class ManualTimerFactory:
    """Timer factory recording every timer it creates."""

    def __init__(self) -> None:
        self.timers: list[ManualTimer] = []

    def __call__(self, interval: float, function: Callable[[], None]) -> ManualTimer:
        timer = ManualTimer(interval, function)
        self.timers.append(timer)
        return timer

    @property
    def active(self) -> list[ManualTimer]:
        return [t for t in self.timers if t.active]

    def fire_all(self) -> int:
        active = self.active
        for timer in active:
            timer.fire()
        return len(active)


class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def timers() -> ManualTimerFactory:
    return ManualTimerFactory()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def hooks() -> HookRegistry:
    return HookRegistry()


@pytest.fixture
def backend() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def channel(hooks: HookRegistry, clock: FakeClock) -> NotificationChannel:
    return NotificationChannel(ttl_seconds=3.0, hooks=hooks, clock=clock)


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        app_name="testapp",
        environment="testing",
        persistence_debounce_seconds=0.25,
        notification_ttl_seconds=3.0,
    )


@pytest.fixture
def order_schema() -> Schema:
    """Orders: every field type except references."""
    return Schema.of(
        FieldDefinition("name", FieldType.STRING, required=True),
        FieldDefinition("customer", FieldType.STRING),
        FieldDefinition("amount", FieldType.NUMBER, default=0),
        FieldDefinition("status", FieldType.ENUM, values=("pending", "approved", "rejected"), default="pending"),
        FieldDefinition("priority", FieldType.ENUM, values=("low", "medium", "high"), default="medium"),
        FieldDefinition("order_date", FieldType.DATE),
        FieldDefinition("paid", FieldType.BOOLEAN, default=False),
        FieldDefinition("tags", FieldType.LIST),
        FieldDefinition(
            "line_items",
            FieldType.LIST,
            items=(
                FieldDefinition("name", FieldType.STRING, required=True),
                FieldDefinition("qty", FieldType.NUMBER),
                FieldDefinition("price", FieldType.NUMBER),
            ),
        ),
        FieldDefinition("meta", FieldType.RECORD),
    )


@pytest.fixture
def vehicle_schema() -> Schema:
    return Schema.of(
        FieldDefinition("plate", FieldType.STRING, required=True),
        FieldDefinition("model", FieldType.STRING),
        FieldDefinition(
            "status", FieldType.ENUM, values=("available", "in_use", "maintenance"), default="available"
        ),
    )


@pytest.fixture
def shipment_schema() -> Schema:
    return Schema.of(
        FieldDefinition("destination", FieldType.STRING, required=True),
        FieldDefinition("weight", FieldType.NUMBER),
        FieldDefinition(
            "status",
            FieldType.ENUM,
            values=("unassigned", "assigned", "in_transit", "delivered"),
            default="unassigned",
        ),
        FieldDefinition(
            "assigned_vehicle_id",
            FieldType.REFERENCE,
            references="vehicles",
            on_detach={"status": "unassigned"},
        ),
    )


@pytest.fixture
def order_store(order_schema: Schema, hooks: HookRegistry) -> EntityStore:
    return EntityStore("orders", order_schema, hooks=hooks)


@pytest.fixture
def workspace(
    backend: InMemoryKeyValueStore,
    test_settings: Settings,
    hooks: HookRegistry,
    channel: NotificationChannel,
    timers: ManualTimerFactory,
) -> Any:
    ws = EntityWorkspace(
        backend=backend,
        settings=test_settings,
        hooks=hooks,
        channel=channel,
        timer_factory=timers,
    )
    yield ws
    ws.close()
