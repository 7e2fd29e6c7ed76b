"""Notification channel with single-slot, auto-expiring notifications.

Exactly one notification is active at a time. A new one replaces the
current one immediately; an unreplaced one expires after the configured
TTL. Nothing is queued. Observers are called through the hook registry
for every publish.
"""

import threading
import time
from typing import Callable

from entitykit.core.hooks import HookEvent, HookRegistry
from entitykit.core.logging import get_logger
from entitykit.domain.entities.notification import Notification, NotificationKind

logger = get_logger(__name__)


class NotificationChannel:
    """Publish/observe surface for success and error messages."""

    def __init__(
        self,
        ttl_seconds: float = 3.0,
        hooks: HookRegistry | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the channel.

        Args:
            ttl_seconds: Lifetime of a notification that is not replaced.
            hooks: Registry ON_NOTIFICATION events are triggered on.
            clock: Monotonic clock, injectable for tests.
        """
        self.ttl_seconds = ttl_seconds
        self.hooks = hooks or HookRegistry()
        self._clock = clock
        self._current: Notification | None = None
        self._lock = threading.RLock()

    def publish(self, message: str, kind: NotificationKind = NotificationKind.SUCCESS) -> Notification:
        """Make ``message`` the active notification, superseding any other."""
        now = self._clock()
        notification = Notification(
            message=message,
            kind=NotificationKind(kind),
            created_at=now,
            expires_at=now + self.ttl_seconds,
        )
        with self._lock:
            self._current = notification

        log = logger.warning if notification.kind == NotificationKind.ERROR else logger.debug
        log("Notification published", kind=notification.kind.value, notification=message)

        self.hooks.trigger(HookEvent.ON_NOTIFICATION, {"notification": notification})
        return notification

    def success(self, message: str) -> Notification:
        return self.publish(message, NotificationKind.SUCCESS)

    def error(self, message: str) -> Notification:
        return self.publish(message, NotificationKind.ERROR)

    @property
    def current(self) -> Notification | None:
        """The active notification, or None once it has expired."""
        with self._lock:
            if self._current is not None and self._current.is_expired(self._clock()):
                self._current = None
            return self._current

    def dismiss(self) -> None:
        with self._lock:
            self._current = None

    def subscribe(self, callback: Callable[[Notification], None]) -> str:
        """Call ``callback(notification)`` on every publish. Returns the hook id.

        Callbacks run on the publishing thread. Write failures of debounced
        saves are published from the timer that fired them, which is a
        background thread unless the workspace was built with
        ``timer_factory=loop_timer(loop)``.
        """
        return self.hooks.register(
            HookEvent.ON_NOTIFICATION,
            lambda event, data: callback(data["notification"]),
        )

    def unsubscribe(self, subscription_id: str) -> bool:
        return self.hooks.unregister(subscription_id)
