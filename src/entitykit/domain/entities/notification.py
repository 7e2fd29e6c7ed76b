"""Notification entity published by engine operations."""

from dataclasses import dataclass
from enum import Enum


class NotificationKind(str, Enum):
    """Outcome category of a notification."""

    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class Notification:
    """A transient outcome message.

    Attributes:
        message: Human-readable text.
        kind: Success or error.
        created_at: Clock reading when published.
        expires_at: Clock reading after which the notification is stale.
    """

    message: str
    kind: NotificationKind
    created_at: float
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at

    def to_dict(self) -> dict[str, str]:
        return {"message": self.message, "kind": self.kind.value}
