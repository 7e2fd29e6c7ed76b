"""Notification channel for operation outcomes."""

from entitykit.infrastructure.notifications.notification_channel import NotificationChannel

__all__ = ["NotificationChannel"]
