"""Notifications package."""

from expense_ledger.notifications.notifier import Notifier, NotificationSink

__all__ = ["Notifier", "NotificationSink"]
