"""
Tests for the notifier.
"""

from expense_ledger.errors import (
    BackendError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from expense_ledger.models import NotificationLevel
from expense_ledger.notifications import Notifier


class TestNotifier:
    """Tests for queueing and forwarding notifications."""

    def test_levels(self, notifier, toasts):
        """Test that each helper sets its level."""
        notifier.success("Expense added", operation="add_expense")
        notifier.info("Loading")
        notifier.warning("Slow network")
        notifier.error("Boom")
        assert [n.level for n in toasts.shown] == [
            NotificationLevel.SUCCESS,
            NotificationLevel.INFO,
            NotificationLevel.WARNING,
            NotificationLevel.ERROR,
        ]
        assert toasts.shown[0].operation == "add_expense"

    def test_without_sink(self):
        """Test that notifications are queued when no sink is set."""
        notifier = Notifier()
        notifier.success("Saved")
        assert [n.message for n in notifier.pending] == ["Saved"]

    def test_drain(self, notifier):
        """Test that draining empties the queue."""
        notifier.info("one")
        notifier.info("two")
        assert [n.message for n in notifier.drain()] == ["one", "two"]
        assert notifier.pending == []

    def test_queue_bounded(self):
        """Test that old notifications are dropped."""
        notifier = Notifier(max_pending=2)
        for i in range(3):
            notifier.info(f"n{i}")
        assert [n.message for n in notifier.pending] == ["n1", "n2"]

    def test_broken_sink_does_not_raise(self):
        """Test that a failing sink is logged, not raised."""
        def sink(notification):
            raise RuntimeError("toast library crashed")

        notifier = Notifier(sink=sink)
        notification = notifier.error("Failed to add expense")
        assert notifier.pending == [notification]


class TestFailureMessages:
    """Tests for the one-notification-per-failure message."""

    def test_validation_message_shown_as_is(self, notifier):
        """Test validation errors."""
        n = notifier.failure("add_expense", ValidationError("Amount must be greater than zero"), "Failed")
        assert n.message == "Amount must be greater than zero"
        assert n.level == NotificationLevel.ERROR

    def test_conflict_message_shown_as_is(self, notifier):
        """Test conflict errors."""
        n = notifier.failure("delete_account", ConflictError("Cannot delete account with existing expenses"))
        assert n.message == "Cannot delete account with existing expenses"

    def test_backend_message_prefixed(self, notifier):
        """Test backend errors with a fallback prefix."""
        n = notifier.failure("add_expense", BackendError("timeout"), "Failed to add expense")
        assert n.message == "Failed to add expense: timeout"
        assert n.details["error_type"] == "BackendError"

    def test_not_found_prefixed(self, notifier):
        """Test that NotFoundError is treated as a backend error."""
        n = notifier.failure("update_expense", NotFoundError("Expense 9 not found"), "Failed to update expense")
        assert n.message == "Failed to update expense: Expense 9 not found"

    def test_backend_message_without_fallback(self, notifier):
        """Test backend errors with no prefix."""
        assert notifier.failure("x", BackendError("timeout")).message == "timeout"

    def test_long_message_truncated(self, notifier):
        """Test that messages fit the notification limit."""
        n = notifier.failure("x", BackendError("e" * 600), "Failed")
        assert len(n.message) == 500
