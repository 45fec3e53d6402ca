"""
Notifier

DESIGN DECISION: Every operation ends in at most one user-visible
notification, and every notification is also written to the developer log.
This provides:
1. One toast per failed operation, never a cascade
2. A structured local log of what the user was told
3. A single place to plug in the screen's toast function

The notifier:
- Keeps a short queue of notifications for the screen to drain
- Forwards each one to an optional sink (the toast)
- Gracefully handles sink failures (a broken toast never breaks a save)
"""

from collections import deque
from typing import Any, Callable, Optional

import structlog

from expense_ledger.errors import (
    BackendError,
    ConflictError,
    LedgerError,
    ValidationError,
)
from expense_ledger.models.notification import Notification, NotificationLevel


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


NotificationSink = Callable[[Notification], None]


class Notifier:
    """
    Central notification service.

    Sends notifications both to:
    1. Structured local log (for debugging)
    2. The screen, via the pending queue and the optional sink
    """

    def __init__(
        self,
        sink: Optional[NotificationSink] = None,
        max_pending: int = 50,
    ):
        """
        Initialize notifier.

        Args:
            sink: Called with every notification (e.g., a toast function).
                  If None, notifications are only queued and logged.
            max_pending: Oldest notifications are dropped beyond this.
        """
        self._sink = sink
        self._pending: deque[Notification] = deque(maxlen=max_pending)
        self._logger = structlog.get_logger("expense_ledger.notifications")

    def notify(self, notification: Notification) -> Notification:
        """Log, queue and forward one notification."""
        log_dict = notification.to_log_dict()

        if notification.level == NotificationLevel.ERROR:
            self._logger.error("notification", **log_dict)
        elif notification.level == NotificationLevel.WARNING:
            self._logger.warning("notification", **log_dict)
        else:
            self._logger.info("notification", **log_dict)

        self._pending.append(notification)

        if self._sink:
            try:
                self._sink(notification)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "notification_sink_failed",
                    error=str(e),
                    notification_id=str(notification.notification_id),
                )

        return notification

    def _emit(
        self,
        level: NotificationLevel,
        message: str,
        operation: Optional[str],
        details: dict[str, Any],
    ) -> Notification:
        return self.notify(Notification(
            level=level,
            message=message,
            operation=operation,
            details=details,
        ))

    def success(self, message: str, operation: Optional[str] = None, **details: Any) -> Notification:
        return self._emit(NotificationLevel.SUCCESS, message, operation, details)

    def info(self, message: str, operation: Optional[str] = None, **details: Any) -> Notification:
        return self._emit(NotificationLevel.INFO, message, operation, details)

    def warning(self, message: str, operation: Optional[str] = None, **details: Any) -> Notification:
        return self._emit(NotificationLevel.WARNING, message, operation, details)

    def error(self, message: str, operation: Optional[str] = None, **details: Any) -> Notification:
        return self._emit(NotificationLevel.ERROR, message, operation, details)

    def failure(
        self,
        operation: str,
        error: LedgerError,
        fallback: Optional[str] = None,
    ) -> Notification:
        """
        The single notification for a failed operation.

        Validation and conflict messages are written for users and shown
        as they are. Backend messages are shown after `fallback`
        ("Failed to add expense: ...") when one is given.
        """
        if isinstance(error, (ValidationError, ConflictError)):
            message = str(error)
        elif isinstance(error, BackendError) and fallback:
            message = f"{fallback}: {error}"
        else:
            message = str(error) or fallback or "Operation failed"
        return self.error(
            message[:500],
            operation=operation,
            error_type=type(error).__name__,
            error=str(error),
        )

    @property
    def pending(self) -> list[Notification]:
        return list(self._pending)

    def drain(self) -> list[Notification]:
        """Hand all queued notifications to the screen and clear the queue."""
        drained = list(self._pending)
        self._pending.clear()
        return drained
