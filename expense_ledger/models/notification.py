"""
Notification Models

A notification is what the user sees after an operation: the toast that
says "Expense added" or "Failed to load expenses".

Each failed operation produces exactly one notification. Notifications are
transient; they are handed to the screen and then dropped.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class NotificationLevel(str, Enum):
    """How a notification is presented."""
    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class Notification(BaseModel):
    """A single user-visible message."""

    notification_id: UUID = Field(
        default_factory=uuid4,
        description="Unique notification identifier"
    )
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the notification was raised (UTC)"
    )
    level: NotificationLevel = Field(
        default=NotificationLevel.INFO,
        description="Presentation level"
    )
    message: str = Field(
        ...,
        max_length=500,
        description="Text shown to the user"
    )
    operation: Optional[str] = Field(
        default=None,
        description="Operation that produced it (e.g., 'add_expense')"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Extra context for logging; never shown to the user"
    )

    def to_log_dict(self) -> dict[str, Any]:
        """Convert to dictionary for structured logging."""
        return {
            "notification_id": str(self.notification_id),
            "created_at": self.created_at.isoformat(),
            "level": self.level.value,
            "message": self.message,
            "operation": self.operation,
            "details": self.details,
        }
