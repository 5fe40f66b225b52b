"""Domain entity representing a persisted in-app notification."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from .content import NotificationContent
from .enums import NotificationStatus, NotificationType, Severity


@dataclass
class InAppNotification:
    """Information message displayed inside the application to one user."""

    id: int | None
    user_id: str
    type: NotificationType
    severity: Severity
    content: NotificationContent
    status: NotificationStatus = NotificationStatus.UNREAD
    read_at: datetime | None = None
    expires_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_read(self) -> bool:
        return self.status is NotificationStatus.READ


__all__ = ["InAppNotification"]
