"""Domain entities for digest (periodically consolidated) delivery."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from .content import NotificationContent
from .enums import DeliveryMethod, NotificationFrequency, NotificationType, Severity


@dataclass
class DigestItem:
    """A notification waiting for the next digest of its frequency."""

    id: int | None
    user_id: str
    type: NotificationType
    severity: Severity
    content: NotificationContent
    method: DeliveryMethod
    frequency: NotificationFrequency
    address: str | None
    queued_at: datetime
    sent_at: datetime | None = None


@dataclass
class DigestRunSummary:
    """Counters reported by one digest flush."""

    processed: int = 0
    successful: int = 0
    failed: int = 0
    items_sent: int = 0


__all__ = ["DigestItem", "DigestRunSummary"]
