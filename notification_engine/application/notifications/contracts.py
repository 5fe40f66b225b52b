"""Contracts the notification manager depends on."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from notification_engine.domain.entities import (
    ChannelRecipient,
    DeliveryMethod,
    DeliveryResult,
    DigestItem,
    InAppNotification,
    NotificationContent,
    NotificationFrequency,
    NotificationPreferences,
    NotificationType,
    Severity,
)

SendOptions = Mapping[str, Any]


class ConfigurationError(RuntimeError):
    """Raised when a channel cannot deliver because it is not configured."""


class PreferenceStore(Protocol):
    def get(self, user_id: str) -> NotificationPreferences | None:
        ...

    def user_exists(self, user_id: str) -> bool:
        ...


class DigestStore(Protocol):
    def add(self, item: DigestItem) -> DigestItem:
        ...

    def list_pending(self, frequency: NotificationFrequency) -> Sequence[DigestItem]:
        ...

    def mark_sent(self, item_ids: Sequence[int], sent_at: datetime) -> int:
        ...


class InAppNotificationStore(Protocol):
    def create(self, notification: InAppNotification) -> InAppNotification:
        ...


@runtime_checkable
class ChannelDispatcher(Protocol):
    """Delivers notification content through one :class:`DeliveryMethod`.

    ``send_bulk`` returns one result per recipient in submission order. All
    three operations report per-recipient problems as failed results and raise
    :class:`ConfigurationError` only when the channel itself cannot work.
    """

    method: DeliveryMethod

    async def send_one(
        self,
        recipient: ChannelRecipient,
        content: NotificationContent,
        notification_type: NotificationType,
        severity: Severity,
        options: SendOptions | None = None,
    ) -> DeliveryResult:
        ...

    async def send_bulk(
        self,
        recipients: Sequence[ChannelRecipient],
        content: NotificationContent,
        notification_type: NotificationType,
        severity: Severity,
        options: SendOptions | None = None,
    ) -> list[DeliveryResult]:
        ...

    async def send_digest(
        self,
        user_id: str,
        address: str | None,
        contents: Sequence[NotificationContent],
        options: SendOptions | None = None,
    ) -> DeliveryResult:
        ...


__all__ = [
    "ChannelDispatcher",
    "ConfigurationError",
    "DigestStore",
    "InAppNotificationStore",
    "PreferenceStore",
    "SendOptions",
]
