"""In-app channel persisting notifications for the application inbox."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence
from datetime import datetime, timedelta

import anyio

from notification_engine.application.notifications.config import DeliveryConfig
from notification_engine.application.notifications.contracts import (
    InAppNotificationStore,
    SendOptions,
)
from notification_engine.domain.entities import (
    ChannelRecipient,
    DeliveryErrorKind,
    DeliveryMethod,
    DeliveryResult,
    InAppNotification,
    NotificationContent,
    NotificationStatus,
    NotificationType,
    Severity,
)
from notification_engine.utils import now_in_app_timezone

from .base import BaseChannelDispatcher

logger = logging.getLogger(__name__)

MINIMUM_LOW_SEVERITY_DAYS = 7


def calculate_expiration(
    config: DeliveryConfig,
    notification_type: NotificationType,
    severity: Severity,
    now: datetime,
) -> datetime | None:
    """Return when an in-app notification stops being shown, or ``None``."""

    days = config.expiration_days_for(notification_type)
    if not days:
        return None
    if severity is Severity.LOW:
        days = max(MINIMUM_LOW_SEVERITY_DAYS, days // 2)
    elif severity is Severity.CRITICAL:
        days = int(days * 1.5)
    return now + timedelta(days=days)


class InAppChannelDispatcher(BaseChannelDispatcher):
    """Store notifications so the user sees them inside the application.

    Store calls run on the event loop rather than in a worker thread: the
    store wraps the caller's SQLAlchemy ``Session``, which must not be used
    from several threads at once. Bulk in-app sends therefore write one row
    at a time.
    """

    method = DeliveryMethod.IN_APP

    def __init__(
        self,
        store: InAppNotificationStore,
        user_exists: Callable[[str], bool],
        config: DeliveryConfig | None = None,
        *,
        sleep: Callable[[float], Awaitable[None]] = anyio.sleep,
        clock: Callable[[], datetime] = now_in_app_timezone,
    ) -> None:
        super().__init__(config, sleep=sleep)
        self.store = store
        self.user_exists = user_exists
        self._clock = clock

    def _persist(
        self,
        recipient: ChannelRecipient,
        content: NotificationContent,
        notification_type: NotificationType,
        severity: Severity,
    ) -> DeliveryResult:
        if not self.user_exists(recipient.user_id):
            logger.debug("User %s not found for in-app notification", recipient.user_id)
            return self.failure(
                recipient, "User not found", kind=DeliveryErrorKind.RECIPIENT_NOT_FOUND
            )

        now = self._clock()
        notification = InAppNotification(
            id=None,
            user_id=recipient.user_id,
            type=notification_type,
            severity=severity,
            content=content,
            status=NotificationStatus.UNREAD,
            expires_at=calculate_expiration(self.config, notification_type, severity, now),
            created_at=now,
        )
        try:
            saved = self.store.create(notification)
        except Exception as exc:  # storage errors become a failed delivery
            logger.error(
                "Failed to store in-app notification for user %s: %s",
                recipient.user_id,
                exc,
            )
            return self.failure(recipient, str(exc))

        logger.info(
            "In-app notification %s stored for user %s", saved.id, recipient.user_id
        )
        return DeliveryResult.succeeded(
            self.method,
            user_id=recipient.user_id,
            notification_id=saved.id,
            expires_at=saved.expires_at.isoformat() if saved.expires_at else None,
        )

    async def send_one(
        self,
        recipient: ChannelRecipient,
        content: NotificationContent,
        notification_type: NotificationType,
        severity: Severity,
        options: SendOptions | None = None,
    ) -> DeliveryResult:
        return self._persist(recipient, content, notification_type, severity)

    async def send_digest(
        self,
        user_id: str,
        address: str | None,
        contents: Sequence[NotificationContent],
        options: SendOptions | None = None,
    ) -> DeliveryResult:
        """Store a single summary notification listing the digest titles."""

        recipient = ChannelRecipient(user_id=user_id)
        if not contents:
            return self.failure(recipient, "No notifications to send in digest")

        options = options or {}
        count = len(contents)
        summary = NotificationContent(
            title=f"You have {count} new notification{'' if count == 1 else 's'}",
            message="\n".join(f"- {entry.title}" for entry in contents),
            data={"digest": True, "titles": [entry.title for entry in contents]},
        )
        return self._persist(
            recipient,
            summary,
            options.get("notification_type", NotificationType.REPORT_READY),
            options.get("severity", Severity.LOW),
        )


__all__ = ["InAppChannelDispatcher", "calculate_expiration"]
