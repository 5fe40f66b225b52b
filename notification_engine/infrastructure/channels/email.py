"""Email channel backed by the SendGrid transport."""

from __future__ import annotations

import logging
import re
from collections.abc import Awaitable, Callable, Sequence

import anyio
from anyio import to_thread

from notification_engine.application.notifications.config import DeliveryConfig
from notification_engine.application.notifications.contracts import SendOptions
from notification_engine.domain.entities import (
    ChannelRecipient,
    DeliveryMethod,
    DeliveryResult,
    NotificationContent,
    NotificationType,
    Severity,
)
from notification_engine.infrastructure.email import (
    EmailDeliveryError,
    SendGridEmailTransport,
    format_digest_email,
    format_email_content,
)

from .base import BaseChannelDispatcher

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")


def validate_email_address(email: str | None) -> bool:
    return bool(email) and EMAIL_PATTERN.match(email) is not None


class EmailChannelDispatcher(BaseChannelDispatcher):
    """Deliver notifications as HTML email."""

    method = DeliveryMethod.EMAIL
    invalid_address_error = "Invalid email address"

    def __init__(
        self,
        transport: SendGridEmailTransport,
        config: DeliveryConfig | None = None,
        *,
        sleep: Callable[[float], Awaitable[None]] = anyio.sleep,
    ) -> None:
        super().__init__(config, sleep=sleep)
        self.transport = transport

    @property
    def is_configured(self) -> bool:
        return self.transport.is_configured

    def configuration_problem(self) -> str:
        return "SendGrid API key and sender must be configured to send email"

    def validate_address(self, address: str | None) -> bool:
        return validate_email_address(address)

    async def _deliver(
        self, recipient: ChannelRecipient, subject: str, html_content: str, **metadata
    ) -> DeliveryResult:
        try:
            message_id = await to_thread.run_sync(
                self.transport.send, recipient.address, subject, html_content
            )
        except EmailDeliveryError as exc:
            logger.error(
                "Failed to send email to user %s: %s", recipient.user_id, exc
            )
            return self.failure(recipient, str(exc), email=recipient.address, **metadata)

        logger.info(
            "Email notification sent to user %s (%s)", recipient.user_id, subject
        )
        return DeliveryResult.succeeded(
            self.method,
            user_id=recipient.user_id,
            email=recipient.address,
            message_id=message_id,
            **metadata,
        )

    async def send_one(
        self,
        recipient: ChannelRecipient,
        content: NotificationContent,
        notification_type: NotificationType,
        severity: Severity,
        options: SendOptions | None = None,
    ) -> DeliveryResult:
        self.ensure_configured()
        if not self.validate_address(recipient.address):
            return self.invalid_address(recipient)

        subject, html_content = format_email_content(content)
        return await self._deliver(recipient, subject, html_content)

    async def send_digest(
        self,
        user_id: str,
        address: str | None,
        contents: Sequence[NotificationContent],
        options: SendOptions | None = None,
    ) -> DeliveryResult:
        self.ensure_configured()
        recipient = ChannelRecipient(user_id=user_id, address=address)
        if not self.validate_address(address):
            return self.invalid_address(recipient)
        if not contents:
            logger.warning("No notifications to send in email digest for user %s", user_id)
            return self.failure(recipient, "No notifications to send in digest")

        group_by = (options or {}).get("group_by")
        subject, html_content = format_digest_email(contents, group_by=group_by)
        return await self._deliver(
            recipient, subject, html_content, notification_count=len(contents)
        )


__all__ = ["EMAIL_PATTERN", "EmailChannelDispatcher", "validate_email_address"]
