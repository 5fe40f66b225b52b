"""SMS channel backed by the Twilio REST transport."""

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
from notification_engine.infrastructure.sms import (
    SmsDeliveryError,
    TwilioSmsTransport,
    format_digest_sms,
    format_sms_content,
    mask_phone_number,
)

from .base import BaseChannelDispatcher

logger = logging.getLogger(__name__)

E164_PATTERN = re.compile(r"^\+[1-9]\d{1,14}$")


def validate_phone_number(phone_number: str | None) -> bool:
    return bool(phone_number) and E164_PATTERN.match(phone_number) is not None


class SmsChannelDispatcher(BaseChannelDispatcher):
    """Deliver notifications as text messages."""

    method = DeliveryMethod.SMS
    invalid_address_error = "Invalid phone number format"

    def __init__(
        self,
        transport: TwilioSmsTransport,
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
        return "Twilio account SID, auth token and sender number must be configured to send SMS"

    def validate_address(self, address: str | None) -> bool:
        return validate_phone_number(address)

    def describe_address(self, address: str | None) -> str | None:
        return mask_phone_number(address)

    async def _deliver(
        self,
        recipient: ChannelRecipient,
        body: str,
        options: SendOptions | None,
        **metadata,
    ) -> DeliveryResult:
        status_callback = (options or {}).get("status_callback")

        def _send() -> dict:
            return self.transport.send(
                recipient.address, body, status_callback=status_callback
            )

        try:
            response = await to_thread.run_sync(_send)
        except SmsDeliveryError as exc:
            logger.error(
                "Failed to send SMS to user %s (%s): %s",
                recipient.user_id,
                mask_phone_number(recipient.address),
                exc,
            )
            return self.failure(recipient, str(exc), **metadata)

        logger.info(
            "SMS notification sent to user %s: %s", recipient.user_id, response.get("sid")
        )
        return DeliveryResult.succeeded(
            self.method,
            user_id=recipient.user_id,
            message_id=response.get("sid"),
            status=response.get("status"),
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

        body = format_sms_content(content, severity)
        return await self._deliver(
            recipient, body, options, notification_type=notification_type.value
        )

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
            return self.failure(recipient, "No notifications to send in digest")

        return await self._deliver(
            recipient,
            format_digest_sms(contents),
            options,
            content_type="digest_sms",
            notification_count=len(contents),
        )


__all__ = ["E164_PATTERN", "SmsChannelDispatcher", "validate_phone_number"]
