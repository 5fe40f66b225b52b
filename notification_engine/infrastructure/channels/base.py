"""Shared behaviour of the channel dispatchers."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence

import anyio

from notification_engine.application.notifications.batching import BatchCoordinator
from notification_engine.application.notifications.config import DeliveryConfig
from notification_engine.application.notifications.contracts import (
    ConfigurationError,
    SendOptions,
)
from notification_engine.domain.entities import (
    ChannelRecipient,
    DeliveryErrorKind,
    DeliveryMethod,
    DeliveryResult,
    NotificationContent,
    NotificationType,
    Severity,
)

logger = logging.getLogger(__name__)


class BaseChannelDispatcher:
    """Base class implementing bulk delivery on top of ``send_one``.

    Subclasses set :attr:`method`, implement :meth:`send_one` and
    :meth:`send_digest`, and override :meth:`validate_address` and
    :attr:`is_configured` where the channel needs them.
    """

    method: DeliveryMethod
    invalid_address_error = "Invalid address"

    def __init__(
        self,
        config: DeliveryConfig | None = None,
        *,
        sleep: Callable[[float], Awaitable[None]] = anyio.sleep,
    ) -> None:
        self.config = config or DeliveryConfig()
        self._sleep = sleep

    @property
    def is_configured(self) -> bool:
        return True

    def configuration_problem(self) -> str:
        return f"{self.method.value} delivery is not configured"

    def ensure_configured(self) -> None:
        if not self.is_configured:
            raise ConfigurationError(self.configuration_problem())

    def validate_address(self, address: str | None) -> bool:
        return True

    def describe_address(self, address: str | None) -> str | None:
        """Return ``address`` in the form it may appear in logs and metadata."""

        return address

    def failure(
        self,
        recipient: ChannelRecipient,
        error: str,
        *,
        kind: DeliveryErrorKind = DeliveryErrorKind.TRANSPORT,
        **metadata,
    ) -> DeliveryResult:
        return DeliveryResult.failed(
            self.method, error, kind=kind, user_id=recipient.user_id, **metadata
        )

    def invalid_address(self, recipient: ChannelRecipient) -> DeliveryResult:
        logger.warning(
            "%s for user %s: %s",
            self.invalid_address_error,
            recipient.user_id,
            self.describe_address(recipient.address),
        )
        return self.failure(
            recipient,
            self.invalid_address_error,
            kind=DeliveryErrorKind.INVALID_ADDRESS,
        )

    def batch_coordinator(self, options: SendOptions | None = None) -> BatchCoordinator:
        options = options or {}
        batch_size, delay = self.config.batch_settings(self.method)
        return BatchCoordinator(
            batch_size=int(options.get("batch_size") or batch_size),
            delay_between_batches=float(
                options["delay_between_batches"]
                if options.get("delay_between_batches") is not None
                else delay
            ),
            sleep=self._sleep,
        )

    async def send_one(
        self,
        recipient: ChannelRecipient,
        content: NotificationContent,
        notification_type: NotificationType,
        severity: Severity,
        options: SendOptions | None = None,
    ) -> DeliveryResult:
        raise NotImplementedError

    async def send_bulk(
        self,
        recipients: Sequence[ChannelRecipient],
        content: NotificationContent,
        notification_type: NotificationType,
        severity: Severity,
        options: SendOptions | None = None,
    ) -> list[DeliveryResult]:
        self.ensure_configured()
        if not recipients:
            return []

        async def _send(recipient: ChannelRecipient) -> DeliveryResult:
            return await self.send_one(
                recipient, content, notification_type, severity, options
            )

        results = await self.batch_coordinator(options).run(
            recipients,
            _send,
            validate=lambda recipient: self.validate_address(recipient.address),
            on_invalid=self.invalid_address,
            on_error=lambda recipient, exc: self.failure(recipient, str(exc)),
        )
        successful = sum(1 for result in results if result.success)
        logger.info(
            "Bulk %s delivery completed: %s sent, %s failed",
            self.method.value,
            successful,
            len(results) - successful,
        )
        return results

    async def send_digest(
        self,
        user_id: str,
        address: str | None,
        contents: Sequence[NotificationContent],
        options: SendOptions | None = None,
    ) -> DeliveryResult:
        raise NotImplementedError


__all__ = ["BaseChannelDispatcher"]
