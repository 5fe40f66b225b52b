"""Entry point coordinating notification delivery across channels."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable, Sequence
from datetime import datetime

import anyio

from notification_engine.domain.entities import (
    BulkDeliverySummary,
    BulkRecipient,
    ChannelRecipient,
    DeliveryErrorKind,
    DeliveryMethod,
    DeliveryResult,
    DigestRunSummary,
    NotificationContent,
    NotificationFrequency,
    NotificationType,
    RecipientDeliveryResult,
    Severity,
)
from notification_engine.utils import now_utc

from .config import DeliveryConfig
from .contracts import (
    ChannelDispatcher,
    ConfigurationError,
    DigestStore,
    PreferenceStore,
    SendOptions,
)
from .defaults import resolve_preferences
from .digest import DigestQueue
from .eligibility import eligible_channels, ordered_channels
from .quiet_hours import is_suppressed

logger = logging.getLogger(__name__)


def _address_for(
    method: DeliveryMethod, email: str | None, phone_number: str | None
) -> str | None:
    if method is DeliveryMethod.EMAIL:
        return email
    if method is DeliveryMethod.SMS:
        return phone_number
    return None


def _is_addressable(method: DeliveryMethod, address: str | None) -> bool:
    return method is DeliveryMethod.IN_APP or bool(address)


class NotificationManager:
    """Decide who hears about an event, through which channels, and when."""

    def __init__(
        self,
        preference_store: PreferenceStore,
        dispatchers: Iterable[ChannelDispatcher],
        *,
        digest_store: DigestStore | None = None,
        config: DeliveryConfig | None = None,
        clock: Callable[[], datetime] = now_utc,
    ) -> None:
        self.preference_store = preference_store
        self.dispatchers = {dispatcher.method: dispatcher for dispatcher in dispatchers}
        self.config = config or DeliveryConfig()
        self._clock = clock
        self.digest_queue = (
            DigestQueue(
                preference_store,
                digest_store,
                self.dispatchers,
                self.config,
                clock=clock,
            )
            if digest_store is not None
            else None
        )

    async def send_notification(
        self,
        user_id: str,
        content: NotificationContent,
        notification_type: NotificationType,
        severity: Severity,
        *,
        email: str | None = None,
        phone_number: str | None = None,
        options: SendOptions | None = None,
    ) -> dict[DeliveryMethod, DeliveryResult]:
        """Deliver one notification to one user through every eligible channel.

        Returns an empty mapping when the user does not exist, no channel is
        eligible, or quiet hours hold the notification back. Channels whose
        address hint is missing are skipped.
        """

        try:
            if not self.preference_store.user_exists(user_id):
                logger.warning("User %s not found; notification not sent", user_id)
                return {}
            channels, suppressed = self._plan(
                user_id, notification_type, severity, self._clock()
            )
        except Exception:
            logger.exception(
                "Could not evaluate preferences for user %s; notification not sent", user_id
            )
            return {}

        if not channels:
            logger.info(
                "No eligible channels for %s notification to user %s",
                notification_type.value,
                user_id,
            )
            return {}

        if suppressed:
            logger.info(
                "Notification %s for user %s held back by quiet hours",
                notification_type.value,
                user_id,
            )
            return {}

        targets: list[tuple[ChannelDispatcher, ChannelRecipient]] = []
        for method in ordered_channels(channels):
            address = _address_for(method, email, phone_number)
            if not _is_addressable(method, address):
                logger.debug(
                    "Skipping %s for user %s: no address provided", method.value, user_id
                )
                continue
            dispatcher = self.dispatchers.get(method)
            if dispatcher is None:
                logger.warning("No dispatcher registered for %s", method.value)
                continue
            targets.append((dispatcher, ChannelRecipient(user_id=user_id, address=address)))

        results: dict[DeliveryMethod, DeliveryResult] = {}

        async def _dispatch(dispatcher: ChannelDispatcher, recipient: ChannelRecipient) -> None:
            results[dispatcher.method] = await self._guard(
                dispatcher.method,
                user_id,
                lambda: dispatcher.send_one(
                    recipient, content, notification_type, severity, options
                ),
            )

        async with anyio.create_task_group() as task_group:
            for dispatcher, recipient in targets:
                task_group.start_soon(_dispatch, dispatcher, recipient)

        logger.info(
            "Notification %s for user %s delivered through %s of %s channels",
            notification_type.value,
            user_id,
            sum(1 for result in results.values() if result.success),
            len(results),
        )
        return {method: results[method] for method in ordered_channels(results)}

    async def send_bulk_notification(
        self,
        recipients: Sequence[BulkRecipient],
        content: NotificationContent,
        notification_type: NotificationType,
        severity: Severity,
        *,
        options: SendOptions | None = None,
    ) -> BulkDeliverySummary:
        """Deliver the same notification to many users.

        Preferences and quiet hours are evaluated per recipient. Each channel
        receives one bulk request; a recipient counts as successful when at
        least one channel reached them.
        """

        per_recipient = [RecipientDeliveryResult(user_id=recipient.user_id) for recipient in recipients]
        groups: dict[DeliveryMethod, list[tuple[int, ChannelRecipient]]] = {}
        now = self._clock()

        for index, recipient in enumerate(recipients):
            try:
                channels, suppressed = self._plan(
                    recipient.user_id, notification_type, severity, now
                )
            except Exception as exc:
                logger.exception(
                    "Could not evaluate preferences for bulk recipient %s", recipient.user_id
                )
                per_recipient[index].error = str(exc)
                continue
            if suppressed:
                logger.info(
                    "Bulk notification for user %s held back by quiet hours",
                    recipient.user_id,
                )
                per_recipient[index].suppressed = True
                continue
            for method in ordered_channels(channels):
                address = _address_for(method, recipient.email, recipient.phone_number)
                if not _is_addressable(method, address) or method not in self.dispatchers:
                    continue
                groups.setdefault(method, []).append(
                    (index, ChannelRecipient(user_id=recipient.user_id, address=address))
                )

        async def _dispatch_channel(
            method: DeliveryMethod, entries: list[tuple[int, ChannelRecipient]]
        ) -> None:
            channel_recipients = [channel_recipient for _, channel_recipient in entries]
            try:
                channel_results = await self.dispatchers[method].send_bulk(
                    channel_recipients, content, notification_type, severity, options
                )
            except ConfigurationError as exc:
                logger.error("Bulk %s delivery is not configured: %s", method.value, exc)
                channel_results = [
                    DeliveryResult.failed(
                        method,
                        str(exc),
                        kind=DeliveryErrorKind.CONFIGURATION,
                        user_id=channel_recipient.user_id,
                    )
                    for channel_recipient in channel_recipients
                ]
            except Exception as exc:
                logger.exception("Bulk %s delivery failed", method.value)
                channel_results = [
                    DeliveryResult.failed(method, str(exc), user_id=channel_recipient.user_id)
                    for channel_recipient in channel_recipients
                ]
            channel_results = list(channel_results)
            if len(channel_results) != len(entries):
                logger.error(
                    "Bulk %s dispatcher returned %s results for %s recipients",
                    method.value,
                    len(channel_results),
                    len(entries),
                )
            for position, (index, channel_recipient) in enumerate(entries):
                if position < len(channel_results):
                    result = channel_results[position]
                else:
                    result = DeliveryResult.failed(
                        method,
                        "No delivery result returned for recipient",
                        user_id=channel_recipient.user_id,
                    )
                per_recipient[index].delivery_results[method] = result

        async with anyio.create_task_group() as task_group:
            for method in ordered_channels(groups):
                task_group.start_soon(_dispatch_channel, method, groups[method])

        summary = BulkDeliverySummary(results=per_recipient)
        for recipient_result in per_recipient:
            recipient_result.delivery_results = {
                method: recipient_result.delivery_results[method]
                for method in ordered_channels(recipient_result.delivery_results)
            }
            if recipient_result.successful:
                summary.successful += 1
            else:
                summary.failed += 1

        logger.info(
            "Bulk %s notification finished: %s successful, %s failed",
            notification_type.value,
            summary.successful,
            summary.failed,
        )
        return summary

    def queue_digest_notification(
        self,
        user_id: str,
        content: NotificationContent,
        notification_type: NotificationType,
        severity: Severity,
        method: DeliveryMethod,
        *,
        address: str | None = None,
    ) -> bool:
        return self._require_digest_queue().queue(
            user_id, content, notification_type, severity, method, address=address
        )

    async def send_digest_notifications(
        self, frequency: NotificationFrequency
    ) -> DigestRunSummary:
        return await self._require_digest_queue().flush(frequency)

    def _plan(
        self,
        user_id: str,
        notification_type: NotificationType,
        severity: Severity,
        now: datetime,
    ) -> tuple[frozenset[DeliveryMethod], bool]:
        """Return the eligible channels and whether quiet hours hold them back."""

        preferences = resolve_preferences(self.preference_store, user_id, self.config)
        channels = eligible_channels(preferences, notification_type, severity)
        if not channels:
            return channels, False
        return channels, is_suppressed(preferences, severity, now)

    def _require_digest_queue(self) -> DigestQueue:
        if self.digest_queue is None:
            raise ConfigurationError("A digest store is required for digest delivery")
        return self.digest_queue

    async def _guard(
        self,
        method: DeliveryMethod,
        user_id: str,
        send: Callable[[], Awaitable[DeliveryResult]],
    ) -> DeliveryResult:
        """Run ``send`` and convert anything it raises into a failed result."""

        try:
            if self.config.dispatch_timeout:
                with anyio.fail_after(self.config.dispatch_timeout):
                    return await send()
            return await send()
        except ConfigurationError as exc:
            logger.error("%s delivery is not configured: %s", method.value, exc)
            return DeliveryResult.failed(
                method, str(exc), kind=DeliveryErrorKind.CONFIGURATION, user_id=user_id
            )
        except TimeoutError:
            logger.error("Timed out delivering %s notification to user %s", method.value, user_id)
            return DeliveryResult.failed(method, "Delivery timed out", user_id=user_id)
        except Exception as exc:
            logger.exception(
                "Unexpected error delivering %s notification to user %s", method.value, user_id
            )
            return DeliveryResult.failed(method, str(exc), user_id=user_id)


__all__ = ["NotificationManager"]
