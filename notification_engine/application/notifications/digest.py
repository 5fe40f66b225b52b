"""Queueing and periodic delivery of digest notifications."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Optional

import anyio

from notification_engine.domain.entities import (
    DeliveryErrorKind,
    DeliveryMethod,
    DeliveryResult,
    DigestItem,
    DigestRunSummary,
    NotificationContent,
    NotificationFrequency,
    NotificationType,
    Severity,
)
from notification_engine.utils import now_utc

from .config import DeliveryConfig
from .contracts import ChannelDispatcher, ConfigurationError, DigestStore, PreferenceStore
from .defaults import resolve_preferences

logger = logging.getLogger(__name__)

GroupKey = tuple[str, DeliveryMethod, Optional[str]]


class DigestQueue:
    """Hold notifications for digest delivery and flush them per frequency."""

    def __init__(
        self,
        preference_store: PreferenceStore,
        digest_store: DigestStore,
        dispatchers: Mapping[DeliveryMethod, ChannelDispatcher],
        config: DeliveryConfig | None = None,
        *,
        clock: Callable[[], datetime] = now_utc,
    ) -> None:
        self.preference_store = preference_store
        self.digest_store = digest_store
        self.dispatchers = dispatchers
        self.config = config or DeliveryConfig()
        self._clock = clock

    def queue(
        self,
        user_id: str,
        content: NotificationContent,
        notification_type: NotificationType,
        severity: Severity,
        method: DeliveryMethod,
        *,
        address: str | None = None,
    ) -> bool:
        """Store a notification for the user's next digest on ``method``.

        Returns ``False`` without storing anything when the user is unknown,
        the method is disabled or real-time, or an address is required but
        missing.
        """

        if not self.preference_store.user_exists(user_id):
            logger.warning("User %s not found; digest notification not queued", user_id)
            return False

        preferences = resolve_preferences(self.preference_store, user_id, self.config)
        method_preference = preferences.method_preference(method)
        if method_preference is None or not method_preference.enabled:
            logger.info(
                "Delivery method %s disabled for user %s; digest not queued",
                method.value,
                user_id,
            )
            return False
        if method_preference.frequency is NotificationFrequency.REAL_TIME:
            logger.info(
                "Delivery method %s is real-time for user %s; digest not queued",
                method.value,
                user_id,
            )
            return False
        if method is not DeliveryMethod.IN_APP and not address:
            logger.warning(
                "No %s address for user %s; digest not queued", method.value, user_id
            )
            return False

        item = DigestItem(
            id=None,
            user_id=user_id,
            type=notification_type,
            severity=severity,
            content=content,
            method=method,
            frequency=method_preference.frequency,
            address=address if method is not DeliveryMethod.IN_APP else None,
            queued_at=self._clock(),
        )
        try:
            self.digest_store.add(item)
        except Exception as exc:  # persistence errors are reported as "not queued"
            logger.error("Failed to queue digest notification for user %s: %s", user_id, exc)
            return False

        logger.debug(
            "Queued %s digest notification for user %s via %s",
            method_preference.frequency.value,
            user_id,
            method.value,
        )
        return True

    async def flush(self, frequency: NotificationFrequency) -> DigestRunSummary:
        """Deliver every pending item of ``frequency``, one digest per group."""

        if frequency is NotificationFrequency.REAL_TIME:
            raise ValueError("Real-time notifications are never digested")

        groups: dict[GroupKey, list[DigestItem]] = {}
        for item in self.digest_store.list_pending(frequency):
            groups.setdefault((item.user_id, item.method, item.address), []).append(item)

        summary = DigestRunSummary()
        logger.info(
            "Sending %s digests for %s pending groups", frequency.value, len(groups)
        )
        for (user_id, method, address), items in groups.items():
            summary.processed += 1
            result = await self._send_group(user_id, method, address, items)
            if not result.success:
                summary.failed += 1
                continue
            summary.items_sent += self.digest_store.mark_sent(
                [item.id for item in items], self._clock()
            )
            summary.successful += 1

        logger.info(
            "Digest run for %s finished: %s groups, %s successful, %s failed, %s items sent",
            frequency.value,
            summary.processed,
            summary.successful,
            summary.failed,
            summary.items_sent,
        )
        return summary

    async def _send_group(
        self,
        user_id: str,
        method: DeliveryMethod,
        address: str | None,
        items: list[DigestItem],
    ) -> DeliveryResult:
        dispatcher = self.dispatchers.get(method)
        if dispatcher is None:
            logger.error("No dispatcher registered for %s digests", method.value)
            return DeliveryResult.failed(
                method,
                f"No dispatcher registered for {method.value}",
                kind=DeliveryErrorKind.CONFIGURATION,
                user_id=user_id,
            )

        options = {
            "notification_type": items[0].type,
            "severity": max(item.severity for item in items),
        }
        contents = [item.content for item in items]
        try:
            if self.config.dispatch_timeout:
                with anyio.fail_after(self.config.dispatch_timeout):
                    return await dispatcher.send_digest(user_id, address, contents, options)
            return await dispatcher.send_digest(user_id, address, contents, options)
        except ConfigurationError as exc:
            logger.error("Cannot send %s digest to user %s: %s", method.value, user_id, exc)
            return DeliveryResult.failed(
                method, str(exc), kind=DeliveryErrorKind.CONFIGURATION, user_id=user_id
            )
        except TimeoutError:
            logger.error("Timed out sending %s digest to user %s", method.value, user_id)
            return DeliveryResult.failed(method, "Delivery timed out", user_id=user_id)
        except Exception as exc:
            logger.exception("Unexpected error sending %s digest to user %s", method.value, user_id)
            return DeliveryResult.failed(method, str(exc), user_id=user_id)


__all__ = ["DigestQueue"]
