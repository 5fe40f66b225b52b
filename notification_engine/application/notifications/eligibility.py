"""Resolve which channels a notification may use for a user."""

from __future__ import annotations

from collections.abc import Iterable

from notification_engine.domain.entities import (
    DeliveryMethod,
    NotificationPreferences,
    NotificationType,
    Severity,
)

ALL_CHANNELS = frozenset(DeliveryMethod)


def eligible_channels(
    preferences: NotificationPreferences,
    notification_type: NotificationType,
    severity: Severity,
) -> frozenset[DeliveryMethod]:
    """Return the delivery methods allowed for this notification.

    HIGH and CRITICAL notifications go out through every channel regardless
    of preferences.
    """

    if severity.forces_broadcast:
        return ALL_CHANNELS

    type_preference = preferences.type_preference(notification_type)
    if type_preference is None or not type_preference.enabled:
        return frozenset()

    return frozenset(type_preference.delivery_methods) & frozenset(
        preferences.enabled_methods()
    )


def ordered_channels(channels: Iterable[DeliveryMethod]) -> list[DeliveryMethod]:
    """Return ``channels`` sorted in declaration order of :class:`DeliveryMethod`."""

    wanted = set(channels)
    return [method for method in DeliveryMethod if method in wanted]


__all__ = ["ALL_CHANNELS", "eligible_channels", "ordered_channels"]
