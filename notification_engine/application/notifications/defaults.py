"""Preferences assumed for users who never stored their own."""

from __future__ import annotations

from notification_engine.domain.entities import (
    DeliveryMethod,
    MethodPreference,
    NotificationFrequency,
    NotificationPreferences,
    NotificationType,
    QuietHours,
    Severity,
    TypePreference,
)

from .config import DeliveryConfig
from .contracts import PreferenceStore


def build_default_preferences(
    user_id: str, config: DeliveryConfig | None = None
) -> NotificationPreferences:
    """Return the default preferences for ``user_id``.

    Every type is enabled for in-app delivery only. Email and SMS follow the
    ``enable_*_by_default`` switches; email defaults to a daily digest. The
    result is never persisted here.
    """

    config = config or DeliveryConfig()
    return NotificationPreferences.build(
        user_id,
        notification_types={
            notification_type: TypePreference(
                enabled=True, delivery_methods=frozenset({DeliveryMethod.IN_APP})
            )
            for notification_type in NotificationType
        },
        delivery_methods={
            DeliveryMethod.IN_APP: MethodPreference(
                enabled=True, frequency=NotificationFrequency.REAL_TIME
            ),
            DeliveryMethod.EMAIL: MethodPreference(
                enabled=config.enable_email_by_default,
                frequency=NotificationFrequency.DAILY,
            ),
            DeliveryMethod.SMS: MethodPreference(
                enabled=config.enable_sms_by_default,
                frequency=NotificationFrequency.REAL_TIME,
            ),
        },
        quiet_hours=QuietHours(
            enabled=False,
            start="22:00",
            end="08:00",
            timezone=config.default_quiet_hours_timezone,
            bypass_for_severity=frozenset({Severity.CRITICAL, Severity.HIGH}),
        ),
    )


def resolve_preferences(
    store: PreferenceStore, user_id: str, config: DeliveryConfig | None = None
) -> NotificationPreferences:
    """Return the stored preferences for ``user_id`` or the defaults."""

    stored = store.get(user_id)
    if stored is not None:
        return stored
    return build_default_preferences(user_id, config)


__all__ = ["build_default_preferences", "resolve_preferences"]
