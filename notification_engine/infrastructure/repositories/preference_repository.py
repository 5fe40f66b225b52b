"""Persistence helpers for notification preferences."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.orm import Session

from notification_engine.application.notifications.quiet_hours import parse_clock
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
from notification_engine.infrastructure.models import NotificationPreferenceModel
from notification_engine.utils import (
    ensure_app_naive_datetime,
    ensure_app_timezone,
    now_in_app_timezone,
)

from .user_repository import UserRepository

logger = logging.getLogger(__name__)


class PreferenceRepository:
    """Load and store :class:`NotificationPreferences` for users."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, user_id: str) -> NotificationPreferences | None:
        model = self.session.get(NotificationPreferenceModel, user_id)
        return self._to_entity(model) if model else None

    def user_exists(self, user_id: str) -> bool:
        return UserRepository(self.session).exists(user_id)

    def save(self, preferences: NotificationPreferences) -> NotificationPreferences:
        """Insert or replace the stored preferences for the owning user."""

        now = ensure_app_naive_datetime(now_in_app_timezone())
        model = self.session.get(NotificationPreferenceModel, preferences.user_id)
        if model is None:
            model = NotificationPreferenceModel(user_id=preferences.user_id)
            model.created_at = ensure_app_naive_datetime(preferences.created_at) or now
        else:
            model.updated_at = now
        model.notification_types = {
            notification_type.value: {
                "enabled": preference.enabled,
                "deliveryMethods": sorted(method.value for method in preference.delivery_methods),
            }
            for notification_type, preference in preferences.notification_types.items()
        }
        model.delivery_methods = {
            method.value: {
                "enabled": preference.enabled,
                "frequency": preference.frequency.value,
            }
            for method, preference in preferences.delivery_methods.items()
        }
        quiet_hours = preferences.quiet_hours
        model.quiet_hours = {
            "enabled": quiet_hours.enabled,
            "start": quiet_hours.start,
            "end": quiet_hours.end,
            "timezone": quiet_hours.timezone,
            "bypassForSeverity": sorted(
                severity.value for severity in quiet_hours.bypass_for_severity
            ),
        }
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    @classmethod
    def _to_entity(cls, model: NotificationPreferenceModel) -> NotificationPreferences:
        return NotificationPreferences.build(
            model.user_id,
            notification_types=cls._parse_types(model.notification_types or {}),
            delivery_methods=cls._parse_methods(model.delivery_methods or {}),
            quiet_hours=cls._parse_quiet_hours(model.quiet_hours or {}),
            created_at=ensure_app_timezone(model.created_at),
            updated_at=ensure_app_timezone(model.updated_at),
        )

    @staticmethod
    def _parse_types(raw: dict[str, Any]) -> dict[NotificationType, TypePreference]:
        parsed: dict[NotificationType, TypePreference] = {}
        for key, value in raw.items():
            try:
                notification_type = NotificationType(key)
            except ValueError:
                logger.warning("Ignoring unknown notification type preference '%s'", key)
                continue
            methods = set()
            for method in value.get("deliveryMethods", []):
                try:
                    methods.add(DeliveryMethod(method))
                except ValueError:
                    logger.warning("Ignoring unknown delivery method '%s'", method)
            parsed[notification_type] = TypePreference(
                enabled=bool(value.get("enabled", True)),
                delivery_methods=frozenset(methods),
            )
        return parsed

    @staticmethod
    def _parse_methods(raw: dict[str, Any]) -> dict[DeliveryMethod, MethodPreference]:
        parsed: dict[DeliveryMethod, MethodPreference] = {}
        for key, value in raw.items():
            try:
                method = DeliveryMethod(key)
            except ValueError:
                logger.warning("Ignoring unknown delivery method preference '%s'", key)
                continue
            try:
                frequency = NotificationFrequency(value.get("frequency", "real_time"))
            except ValueError:
                frequency = NotificationFrequency.REAL_TIME
            parsed[method] = MethodPreference(
                enabled=bool(value.get("enabled", False)), frequency=frequency
            )
        return parsed

    @staticmethod
    def _parse_quiet_hours(raw: dict[str, Any]) -> QuietHours:
        if not raw:
            return QuietHours()
        bypass = frozenset(
            Severity(value)
            for value in raw.get("bypassForSeverity", [])
            if value in {severity.value for severity in Severity}
        )
        return QuietHours(
            enabled=bool(raw.get("enabled", False)),
            start=_clock_or_default(raw.get("start"), QuietHours.start),
            end=_clock_or_default(raw.get("end"), QuietHours.end),
            timezone=raw.get("timezone") or "UTC",
            bypass_for_severity=bypass,
        )


def _clock_or_default(value: Any, default: str) -> str:
    if not value:
        return default
    try:
        parse_clock(str(value))
    except ValueError:
        logger.warning("Ignoring invalid quiet hours time '%s'; using %s", value, default)
        return default
    return str(value).strip()


__all__ = ["PreferenceRepository"]
