"""Domain entities describing a user's notification preferences."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime

from .enums import DeliveryMethod, NotificationFrequency, NotificationType, Severity


@dataclass(frozen=True)
class TypePreference:
    """Whether a notification type is wanted and through which channels."""

    enabled: bool = True
    delivery_methods: frozenset[DeliveryMethod] = frozenset({DeliveryMethod.IN_APP})

    def __post_init__(self) -> None:
        if not isinstance(self.delivery_methods, frozenset):
            object.__setattr__(self, "delivery_methods", frozenset(self.delivery_methods))


@dataclass(frozen=True)
class MethodPreference:
    """Global switch and cadence for one delivery method."""

    enabled: bool = False
    frequency: NotificationFrequency = NotificationFrequency.REAL_TIME


@dataclass(frozen=True)
class QuietHours:
    """Daily window during which non-bypassing notifications are held back."""

    enabled: bool = False
    start: str = "22:00"
    end: str = "08:00"
    timezone: str = "UTC"
    bypass_for_severity: frozenset[Severity] = frozenset(
        {Severity.CRITICAL, Severity.HIGH}
    )

    def __post_init__(self) -> None:
        if not isinstance(self.bypass_for_severity, frozenset):
            object.__setattr__(
                self, "bypass_for_severity", frozenset(self.bypass_for_severity)
            )


# Used for types missing from stored preferences: enabled, in-app only.
MISSING_TYPE_PREFERENCE = TypePreference()


def _missing_method_preference(method: DeliveryMethod) -> MethodPreference:
    return MethodPreference(enabled=method is DeliveryMethod.IN_APP)


@dataclass(frozen=True)
class NotificationPreferences:
    """Preferences owned by a single user.

    ``notification_types`` and ``delivery_methods`` always hold an entry for
    every member of their enum; use :meth:`build` to fill the gaps left by
    partially stored data.
    """

    user_id: str
    notification_types: Mapping[NotificationType, TypePreference]
    delivery_methods: Mapping[DeliveryMethod, MethodPreference]
    quiet_hours: QuietHours = field(default_factory=QuietHours)
    created_at: datetime | None = field(default=None, compare=False)
    updated_at: datetime | None = field(default=None, compare=False)

    @classmethod
    def build(
        cls,
        user_id: str,
        *,
        notification_types: Mapping[NotificationType, TypePreference] | None = None,
        delivery_methods: Mapping[DeliveryMethod, MethodPreference] | None = None,
        quiet_hours: QuietHours | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ) -> "NotificationPreferences":
        """Return preferences covering every type and method."""

        given_types = dict(notification_types or {})
        given_methods = dict(delivery_methods or {})
        return cls(
            user_id=user_id,
            notification_types={
                notification_type: given_types.get(
                    notification_type, MISSING_TYPE_PREFERENCE
                )
                for notification_type in NotificationType
            },
            delivery_methods={
                method: given_methods.get(method, _missing_method_preference(method))
                for method in DeliveryMethod
            },
            quiet_hours=quiet_hours or QuietHours(),
            created_at=created_at,
            updated_at=updated_at,
        )

    def type_preference(self, notification_type: NotificationType) -> TypePreference | None:
        return self.notification_types.get(notification_type)

    def method_preference(self, method: DeliveryMethod) -> MethodPreference | None:
        return self.delivery_methods.get(method)

    def enabled_methods(self) -> Iterable[DeliveryMethod]:
        """Yield the globally enabled delivery methods in enum order."""

        for method in DeliveryMethod:
            preference = self.delivery_methods.get(method)
            if preference is not None and preference.enabled:
                yield method


__all__ = [
    "MISSING_TYPE_PREFERENCE",
    "MethodPreference",
    "NotificationPreferences",
    "QuietHours",
    "TypePreference",
]
