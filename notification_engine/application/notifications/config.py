"""Delivery configuration injected into the notification engine."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from notification_engine.config import Settings, get_settings
from notification_engine.domain.entities import DeliveryMethod, NotificationType


@dataclass(frozen=True)
class DeliveryConfig:
    """Read-only knobs consulted by the manager and channel dispatchers."""

    batch_size: int = 50
    batch_delay_seconds: float = 1.0
    email_batch_size: int | None = None
    email_batch_delay_seconds: float | None = None
    sms_batch_size: int | None = None
    sms_batch_delay_seconds: float | None = None
    dispatch_timeout: float | None = None
    default_expiration_days: int = 30
    expiration_days_by_type: Mapping[NotificationType, int] = field(default_factory=dict)
    enable_email_by_default: bool = False
    enable_sms_by_default: bool = False
    default_quiet_hours_timezone: str = "America/New_York"

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "DeliveryConfig":
        settings = settings or get_settings()

        def _seconds(milliseconds: int | None) -> float | None:
            return None if milliseconds is None else milliseconds / 1000

        overrides = {
            NotificationType.CLAIM_STATUS: settings.claim_status_expiration_days,
            NotificationType.PAYMENT_RECEIVED: settings.payment_received_expiration_days,
            NotificationType.AUTHORIZATION_EXPIRY: settings.auth_expiry_expiration_days,
            NotificationType.FILING_DEADLINE: settings.filing_deadline_expiration_days,
        }
        return cls(
            batch_size=settings.notification_batch_size,
            batch_delay_seconds=settings.notification_batch_delay_ms / 1000,
            email_batch_size=settings.email_batch_size,
            email_batch_delay_seconds=_seconds(settings.email_batch_delay_ms),
            sms_batch_size=settings.sms_batch_size,
            sms_batch_delay_seconds=_seconds(settings.sms_batch_delay_ms),
            dispatch_timeout=settings.dispatch_timeout_seconds,
            default_expiration_days=settings.default_expiration_days,
            expiration_days_by_type={
                notification_type: days
                for notification_type, days in overrides.items()
                if days is not None
            },
            enable_email_by_default=settings.enable_email_by_default,
            enable_sms_by_default=settings.enable_sms_by_default,
            default_quiet_hours_timezone=settings.default_quiet_hours_timezone,
        )

    def batch_settings(self, method: DeliveryMethod) -> tuple[int, float]:
        """Return ``(batch_size, delay_seconds)`` for ``method``."""

        if method is DeliveryMethod.EMAIL:
            size, delay = self.email_batch_size, self.email_batch_delay_seconds
        elif method is DeliveryMethod.SMS:
            size, delay = self.sms_batch_size, self.sms_batch_delay_seconds
        else:
            size, delay = None, None
        return (
            size if size is not None else self.batch_size,
            delay if delay is not None else self.batch_delay_seconds,
        )

    def expiration_days_for(self, notification_type: NotificationType) -> int:
        return self.expiration_days_by_type.get(
            notification_type, self.default_expiration_days
        )


__all__ = ["DeliveryConfig"]
