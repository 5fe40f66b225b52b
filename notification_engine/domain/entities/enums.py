"""Closed enumerations shared by the notification domain."""

from __future__ import annotations

from enum import Enum


class NotificationType(str, Enum):
    """Kinds of events a user can be notified about."""

    CLAIM_STATUS = "claim_status"
    PAYMENT_RECEIVED = "payment_received"
    AUTHORIZATION_EXPIRY = "auth_expiry"
    FILING_DEADLINE = "filing_deadline"
    REPORT_READY = "report_ready"
    SYSTEM_ERROR = "system_error"
    COMPLIANCE_ALERT = "compliance_alert"
    USER_INVITATION = "user_invitation"
    PASSWORD_RESET = "password_reset"
    ACCOUNT_STATUS = "account_status"


class Severity(str, Enum):
    """Ordered severity levels, from informational to immediate attention."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANKS[self]

    @property
    def forces_broadcast(self) -> bool:
        """Return ``True`` for the severities delivered through every channel."""

        return self.rank >= _SEVERITY_RANKS[Severity.HIGH]

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank >= other.rank


_SEVERITY_RANKS = {
    Severity.LOW: 0,
    Severity.MEDIUM: 1,
    Severity.HIGH: 2,
    Severity.CRITICAL: 3,
}


class DeliveryMethod(str, Enum):
    """Channels a notification can be delivered through."""

    IN_APP = "in_app"
    EMAIL = "email"
    SMS = "sms"


class NotificationFrequency(str, Enum):
    """How often a delivery method flushes notifications to the user."""

    REAL_TIME = "real_time"
    DAILY = "daily"
    WEEKLY = "weekly"


class NotificationStatus(str, Enum):
    """Lifecycle of a persisted in-app notification."""

    UNREAD = "unread"
    READ = "read"
    ARCHIVED = "archived"
    DELETED = "deleted"


class DeliveryErrorKind(str, Enum):
    """Why a delivery attempt did not succeed."""

    INVALID_ADDRESS = "invalid_address"
    TRANSPORT = "transport"
    CONFIGURATION = "configuration"
    RECIPIENT_NOT_FOUND = "recipient_not_found"


__all__ = [
    "DeliveryErrorKind",
    "DeliveryMethod",
    "NotificationFrequency",
    "NotificationStatus",
    "NotificationType",
    "Severity",
]
