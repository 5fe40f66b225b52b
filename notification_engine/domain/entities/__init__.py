"""Domain entities exposed by the notification engine."""

from .content import NotificationAction, NotificationContent
from .delivery import (
    BulkDeliverySummary,
    BulkRecipient,
    ChannelRecipient,
    DeliveryResult,
    RecipientDeliveryResult,
)
from .digest import DigestItem, DigestRunSummary
from .enums import (
    DeliveryErrorKind,
    DeliveryMethod,
    NotificationFrequency,
    NotificationStatus,
    NotificationType,
    Severity,
)
from .notification import InAppNotification
from .preferences import (
    MISSING_TYPE_PREFERENCE,
    MethodPreference,
    NotificationPreferences,
    QuietHours,
    TypePreference,
)
from .user import User

__all__ = [
    "BulkDeliverySummary",
    "BulkRecipient",
    "ChannelRecipient",
    "DeliveryErrorKind",
    "DeliveryMethod",
    "DeliveryResult",
    "DigestItem",
    "DigestRunSummary",
    "InAppNotification",
    "MISSING_TYPE_PREFERENCE",
    "MethodPreference",
    "NotificationAction",
    "NotificationContent",
    "NotificationFrequency",
    "NotificationPreferences",
    "NotificationStatus",
    "NotificationType",
    "QuietHours",
    "RecipientDeliveryResult",
    "Severity",
    "TypePreference",
    "User",
]
