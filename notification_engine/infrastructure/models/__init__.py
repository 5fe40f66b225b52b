"""ORM models used by the application infrastructure."""

from .digest_item import DigestItemModel
from .notification import NotificationModel
from .notification_preference import NotificationPreferenceModel
from .user import UserModel

__all__ = [
    "DigestItemModel",
    "NotificationModel",
    "NotificationPreferenceModel",
    "UserModel",
]
