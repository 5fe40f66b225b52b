"""Repository implementations for infrastructure layer."""

from .digest_repository import DigestRepository
from .notification_repository import NotificationRepository
from .preference_repository import PreferenceRepository
from .user_repository import UserRepository

__all__ = [
    "DigestRepository",
    "NotificationRepository",
    "PreferenceRepository",
    "UserRepository",
]
