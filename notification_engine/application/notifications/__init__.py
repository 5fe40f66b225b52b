"""Notification orchestration: eligibility, quiet hours, batching and digests."""

from .batching import BatchCoordinator
from .config import DeliveryConfig
from .contracts import (
    ChannelDispatcher,
    ConfigurationError,
    DigestStore,
    InAppNotificationStore,
    PreferenceStore,
)
from .defaults import build_default_preferences, resolve_preferences
from .digest import DigestQueue
from .eligibility import eligible_channels, ordered_channels
from .manager import NotificationManager
from .quiet_hours import is_suppressed, parse_clock

__all__ = [
    "BatchCoordinator",
    "ChannelDispatcher",
    "ConfigurationError",
    "DeliveryConfig",
    "DigestQueue",
    "DigestStore",
    "InAppNotificationStore",
    "NotificationManager",
    "PreferenceStore",
    "build_default_preferences",
    "eligible_channels",
    "is_suppressed",
    "ordered_channels",
    "parse_clock",
    "resolve_preferences",
]
