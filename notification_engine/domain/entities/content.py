"""Domain entities describing what a notification says."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class NotificationAction:
    """Action the recipient can take from a notification."""

    label: str
    url: str
    action_type: str = "view"
    data: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class NotificationContent:
    """Title, message and context shared read-only by every channel."""

    title: str
    message: str
    data: dict[str, Any] = field(default_factory=dict)
    actions: tuple[NotificationAction, ...] = ()

    def __post_init__(self) -> None:
        if not isinstance(self.actions, tuple):
            object.__setattr__(self, "actions", tuple(self.actions))


__all__ = ["NotificationAction", "NotificationContent"]
