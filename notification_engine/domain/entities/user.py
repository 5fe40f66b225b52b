"""Domain entity representing a user that can receive notifications."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class User:
    """Core attributes describing a notification recipient."""

    id: str
    name: str
    email: str | None
    phone_number: str | None
    is_active: bool
    deleted: bool
    created_at: datetime | None = None
