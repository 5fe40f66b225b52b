"""Shared fixtures and in-memory fakes for the notification engine tests."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any

import pytest
from sqlalchemy.orm import Session

from notification_engine.application.notifications import ConfigurationError, DeliveryConfig
from notification_engine.domain.entities import (
    ChannelRecipient,
    DeliveryMethod,
    DeliveryResult,
    DigestItem,
    NotificationContent,
    NotificationFrequency,
    NotificationPreferences,
    NotificationType,
    Severity,
)
from notification_engine.infrastructure.database import build_engine, initialize_database

# 15:00 UTC is 11:00 in New York during daylight saving time.
FIXED_NOW = datetime(2024, 6, 3, 15, 0, tzinfo=timezone.utc)


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


class FakePreferenceStore:
    def __init__(
        self,
        users: Sequence[str] = (),
        preferences: dict[str, NotificationPreferences] | None = None,
    ) -> None:
        self.users = set(users)
        self.preferences = dict(preferences or {})

    def get(self, user_id: str) -> NotificationPreferences | None:
        return self.preferences.get(user_id)

    def user_exists(self, user_id: str) -> bool:
        return user_id in self.users


class FakeDispatcher:
    """Records every call and answers with a scripted outcome."""

    def __init__(
        self,
        method: DeliveryMethod,
        *,
        fail_for: Sequence[str] = (),
        raise_error: Exception | None = None,
    ) -> None:
        self.method = method
        self.fail_for = set(fail_for)
        self.raise_error = raise_error
        self.sent: list[ChannelRecipient] = []
        self.bulk_calls: list[list[ChannelRecipient]] = []
        self.digests: list[tuple[str, str | None, list[NotificationContent], dict]] = []

    def _result(self, user_id: str) -> DeliveryResult:
        if user_id in self.fail_for:
            return DeliveryResult.failed(self.method, "boom", user_id=user_id)
        return DeliveryResult.succeeded(self.method, user_id=user_id)

    async def send_one(
        self,
        recipient: ChannelRecipient,
        content: NotificationContent,
        notification_type: NotificationType,
        severity: Severity,
        options: Any = None,
    ) -> DeliveryResult:
        if self.raise_error is not None:
            raise self.raise_error
        self.sent.append(recipient)
        return self._result(recipient.user_id)

    async def send_bulk(
        self,
        recipients: Sequence[ChannelRecipient],
        content: NotificationContent,
        notification_type: NotificationType,
        severity: Severity,
        options: Any = None,
    ) -> list[DeliveryResult]:
        if self.raise_error is not None:
            raise self.raise_error
        self.bulk_calls.append(list(recipients))
        return [self._result(recipient.user_id) for recipient in recipients]

    async def send_digest(
        self,
        user_id: str,
        address: str | None,
        contents: Sequence[NotificationContent],
        options: Any = None,
    ) -> DeliveryResult:
        if self.raise_error is not None:
            raise self.raise_error
        self.digests.append((user_id, address, list(contents), dict(options or {})))
        return self._result(user_id)


class FakeDigestStore:
    def __init__(self) -> None:
        self.items: list[DigestItem] = []
        self.fail_on_add = False

    def add(self, item: DigestItem) -> DigestItem:
        if self.fail_on_add:
            raise RuntimeError("database unavailable")
        stored = replace(item, id=len(self.items) + 1)
        self.items.append(stored)
        return stored

    def list_pending(self, frequency: NotificationFrequency) -> list[DigestItem]:
        return [
            item
            for item in self.items
            if item.frequency is frequency and item.sent_at is None
        ]

    def mark_sent(self, item_ids: Sequence[int], sent_at: datetime) -> int:
        wanted = set(item_ids)
        count = 0
        for item in self.items:
            if item.id in wanted and item.sent_at is None:
                item.sent_at = sent_at
                count += 1
        return count


class SleepRecorder:
    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.calls.append(delay)


@pytest.fixture
def content() -> NotificationContent:
    return NotificationContent(
        title="Claim updated",
        message="Claim C-1001 moved to <b>paid</b>.",
        data={"claim_id": "C-1001"},
    )


@pytest.fixture
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def delivery_config() -> DeliveryConfig:
    return DeliveryConfig(batch_size=50, batch_delay_seconds=1.0)


@pytest.fixture
def configuration_error() -> ConfigurationError:
    return ConfigurationError("SendGrid API key and sender must be configured to send email")


@pytest.fixture
def db_session():
    """Yield a session bound to a fresh in-memory SQLite database."""

    engine = build_engine("sqlite://")
    initialize_database(engine)
    session = Session(bind=engine)
    try:
        yield session
    finally:
        session.close()
        engine.dispose()
