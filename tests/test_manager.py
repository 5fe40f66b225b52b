"""Tests for single and bulk delivery through the notification manager."""

from __future__ import annotations

from datetime import datetime, timezone

import anyio
import pytest

from notification_engine.application.notifications import (
    ConfigurationError,
    DeliveryConfig,
    NotificationManager,
)
from notification_engine.domain.entities import (
    BulkRecipient,
    DeliveryErrorKind,
    DeliveryMethod,
    MethodPreference,
    NotificationFrequency,
    NotificationPreferences,
    NotificationType,
    QuietHours,
    Severity,
    TypePreference,
)

from conftest import FIXED_NOW, FakeDispatcher, FakePreferenceStore

NIGHT = datetime(2024, 6, 3, 23, 30, tzinfo=timezone.utc)


def _email_only_preferences(user_id: str, *, quiet: bool = False) -> NotificationPreferences:
    return NotificationPreferences.build(
        user_id,
        notification_types={
            NotificationType.CLAIM_STATUS: TypePreference(
                enabled=True, delivery_methods={DeliveryMethod.EMAIL}
            ),
        },
        delivery_methods={
            method: MethodPreference(enabled=True, frequency=NotificationFrequency.REAL_TIME)
            for method in DeliveryMethod
        },
        quiet_hours=QuietHours(enabled=quiet, timezone="UTC"),
    )


def _all_channel_preferences(user_id: str, *, quiet: bool = False) -> NotificationPreferences:
    return NotificationPreferences.build(
        user_id,
        notification_types={
            notification_type: TypePreference(enabled=True, delivery_methods=set(DeliveryMethod))
            for notification_type in NotificationType
        },
        delivery_methods={
            method: MethodPreference(enabled=True) for method in DeliveryMethod
        },
        quiet_hours=QuietHours(enabled=quiet, timezone="UTC"),
    )


def _dispatchers():
    return {
        DeliveryMethod.IN_APP: FakeDispatcher(DeliveryMethod.IN_APP),
        DeliveryMethod.EMAIL: FakeDispatcher(DeliveryMethod.EMAIL),
        DeliveryMethod.SMS: FakeDispatcher(DeliveryMethod.SMS),
    }


def _manager(store, dispatchers, *, now=FIXED_NOW, config=None) -> NotificationManager:
    return NotificationManager(
        store,
        dispatchers.values(),
        config=config or DeliveryConfig(),
        clock=lambda: now,
    )


@pytest.mark.anyio
async def test_claim_status_goes_to_email_only(content) -> None:
    store = FakePreferenceStore(users=["u1"], preferences={"u1": _email_only_preferences("u1")})
    dispatchers = _dispatchers()
    manager = _manager(store, dispatchers)

    results = await manager.send_notification(
        "u1",
        content,
        NotificationType.CLAIM_STATUS,
        Severity.MEDIUM,
        email="biller@example.com",
        phone_number="+15551234567",
    )

    assert list(results) == [DeliveryMethod.EMAIL]
    assert results[DeliveryMethod.EMAIL].success is True
    assert [r.address for r in dispatchers[DeliveryMethod.EMAIL].sent] == ["biller@example.com"]
    assert dispatchers[DeliveryMethod.IN_APP].sent == []
    assert dispatchers[DeliveryMethod.SMS].sent == []


@pytest.mark.anyio
async def test_unknown_user_returns_empty_mapping(content, caplog) -> None:
    dispatchers = _dispatchers()
    manager = _manager(FakePreferenceStore(), dispatchers)

    with caplog.at_level("WARNING"):
        results = await manager.send_notification(
            "ghost", content, NotificationType.CLAIM_STATUS, Severity.CRITICAL
        )

    assert results == {}
    assert "ghost" in caplog.text
    assert all(not dispatcher.sent for dispatcher in dispatchers.values())


@pytest.mark.anyio
async def test_user_without_preferences_gets_in_app_default(content) -> None:
    dispatchers = _dispatchers()
    manager = _manager(FakePreferenceStore(users=["u1"]), dispatchers)

    results = await manager.send_notification(
        "u1", content, NotificationType.REPORT_READY, Severity.LOW, email="u1@example.com"
    )

    assert list(results) == [DeliveryMethod.IN_APP]


@pytest.mark.anyio
async def test_quiet_hours_hold_back_low_severity(content) -> None:
    store = FakePreferenceStore(
        users=["u1"], preferences={"u1": _all_channel_preferences("u1", quiet=True)}
    )
    dispatchers = _dispatchers()
    manager = _manager(store, dispatchers, now=NIGHT)

    results = await manager.send_notification(
        "u1", content, NotificationType.CLAIM_STATUS, Severity.MEDIUM, email="u1@example.com"
    )

    assert results == {}
    assert dispatchers[DeliveryMethod.IN_APP].sent == []


@pytest.mark.anyio
async def test_critical_bypasses_quiet_hours_and_broadcasts(content) -> None:
    preferences = NotificationPreferences.build(
        "u1",
        notification_types={
            NotificationType.SYSTEM_ERROR: TypePreference(enabled=False),
        },
        quiet_hours=QuietHours(enabled=True, timezone="UTC"),
    )
    store = FakePreferenceStore(users=["u1"], preferences={"u1": preferences})
    manager = _manager(store, _dispatchers(), now=NIGHT)

    results = await manager.send_notification(
        "u1",
        content,
        NotificationType.SYSTEM_ERROR,
        Severity.CRITICAL,
        email="u1@example.com",
        phone_number="+15551234567",
    )

    assert list(results) == [DeliveryMethod.IN_APP, DeliveryMethod.EMAIL, DeliveryMethod.SMS]
    assert all(result.success for result in results.values())


@pytest.mark.anyio
async def test_high_severity_suppressed_when_not_in_bypass_set(content) -> None:
    preferences = NotificationPreferences.build(
        "u1",
        quiet_hours=QuietHours(
            enabled=True, timezone="UTC", bypass_for_severity={Severity.CRITICAL}
        ),
    )
    store = FakePreferenceStore(users=["u1"], preferences={"u1": preferences})
    manager = _manager(store, _dispatchers(), now=NIGHT)

    results = await manager.send_notification(
        "u1", content, NotificationType.CLAIM_STATUS, Severity.HIGH
    )

    assert results == {}


@pytest.mark.anyio
async def test_channels_without_address_are_skipped(content) -> None:
    store = FakePreferenceStore(users=["u1"], preferences={"u1": _all_channel_preferences("u1")})
    dispatchers = _dispatchers()
    manager = _manager(store, dispatchers)

    results = await manager.send_notification(
        "u1", content, NotificationType.CLAIM_STATUS, Severity.LOW, phone_number="+15551234567"
    )

    assert list(results) == [DeliveryMethod.IN_APP, DeliveryMethod.SMS]
    assert dispatchers[DeliveryMethod.EMAIL].sent == []


@pytest.mark.anyio
async def test_configuration_error_becomes_configuration_result(
    content, configuration_error, caplog
) -> None:
    store = FakePreferenceStore(users=["u1"], preferences={"u1": _all_channel_preferences("u1")})
    dispatchers = _dispatchers()
    dispatchers[DeliveryMethod.EMAIL] = FakeDispatcher(
        DeliveryMethod.EMAIL, raise_error=configuration_error
    )
    manager = _manager(store, dispatchers)

    with caplog.at_level("ERROR"):
        results = await manager.send_notification(
            "u1", content, NotificationType.CLAIM_STATUS, Severity.LOW, email="u1@example.com"
        )

    email_result = results[DeliveryMethod.EMAIL]
    assert email_result.success is False
    assert email_result.error_kind is DeliveryErrorKind.CONFIGURATION
    assert results[DeliveryMethod.IN_APP].success is True
    assert "not configured" in caplog.text


@pytest.mark.anyio
async def test_unexpected_dispatcher_error_is_captured(content) -> None:
    store = FakePreferenceStore(users=["u1"], preferences={"u1": _all_channel_preferences("u1")})
    dispatchers = _dispatchers()
    dispatchers[DeliveryMethod.SMS] = FakeDispatcher(
        DeliveryMethod.SMS, raise_error=RuntimeError("socket closed")
    )
    manager = _manager(store, dispatchers)

    results = await manager.send_notification(
        "u1", content, NotificationType.CLAIM_STATUS, Severity.LOW, phone_number="+15551234567"
    )

    assert results[DeliveryMethod.SMS].error == "socket closed"
    assert results[DeliveryMethod.SMS].error_kind is DeliveryErrorKind.TRANSPORT
    assert results[DeliveryMethod.IN_APP].success is True


@pytest.mark.anyio
async def test_dispatch_timeout_produces_failed_result(content) -> None:
    class SlowDispatcher(FakeDispatcher):
        async def send_one(self, *args, **kwargs):
            await anyio.sleep(5)
            return await super().send_one(*args, **kwargs)

    store = FakePreferenceStore(users=["u1"])
    dispatchers = _dispatchers()
    dispatchers[DeliveryMethod.IN_APP] = SlowDispatcher(DeliveryMethod.IN_APP)
    manager = _manager(store, dispatchers, config=DeliveryConfig(dispatch_timeout=0.01))

    results = await manager.send_notification(
        "u1", content, NotificationType.CLAIM_STATUS, Severity.LOW
    )

    assert results[DeliveryMethod.IN_APP].success is False
    assert results[DeliveryMethod.IN_APP].error == "Delivery timed out"


@pytest.mark.anyio
async def test_bulk_counts_recipients_reached_by_any_channel(content) -> None:
    store = FakePreferenceStore(
        users=["u1", "u2", "u3"],
        preferences={
            "u1": _all_channel_preferences("u1"),
            "u2": _all_channel_preferences("u2"),
            "u3": _all_channel_preferences("u3"),
        },
    )
    dispatchers = _dispatchers()
    dispatchers[DeliveryMethod.IN_APP] = FakeDispatcher(DeliveryMethod.IN_APP, fail_for=["u2", "u3"])
    dispatchers[DeliveryMethod.EMAIL] = FakeDispatcher(DeliveryMethod.EMAIL, fail_for=["u3"])
    manager = _manager(store, dispatchers)

    summary = await manager.send_bulk_notification(
        [
            BulkRecipient("u1", email="u1@example.com"),
            BulkRecipient("u2", email="u2@example.com"),
            BulkRecipient("u3", email="u3@example.com"),
        ],
        content,
        NotificationType.CLAIM_STATUS,
        Severity.LOW,
    )

    assert (summary.successful, summary.failed) == (2, 1)
    assert [result.user_id for result in summary.results] == ["u1", "u2", "u3"]
    assert summary.results[1].delivery_results[DeliveryMethod.EMAIL].success is True
    assert summary.results[1].delivery_results[DeliveryMethod.IN_APP].success is False
    # Each channel receives a single bulk request.
    assert len(dispatchers[DeliveryMethod.IN_APP].bulk_calls) == 1
    assert len(dispatchers[DeliveryMethod.EMAIL].bulk_calls) == 1
    assert dispatchers[DeliveryMethod.SMS].bulk_calls == []


@pytest.mark.anyio
async def test_bulk_evaluates_quiet_hours_per_recipient(content) -> None:
    store = FakePreferenceStore(
        users=["sleepy", "awake"],
        preferences={
            "sleepy": _all_channel_preferences("sleepy", quiet=True),
            "awake": _all_channel_preferences("awake"),
        },
    )
    dispatchers = _dispatchers()
    manager = _manager(store, dispatchers, now=NIGHT)

    summary = await manager.send_bulk_notification(
        [BulkRecipient("sleepy"), BulkRecipient("awake")],
        content,
        NotificationType.CLAIM_STATUS,
        Severity.MEDIUM,
    )

    sleepy, awake = summary.results
    assert sleepy.suppressed is True
    assert sleepy.delivery_results == {}
    assert awake.successful is True
    assert (summary.successful, summary.failed) == (1, 1)
    assert [r.user_id for r in dispatchers[DeliveryMethod.IN_APP].bulk_calls[0]] == ["awake"]


@pytest.mark.anyio
async def test_bulk_configuration_error_only_fails_that_channel(
    content, configuration_error
) -> None:
    store = FakePreferenceStore(
        users=["u1", "u2"],
        preferences={
            "u1": _all_channel_preferences("u1"),
            "u2": _all_channel_preferences("u2"),
        },
    )
    dispatchers = _dispatchers()
    dispatchers[DeliveryMethod.EMAIL] = FakeDispatcher(
        DeliveryMethod.EMAIL, raise_error=configuration_error
    )
    manager = _manager(store, dispatchers)

    summary = await manager.send_bulk_notification(
        [BulkRecipient("u1", email="u1@example.com"), BulkRecipient("u2", email="u2@example.com")],
        content,
        NotificationType.CLAIM_STATUS,
        Severity.LOW,
    )

    for result in summary.results:
        email_result = result.delivery_results[DeliveryMethod.EMAIL]
        assert email_result.error_kind is DeliveryErrorKind.CONFIGURATION
        assert result.delivery_results[DeliveryMethod.IN_APP].success is True
    assert summary.successful == 2


@pytest.mark.anyio
async def test_bulk_recipient_without_channels_counts_as_failed(content) -> None:
    preferences = NotificationPreferences.build(
        "u1",
        notification_types={NotificationType.CLAIM_STATUS: TypePreference(enabled=False)},
    )
    store = FakePreferenceStore(users=["u1"], preferences={"u1": preferences})
    manager = _manager(store, _dispatchers())

    summary = await manager.send_bulk_notification(
        [BulkRecipient("u1")], content, NotificationType.CLAIM_STATUS, Severity.LOW
    )

    assert (summary.successful, summary.failed) == (0, 1)
    assert summary.results[0].suppressed is False


class _BrokenPreferenceStore(FakePreferenceStore):
    def __init__(self, broken_user: str, **kwargs) -> None:
        super().__init__(**kwargs)
        self.broken_user = broken_user

    def get(self, user_id: str):
        if user_id == self.broken_user:
            raise RuntimeError("preference lookup failed")
        return super().get(user_id)


class _ShortDispatcher(FakeDispatcher):
    async def send_bulk(self, recipients, content, notification_type, severity, options=None):
        results = await super().send_bulk(recipients, content, notification_type, severity, options)
        return results[:1]


def _malformed_quiet_hours(user_id: str) -> NotificationPreferences:
    return NotificationPreferences.build(
        user_id, quiet_hours=QuietHours(enabled=True, start="9pm", timezone="UTC")
    )


@pytest.mark.anyio
async def test_bulk_isolates_recipient_with_malformed_quiet_hours(content, caplog) -> None:
    store = FakePreferenceStore(
        users=["good", "bad"], preferences={"bad": _malformed_quiet_hours("bad")}
    )
    dispatchers = _dispatchers()
    manager = _manager(store, dispatchers)

    with caplog.at_level("ERROR"):
        summary = await manager.send_bulk_notification(
            [BulkRecipient("good"), BulkRecipient("bad")],
            content,
            NotificationType.CLAIM_STATUS,
            Severity.LOW,
        )

    good, bad = summary.results
    assert good.successful is True
    assert bad.delivery_results == {}
    assert "9pm" in bad.error
    assert (summary.successful, summary.failed) == (1, 1)
    assert [r.user_id for r in dispatchers[DeliveryMethod.IN_APP].bulk_calls[0]] == ["good"]
    assert "bad" in caplog.text


@pytest.mark.anyio
async def test_bulk_isolates_preference_store_failure(content) -> None:
    store = _BrokenPreferenceStore("u2", users=["u1", "u2"])
    manager = _manager(store, _dispatchers())

    summary = await manager.send_bulk_notification(
        [BulkRecipient("u1"), BulkRecipient("u2")],
        content,
        NotificationType.REPORT_READY,
        Severity.LOW,
    )

    assert summary.results[0].successful is True
    assert summary.results[1].error == "preference lookup failed"
    assert (summary.successful, summary.failed) == (1, 1)


@pytest.mark.anyio
async def test_malformed_quiet_hours_yield_empty_mapping(content, caplog) -> None:
    store = FakePreferenceStore(users=["bad"], preferences={"bad": _malformed_quiet_hours("bad")})
    dispatchers = _dispatchers()
    manager = _manager(store, dispatchers)

    with caplog.at_level("ERROR"):
        results = await manager.send_notification(
            "bad", content, NotificationType.CLAIM_STATUS, Severity.LOW
        )

    assert results == {}
    assert "bad" in caplog.text
    assert all(not dispatcher.sent for dispatcher in dispatchers.values())


@pytest.mark.anyio
async def test_bulk_fills_results_missing_from_dispatcher(content) -> None:
    store = FakePreferenceStore(users=["u1", "u2"])
    dispatchers = _dispatchers()
    dispatchers[DeliveryMethod.IN_APP] = _ShortDispatcher(DeliveryMethod.IN_APP)
    manager = _manager(store, dispatchers)

    summary = await manager.send_bulk_notification(
        [BulkRecipient("u1"), BulkRecipient("u2")],
        content,
        NotificationType.REPORT_READY,
        Severity.LOW,
    )

    missing = summary.results[1].delivery_results[DeliveryMethod.IN_APP]
    assert summary.results[0].successful is True
    assert missing.success is False
    assert missing.error_kind is DeliveryErrorKind.TRANSPORT
    assert missing.metadata["user_id"] == "u2"
    assert (summary.successful, summary.failed) == (1, 1)


@pytest.mark.anyio
async def test_digest_operations_require_a_digest_store(content) -> None:
    manager = _manager(FakePreferenceStore(users=["u1"]), _dispatchers())

    with pytest.raises(ConfigurationError):
        manager.queue_digest_notification(
            "u1", content, NotificationType.CLAIM_STATUS, Severity.LOW, DeliveryMethod.IN_APP
        )
