"""Tests for channel eligibility resolution."""

from __future__ import annotations

import pytest

from notification_engine.application.notifications import (
    eligible_channels,
    ordered_channels,
)
from notification_engine.domain.entities import (
    DeliveryMethod,
    MethodPreference,
    NotificationFrequency,
    NotificationPreferences,
    NotificationType,
    Severity,
    TypePreference,
)


def _preferences(
    *,
    claim_methods=frozenset({DeliveryMethod.EMAIL}),
    claim_enabled: bool = True,
    enabled_methods=frozenset(DeliveryMethod),
) -> NotificationPreferences:
    return NotificationPreferences.build(
        "user-1",
        notification_types={
            NotificationType.CLAIM_STATUS: TypePreference(
                enabled=claim_enabled, delivery_methods=claim_methods
            ),
            NotificationType.REPORT_READY: TypePreference(enabled=False),
        },
        delivery_methods={
            method: MethodPreference(
                enabled=method in enabled_methods,
                frequency=NotificationFrequency.REAL_TIME,
            )
            for method in DeliveryMethod
        },
    )


def test_type_methods_intersect_enabled_methods() -> None:
    preferences = _preferences(
        claim_methods=frozenset({DeliveryMethod.EMAIL, DeliveryMethod.SMS}),
        enabled_methods=frozenset({DeliveryMethod.IN_APP, DeliveryMethod.EMAIL}),
    )

    channels = eligible_channels(preferences, NotificationType.CLAIM_STATUS, Severity.MEDIUM)

    assert channels == frozenset({DeliveryMethod.EMAIL})


def test_disabled_type_yields_no_channels() -> None:
    preferences = _preferences(claim_enabled=False)

    assert eligible_channels(preferences, NotificationType.CLAIM_STATUS, Severity.LOW) == frozenset()


@pytest.mark.parametrize("severity", [Severity.HIGH, Severity.CRITICAL])
def test_high_severity_forces_every_channel(severity: Severity) -> None:
    preferences = _preferences(claim_enabled=False, enabled_methods=frozenset())

    channels = eligible_channels(preferences, NotificationType.CLAIM_STATUS, severity)

    assert channels == frozenset(DeliveryMethod)


def test_missing_type_in_raw_mapping_yields_no_channels() -> None:
    preferences = NotificationPreferences(
        user_id="user-1",
        notification_types={},
        delivery_methods={DeliveryMethod.IN_APP: MethodPreference(enabled=True)},
    )

    assert eligible_channels(preferences, NotificationType.SYSTEM_ERROR, Severity.LOW) == frozenset()


def test_type_missing_from_stored_data_falls_back_to_in_app() -> None:
    preferences = _preferences()

    channels = eligible_channels(preferences, NotificationType.PAYMENT_RECEIVED, Severity.LOW)

    assert channels == frozenset({DeliveryMethod.IN_APP})


def test_ordered_channels_follow_declaration_order() -> None:
    channels = {DeliveryMethod.SMS, DeliveryMethod.IN_APP, DeliveryMethod.EMAIL}

    assert ordered_channels(channels) == [
        DeliveryMethod.IN_APP,
        DeliveryMethod.EMAIL,
        DeliveryMethod.SMS,
    ]


def test_severity_ordering() -> None:
    assert Severity.LOW < Severity.MEDIUM < Severity.HIGH < Severity.CRITICAL
    assert max([Severity.HIGH, Severity.LOW, Severity.CRITICAL]) is Severity.CRITICAL
    assert Severity.HIGH.forces_broadcast
    assert not Severity.MEDIUM.forces_broadcast
