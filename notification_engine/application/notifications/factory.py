"""Wire a :class:`NotificationManager` to the SQLAlchemy stores and transports."""

from __future__ import annotations

from collections.abc import Awaitable, Callable

import anyio
from sqlalchemy.orm import Session

from notification_engine.config import Settings, get_settings
from notification_engine.infrastructure.channels import (
    EmailChannelDispatcher,
    InAppChannelDispatcher,
    SmsChannelDispatcher,
)
from notification_engine.infrastructure.email import SendGridEmailTransport
from notification_engine.infrastructure.repositories import (
    DigestRepository,
    NotificationRepository,
    PreferenceRepository,
)
from notification_engine.infrastructure.sms import TwilioSmsTransport

from .config import DeliveryConfig
from .manager import NotificationManager


def build_notification_manager(
    session: Session,
    *,
    settings: Settings | None = None,
    config: DeliveryConfig | None = None,
    email_transport: SendGridEmailTransport | None = None,
    sms_transport: TwilioSmsTransport | None = None,
    sleep: Callable[[float], Awaitable[None]] = anyio.sleep,
) -> NotificationManager:
    """Return a manager whose stores share ``session``."""

    settings = settings or get_settings()
    config = config or DeliveryConfig.from_settings(settings)
    preferences = PreferenceRepository(session)

    dispatchers = [
        InAppChannelDispatcher(
            NotificationRepository(session),
            preferences.user_exists,
            config,
            sleep=sleep,
        ),
        EmailChannelDispatcher(
            email_transport or SendGridEmailTransport.from_settings(settings),
            config,
            sleep=sleep,
        ),
        SmsChannelDispatcher(
            sms_transport or TwilioSmsTransport.from_settings(settings),
            config,
            sleep=sleep,
        ),
    ]
    return NotificationManager(
        preferences,
        dispatchers,
        digest_store=DigestRepository(session),
        config=config,
    )


__all__ = ["build_notification_manager"]
