"""Helpers for working with timezone-aware datetimes."""

from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta, timezone, tzinfo
from functools import lru_cache
from typing import Final

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from notification_engine.config import get_settings

_DEFAULT_TIMEZONE: Final[str] = "America/New_York"
_OFFSET_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^(?:UTC|GMT)(?P<sign>[+-])(?P<hours>\d{1,2})(?::?(?P<minutes>\d{2}))?$",
    re.IGNORECASE,
)

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_app_timezone() -> tzinfo:
    """Return the configured application timezone.

    The timezone is resolved using the ``APP_TIMEZONE`` environment variable (via
    the ``Settings`` class). If the provided value cannot be resolved, the
    default ``America/New_York`` timezone is used as a fallback.
    """

    settings = get_settings()
    tz_name = (settings.app_timezone or "").strip() or _DEFAULT_TIMEZONE
    return resolve_timezone(tz_name, fallback=_DEFAULT_TIMEZONE)


def now_utc() -> datetime:
    """Return the current aware time in UTC."""

    return datetime.now(tz=timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Return ``value`` expressed in UTC, reading naive values as UTC."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def now_in_app_timezone() -> datetime:
    """Return the current time localized to the configured timezone."""

    return datetime.now(tz=get_app_timezone())


def ensure_app_timezone(value: datetime | None) -> datetime | None:
    """Normalize ``value`` so it is expressed in the configured timezone."""

    if value is None:
        return None

    tz = get_app_timezone()
    if value.tzinfo is None:
        return value.replace(tzinfo=tz)
    return value.astimezone(tz)


def ensure_app_naive_datetime(value: datetime | None) -> datetime | None:
    """Return ``value`` localized to the app timezone but without ``tzinfo``.

    ``DATETIME`` columns on some backends do not accept timezone-aware values.
    This helper keeps aware datetimes in the domain layer while storing the
    localized (naive) representation in the database.
    """

    localized = ensure_app_timezone(value)
    if localized is None:
        return None
    return localized.replace(tzinfo=None)


def resolve_timezone(tz_name: str | None, *, fallback: str = "UTC") -> tzinfo:
    """Resolve ``tz_name`` into a ``tzinfo`` instance.

    IANA names are looked up through :mod:`zoneinfo`; ``UTC+05:30`` style
    offsets are accepted as fixed offsets. Anything else resolves to
    ``fallback``.
    """

    name = (tz_name or "").strip()
    if name:
        try:
            return ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError):
            match = _OFFSET_PATTERN.match(name)
            if match:
                sign = -1 if match.group("sign") == "-" else 1
                hours = int(match.group("hours"))
                minutes = int(match.group("minutes") or 0)
                offset = timedelta(hours=hours, minutes=minutes)
                return timezone(sign * offset)
        logger.warning("Unknown timezone '%s'; falling back to %s", name, fallback)
    return ZoneInfo(fallback)
