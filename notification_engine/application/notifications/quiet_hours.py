"""Quiet-hours evaluation for user preferences."""

from __future__ import annotations

import logging
import re
from datetime import datetime, time

from notification_engine.domain.entities import NotificationPreferences, Severity
from notification_engine.utils import ensure_utc, resolve_timezone

logger = logging.getLogger(__name__)

_CLOCK_PATTERN = re.compile(r"^(?P<hour>[01]?\d|2[0-3]):(?P<minute>[0-5]\d)$")


def parse_clock(value: str) -> time:
    """Parse an ``HH:MM`` wall-clock string."""

    match = _CLOCK_PATTERN.match((value or "").strip())
    if not match:
        raise ValueError(f"Invalid clock value '{value}', expected HH:MM")
    return time(int(match.group("hour")), int(match.group("minute")))


def _within_window(current: time, start: time, end: time) -> bool:
    if start < end:
        return start <= current < end
    # The window wraps past midnight.
    return current >= start or current < end


def is_suppressed(
    preferences: NotificationPreferences, severity: Severity, now_utc: datetime
) -> bool:
    """Return ``True`` when quiet hours hold back a notification of ``severity``."""

    quiet_hours = preferences.quiet_hours
    if not quiet_hours.enabled:
        return False
    if severity in quiet_hours.bypass_for_severity:
        return False

    local_now = ensure_utc(now_utc).astimezone(resolve_timezone(quiet_hours.timezone))
    current = time(local_now.hour, local_now.minute)
    suppressed = _within_window(
        current, parse_clock(quiet_hours.start), parse_clock(quiet_hours.end)
    )
    if suppressed:
        logger.debug(
            "Quiet hours active for user %s at %s (%s)",
            preferences.user_id,
            current.strftime("%H:%M"),
            quiet_hours.timezone,
        )
    return suppressed


__all__ = ["is_suppressed", "parse_clock"]
