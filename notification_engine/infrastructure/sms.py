"""Twilio SMS delivery through the Twilio REST API."""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from typing import Any

import requests

from notification_engine.config import Settings, get_settings
from notification_engine.domain.entities import NotificationContent, Severity

logger = logging.getLogger(__name__)

TWILIO_API_BASE_URL = "https://api.twilio.com/2010-04-01"
SMS_MAX_LENGTH = 160
DIGEST_SMS_MAX_TITLES = 5

_HTML_TAG = re.compile(r"<[^>]*>?")
_SEVERITY_PREFIXES = {
    Severity.CRITICAL: "URGENT: ",
    Severity.HIGH: "IMPORTANT: ",
}


class SmsDeliveryError(RuntimeError):
    """Raised when Twilio rejects or fails to accept a message."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def mask_phone_number(phone_number: str | None) -> str:
    """Return ``phone_number`` reduced to its first six characters for logs."""

    if not phone_number:
        return ""
    return f"{phone_number[:6]}****"


def _severity_from(content: NotificationContent, severity: Severity | None) -> Severity | None:
    if severity is not None:
        return severity
    raw = (content.data or {}).get("severity")
    try:
        return Severity(raw) if raw else None
    except ValueError:
        return None


def format_sms_content(
    content: NotificationContent, severity: Severity | None = None
) -> str:
    """Collapse ``content`` into a single plain-text SMS body.

    Falls back to ``content.data["severity"]`` when no severity is given.
    """

    text = f"{content.title}: {content.message}" if content.title else content.message
    text = _HTML_TAG.sub("", text)

    prefix = _SEVERITY_PREFIXES.get(_severity_from(content, severity))
    if prefix:
        text = f"{prefix}{text}"

    if len(text) > SMS_MAX_LENGTH:
        text = text[: SMS_MAX_LENGTH - 3] + "..."
    return text


def format_digest_sms(contents: Sequence[NotificationContent]) -> str:
    count = len(contents)
    plural = "" if count == 1 else "s"
    lines = [f"You have {count} new notification{plural}:\n"]
    shown = contents[:DIGEST_SMS_MAX_TITLES]
    for index, entry in enumerate(shown, start=1):
        lines.append(f"\n{index}. {entry.title}")
    if count > len(shown):
        lines.append(
            f"\n\n+ {count - len(shown)} more. Check the app for all notifications."
        )
    return "".join(lines)


class TwilioSmsTransport:
    """Blocking client for the Twilio Messages endpoint."""

    def __init__(
        self,
        account_sid: str | None,
        auth_token: str | None,
        from_number: str | None,
        *,
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number
        self.timeout = timeout
        self._session = session

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "TwilioSmsTransport":
        settings = settings or get_settings()
        return cls(
            settings.twilio_account_sid,
            settings.twilio_auth_token,
            settings.twilio_from_number,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.account_sid and self.auth_token and self.from_number)

    def _messages_url(self) -> str:
        return f"{TWILIO_API_BASE_URL}/Accounts/{self.account_sid}/Messages.json"

    def send(
        self, to: str, body: str, *, status_callback: str | None = None
    ) -> dict[str, Any]:
        """Send ``body`` to ``to`` and return Twilio's ``sid`` and ``status``."""

        payload = {"To": to, "From": self.from_number, "Body": body}
        if status_callback:
            payload["StatusCallback"] = status_callback

        http = self._session or requests
        try:
            response = http.post(
                self._messages_url(),
                data=payload,
                auth=(self.account_sid, self.auth_token),
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.error(
                "Twilio request for %s failed: %s", mask_phone_number(to), exc
            )
            raise SmsDeliveryError(f"Twilio request failed: {exc}") from exc

        if not 200 <= response.status_code < 300:
            details = _extract_twilio_error(response)
            logger.error(
                "Twilio API responded with status %s for %s: %s",
                response.status_code,
                mask_phone_number(to),
                details,
            )
            raise SmsDeliveryError(
                f"Twilio responded with status {response.status_code}: {details}",
                status_code=response.status_code,
            )

        data = response.json()
        logger.info(
            "SMS accepted by Twilio for %s: %s", mask_phone_number(to), data.get("sid")
        )
        return {"sid": data.get("sid"), "status": data.get("status")}


def _extract_twilio_error(response: requests.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text.strip() or "no details"
    if isinstance(payload, dict):
        message = payload.get("message")
        code = payload.get("code")
        if message and code:
            return f"{message} (code: {code})"
        if message:
            return str(message)
    return str(payload)


__all__ = [
    "SmsDeliveryError",
    "TwilioSmsTransport",
    "format_digest_sms",
    "format_sms_content",
    "mask_phone_number",
]
