"""Utility helpers for sending notification email via SendGrid."""

from __future__ import annotations

import html
import json
import logging
from collections.abc import Sequence
from typing import Any

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail

from notification_engine.config import Settings, get_settings
from notification_engine.domain.entities import NotificationContent

logger = logging.getLogger(__name__)

_SYSTEM_NAME = "HCBS Revenue Management System"


class EmailDeliveryError(RuntimeError):
    """Raised when SendGrid does not accept a message."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def _extract_sendgrid_error_details(body: Any) -> str | None:
    """Return a human readable description for a SendGrid error payload."""

    if body in (None, ""):
        return None

    if isinstance(body, bytes):
        try:
            body = body.decode("utf-8")
        except UnicodeDecodeError:
            return None

    if isinstance(body, str):
        body = body.strip()
        if not body:
            return None
        try:
            parsed = json.loads(body)
        except json.JSONDecodeError:
            return body
    else:
        parsed = body

    if isinstance(parsed, dict):
        errors = parsed.get("errors")
        if isinstance(errors, list):
            messages: list[str] = []
            for item in errors:
                if not isinstance(item, dict):
                    continue
                message = item.get("message")
                help_link = item.get("help")
                if message and help_link:
                    messages.append(f"{message} (help: {help_link})")
                elif message:
                    messages.append(str(message))
            if messages:
                return "; ".join(messages)
        try:
            return json.dumps(parsed)
        except (TypeError, ValueError):
            return None

    if isinstance(parsed, list):
        return "; ".join(str(item) for item in parsed)

    return None


def _describe_sendgrid_exception(exc: Exception) -> str:
    """Log a SendGrid client error and return a short description of it."""

    status_code = getattr(exc, "status_code", None)
    details = _extract_sendgrid_error_details(getattr(exc, "body", None))

    if status_code and details:
        logger.error(
            "SendGrid API request failed with status %s: %s", status_code, details
        )
        return f"SendGrid request failed with status {status_code}: {details}"
    if status_code:
        logger.error("SendGrid API request failed with status %s", status_code)
        return f"SendGrid request failed with status {status_code}"
    if details:
        logger.error("SendGrid API request failed: %s", details)
        return f"SendGrid request failed: {details}"
    logger.error("Error sending email via SendGrid: %s", exc)
    return str(exc) or exc.__class__.__name__


def _describe_unsuccessful_response(response: Any) -> str:
    status_code = getattr(response, "status_code", None)
    details = _extract_sendgrid_error_details(getattr(response, "body", None))

    if details:
        logger.error(
            "SendGrid API responded with status %s: %s", status_code, details
        )
        return f"SendGrid responded with status {status_code}: {details}"
    logger.error("SendGrid API responded with status %s", status_code)
    return f"SendGrid responded with status {status_code}"


class SendGridEmailTransport:
    """Blocking SendGrid client wrapper used by the email channel."""

    def __init__(self, api_key: str | None, sender: str | None) -> None:
        self.api_key = api_key
        self.sender = sender

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "SendGridEmailTransport":
        settings = settings or get_settings()
        return cls(settings.sendgrid_api_key, settings.sendgrid_sender)

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key and self.sender)

    def send(self, recipient: str, subject: str, html_content: str) -> str | None:
        """Send one message and return the SendGrid message id when provided.

        Raises :class:`EmailDeliveryError` when the request fails or SendGrid
        answers with a non-2xx status.
        """

        message = Mail(
            from_email=self.sender,
            to_emails=recipient,
            subject=subject,
            html_content=html_content,
        )

        try:
            client = SendGridAPIClient(self.api_key)
            response = client.send(message)
        except Exception as exc:  # network and HTTP errors surface from the SDK
            raise EmailDeliveryError(
                _describe_sendgrid_exception(exc),
                status_code=getattr(exc, "status_code", None),
            ) from exc

        status_code = getattr(response, "status_code", None)
        if not isinstance(status_code, int) or not 200 <= status_code < 300:
            raise EmailDeliveryError(
                _describe_unsuccessful_response(response), status_code=status_code
            )

        headers = getattr(response, "headers", None) or {}
        try:
            return headers.get("X-Message-Id")
        except AttributeError:
            return None


def _render_data_block(data: dict[str, Any]) -> str:
    if not data:
        return ""
    rendered = html.escape(json.dumps(data, indent=2, default=str))
    return (
        '<div style="margin-top: 20px; padding: 15px; background-color: #f5f7fa; '
        'border-radius: 4px;">'
        '<h3 style="margin-top: 0; color: #616E7C;">Additional Information</h3>'
        f'<pre style="white-space: pre-wrap;">{rendered}</pre>'
        "</div>"
    )


def _render_footer() -> str:
    return (
        '<div style="margin-top: 30px; padding-top: 20px; border-top: 1px solid #E4E7EB; '
        'color: #616E7C; font-size: 12px;">'
        f"This is an automated message from {_SYSTEM_NAME}. "
        "Please do not reply to this email."
        "</div>"
    )


def format_email_content(content: NotificationContent) -> tuple[str, str]:
    """Return the subject and HTML body for a single notification."""

    body = "".join(
        (
            '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">',
            f'<h2 style="color: #0F52BA;">{content.title}</h2>',
            f'<div style="margin: 20px 0; line-height: 1.5;">{content.message}</div>',
            _render_data_block(dict(content.data or {})),
            _render_footer(),
            "</div>",
        )
    )
    return content.title, body


def format_digest_email(
    contents: Sequence[NotificationContent], *, group_by: str | None = None
) -> tuple[str, str]:
    """Return the subject and HTML body for a digest of ``contents``.

    When ``group_by`` names a ``data`` key, notifications are listed under a
    heading per value; items without that key land in ``Other``.
    """

    subject = f"Notification Digest: {len(contents)} new notifications"

    def _items(entries: Sequence[NotificationContent]) -> str:
        return "".join(
            f'<li style="margin-bottom: 12px;"><strong>{entry.title}</strong>'
            f"<div>{entry.message}</div></li>"
            for entry in entries
        )

    sections: list[str] = []
    if group_by:
        groups: dict[str, list[NotificationContent]] = {}
        for entry in contents:
            key = str((entry.data or {}).get(group_by) or "Other")
            groups.setdefault(key, []).append(entry)
        for name, entries in groups.items():
            sections.append(f'<h3 style="color: #616E7C;">{name}</h3><ul>{_items(entries)}</ul>')
    else:
        sections.append(f"<ul>{_items(contents)}</ul>")

    body = "".join(
        (
            '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">',
            f'<h2 style="color: #0F52BA;">You have {len(contents)} new notifications</h2>',
            *sections,
            _render_footer(),
            "</div>",
        )
    )
    return subject, body


__all__ = [
    "EmailDeliveryError",
    "SendGridEmailTransport",
    "format_digest_email",
    "format_email_content",
]
