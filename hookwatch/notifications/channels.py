"""Email, SMS and Telegram delivery stubs.

No provider is wired up: each handler validates the request and logs what
would have been sent. Handlers return ``(status, body)`` for the server to
serialize.
"""

from __future__ import annotations

import re
from typing import Any

from hookwatch.utils.logging import get_logger

log = get_logger(__name__)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_RE = re.compile(r"^\+?[1-9]\d{1,14}$")
CHAT_ID_RE = re.compile(r"^-?\d+$")

ChannelResponse = tuple[int, dict[str, Any]]


def _missing(payload: dict[str, Any], *keys: str) -> bool:
    return any(not payload.get(key) for key in keys)


def _error(status: int, error: str) -> ChannelResponse:
    return status, {"success": False, "error": error}


def send_email(payload: Any) -> ChannelResponse:
    if not isinstance(payload, dict) or _missing(payload, "to", "subject", "message"):
        return _error(400, "Missing required fields")
    to = str(payload["to"])
    if not EMAIL_RE.match(to):
        return _error(400, "Invalid email address")

    log.info(
        "email_would_be_sent",
        to=to,
        subject=payload["subject"],
        message=payload["message"],
    )
    return 200, {
        "success": True,
        "message": "Email notification would be sent in production",
        "to": to,
    }


def send_sms(payload: Any) -> ChannelResponse:
    if not isinstance(payload, dict) or _missing(payload, "to", "message"):
        return _error(400, "Missing required fields")
    to = str(payload["to"])
    if not PHONE_RE.match(to):
        return _error(400, "Invalid phone number format")

    log.info("sms_would_be_sent", to=to, message=payload["message"])
    return 200, {
        "success": True,
        "message": "SMS notification would be sent in production",
        "to": to,
    }


def send_telegram(payload: Any) -> ChannelResponse:
    if not isinstance(payload, dict) or _missing(payload, "chatId", "message"):
        return _error(400, "Missing required fields")
    chat_id = str(payload["chatId"])
    if not CHAT_ID_RE.match(chat_id):
        return _error(400, "Invalid Telegram chat ID format")

    log.info("telegram_would_be_sent", chat_id=chat_id, message=payload["message"])
    return 200, {
        "success": True,
        "message": "Telegram notification would be sent in production",
        "chatId": chat_id,
    }


CHANNEL_HANDLERS = {
    "email": send_email,
    "sms": send_sms,
    "telegram": send_telegram,
}
