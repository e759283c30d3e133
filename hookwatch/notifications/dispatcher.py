"""Forwards notification summaries to the enabled channel endpoints."""

from __future__ import annotations

from typing import Any

import httpx

from hookwatch.config import NotificationsConfig
from hookwatch.notifications.settings import NotificationSettings, NotificationSettingsStore
from hookwatch.utils.logging import get_logger
from hookwatch.webhooks.models import NotificationMessage

log = get_logger(__name__)


def build_channel_requests(
    settings: NotificationSettings, notification: NotificationMessage
) -> dict[str, dict[str, Any]]:
    """Request bodies keyed by channel, for every enabled channel with a target."""
    if not settings.enabled:
        return {}

    requests: dict[str, dict[str, Any]] = {}
    if settings.email.enabled and settings.email.address:
        requests["email"] = {
            "to": settings.email.address,
            "subject": notification.title,
            "message": notification.message,
        }
    if settings.sms.enabled and settings.sms.phone_number:
        requests["sms"] = {
            "to": settings.sms.phone_number,
            "message": notification.text,
        }
    if settings.telegram.enabled and settings.telegram.chat_id:
        requests["telegram"] = {
            "chatId": settings.telegram.chat_id,
            "message": notification.text,
        }
    return requests


class NotificationDispatcher:
    """POSTs to /api/notifications/<channel>; one channel failing never blocks another."""

    def __init__(
        self,
        config: NotificationsConfig,
        settings_store: NotificationSettingsStore,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings_store = settings_store
        self._client = client or httpx.AsyncClient(
            base_url=config.base_url, timeout=config.timeout
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def dispatch(self, notification: NotificationMessage) -> dict[str, bool]:
        results: dict[str, bool] = {}
        requests = build_channel_requests(self._settings_store.settings, notification)
        for channel, body in requests.items():
            results[channel] = await self._send(channel, body)
        return results

    async def _send(self, channel: str, body: dict[str, Any]) -> bool:
        try:
            resp = await self._client.post(f"/api/notifications/{channel}", json=body)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            log.error(
                "notification_dispatch_failed",
                channel=channel,
                status=e.response.status_code,
                response=e.response.text[:200],
            )
            return False
        except httpx.HTTPError as e:
            log.error("notification_dispatch_failed", channel=channel, error=str(e))
            return False

        log.info("notification_dispatched", channel=channel)
        return True
