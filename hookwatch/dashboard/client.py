"""HTTP client for the webhook event API."""

from __future__ import annotations

import httpx

from hookwatch.utils.logging import get_logger
from hookwatch.webhooks.models import WebhookEvent

log = get_logger(__name__)


def filter_events(events: list[WebhookEvent], filter_id: str | None) -> list[WebhookEvent]:
    """Keep events whose ``?id=`` query parameter matches; no filter keeps all."""
    if not filter_id:
        return list(events)
    return [event for event in events if event.query.get("id") == filter_id]


class WebhookApiClient:
    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    async def close(self) -> None:
        await self._client.aclose()

    async def fetch_events(self) -> list[WebhookEvent]:
        resp = await self._client.get("/api/webhook")
        resp.raise_for_status()
        return [WebhookEvent.from_dict(item) for item in resp.json()]

    async def clear_events(self) -> int:
        resp = await self._client.delete("/api/webhook")
        resp.raise_for_status()
        cleared = resp.json().get("cleared", 0)
        log.info("webhook_events_cleared", cleared=cleared)
        return cleared
