"""Pull-based reconciliation of server events against the local dashboard cache."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, Awaitable, Callable

from hookwatch.dashboard.client import WebhookApiClient
from hookwatch.dashboard.toasts import ToastNotification, ToastStore
from hookwatch.gateway.client import GatewayClient, ResourceMetadata
from hookwatch.notifications.dispatcher import NotificationDispatcher
from hookwatch.utils.logging import get_logger
from hookwatch.webhooks.messages import build_notification, find_resource_address, select_event_data
from hookwatch.webhooks.models import WebhookEvent

log = get_logger(__name__)

STATE_FILE = "dashboard_state.json"
MAX_CACHED_EVENTS = 100

Sleep = Callable[[float], Awaitable[Any]]


class WebhookPoller:
    """Polls GET /api/webhook and reacts to events it hasn't seen before.

    An event is new when its id isn't cached and its timestamp is no earlier
    than the last one seen. The very first poll, with no saved state, only seeds
    the cache so a fresh dashboard doesn't replay the server's backlog.
    """

    def __init__(
        self,
        api: WebhookApiClient,
        toasts: ToastStore,
        state_path: Path,
        *,
        dispatcher: NotificationDispatcher | None = None,
        gateway: GatewayClient | None = None,
        interval: float = 5.0,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._api = api
        self._toasts = toasts
        self._state_path = state_path
        self._dispatcher = dispatcher
        self._gateway = gateway
        self._interval = interval
        self._sleep = sleep
        self._running = False

        self._cached: list[WebhookEvent] = []
        self._last_seen: str | None = None
        self._seeded = False
        self._load_state()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def cached_events(self) -> list[WebhookEvent]:
        return list(self._cached)

    @property
    def last_seen(self) -> str | None:
        return self._last_seen

    def _load_state(self) -> None:
        if not self._state_path.exists():
            return
        try:
            data = json.loads(self._state_path.read_text())
            if not isinstance(data, dict):
                raise ValueError("dashboard state must be a JSON object")
            self._cached = [WebhookEvent.from_dict(e) for e in data.get("events", [])]
            self._last_seen = data.get("lastSeenTimestamp")
            self._seeded = True
        except (OSError, ValueError, KeyError, TypeError):
            log.exception("dashboard_state_load_failed", path=str(self._state_path))
            self._cached = []
            self._last_seen = None

    def _save_state(self) -> None:
        data = {
            "lastSeenTimestamp": self._last_seen,
            "events": [e.to_dict() for e in self._cached],
        }
        try:
            self._state_path.parent.mkdir(parents=True, exist_ok=True)
            self._state_path.write_text(json.dumps(data))
        except OSError:
            log.exception("dashboard_state_save_failed", path=str(self._state_path))

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------

    def diff(self, events: list[WebhookEvent]) -> list[WebhookEvent]:
        """Events not seen before, oldest first."""
        known = {e.id for e in self._cached}
        new = [
            e for e in events
            if e.id not in known
            and (self._last_seen is None or e.timestamp >= self._last_seen)
        ]
        return sorted(new, key=lambda e: e.timestamp)

    async def poll_once(self) -> list[ToastNotification]:
        events = await self._api.fetch_events()
        new_events = self.diff(events) if self._seeded else []
        if not self._seeded:
            log.info("dashboard_cache_seeded", events=len(events))

        toasts: list[ToastNotification] = []
        # A failing event is logged and counted as handled; the rest still run
        for event in new_events:
            try:
                toast = await self._handle_new_event(event)
            except Exception:
                log.exception("dashboard_event_failed", event_id=event.id)
                continue
            if toast is not None:
                toasts.append(toast)

        self._cached = events[:MAX_CACHED_EVENTS]
        if events:
            newest = max(e.timestamp for e in events)
            if self._last_seen is None or newest > self._last_seen:
                self._last_seen = newest
        self._seeded = True
        self._save_state()

        self._toasts.expire()
        return toasts

    async def _handle_new_event(self, event: WebhookEvent) -> ToastNotification | None:
        event_data = select_event_data(event.body)
        if event_data is None:
            log.info("webhook_event_without_events", event_id=event.id)
            return None

        metadata: ResourceMetadata | None = None
        resource_address = find_resource_address(event_data)
        if resource_address and self._gateway is not None and self._gateway.enabled:
            metadata = await self._gateway.resource_metadata(resource_address)

        notification = build_notification(event_data, metadata)
        toast = self._toasts.add_toast(event, notification)

        if self._dispatcher is not None:
            results = await self._dispatcher.dispatch(notification)
            if results:
                log.info("notifications_sent", event_id=event.id, results=results)
        return toast

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    async def run(self) -> None:
        self._running = True
        log.info("dashboard_poller_started", interval=self._interval)
        while self._running:
            try:
                await self.poll_once()
            except Exception:
                log.exception("dashboard_poll_error")
            await self._sleep(self._interval)
        log.info("dashboard_poller_stopped")

    def stop(self) -> None:
        self._running = False
