"""Dashboard toast notifications: newest first, capped, auto-hidden."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable
from uuid import uuid4

from hookwatch.utils.logging import get_logger
from hookwatch.webhooks.messages import build_notification, select_event_data
from hookwatch.webhooks.models import NotificationMessage, WebhookEvent

log = get_logger(__name__)

MAX_TOASTS = 10
TOAST_DISPLAY_SECONDS = 10.0


@dataclass
class ToastNotification:
    id: str
    event: dict[str, Any]
    timestamp: str
    notification: NotificationMessage
    hide_at: float
    read: bool = False
    visible: bool = True


class ToastStore:
    def __init__(
        self,
        max_toasts: int = MAX_TOASTS,
        display_seconds: float = TOAST_DISPLAY_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._max_toasts = max_toasts
        self._display_seconds = display_seconds
        self._clock = clock
        self._toasts: list[ToastNotification] = []

    @property
    def toasts(self) -> list[ToastNotification]:
        return list(self._toasts)

    @property
    def visible(self) -> list[ToastNotification]:
        return [t for t in self._toasts if t.visible]

    def add_toast(
        self,
        webhook_event: WebhookEvent,
        notification: NotificationMessage | None = None,
    ) -> ToastNotification | None:
        """Add a toast for an event whose body carries sub-events; others are skipped."""
        event_data = select_event_data(webhook_event.body)
        if event_data is None:
            log.debug("toast_skipped", event_id=webhook_event.id, reason="no_events")
            return None

        toast = ToastNotification(
            id=str(uuid4()),
            event=event_data,
            timestamp=webhook_event.timestamp,
            notification=notification or build_notification(event_data),
            hide_at=self._clock() + self._display_seconds,
        )
        self._toasts = [toast, *self._toasts][: self._max_toasts]
        log.info(
            "toast_added",
            toast_id=toast.id,
            event_id=webhook_event.id,
            title=toast.notification.title,
            message=toast.notification.message,
        )
        return toast

    def dismiss_toast_by_id(self, toast_id: str) -> bool:
        for toast in self._toasts:
            if toast.id == toast_id:
                toast.visible = False
                return True
        return False

    def dismiss_toast(self, event_data: dict[str, Any]) -> None:
        for toast in self._toasts:
            if toast.event is event_data:
                toast.visible = False

    def mark_as_read(self, toast_id: str) -> None:
        for toast in self._toasts:
            if toast.id == toast_id:
                toast.read = True

    def clear_all(self) -> None:
        self._toasts = []

    def expire(self) -> list[ToastNotification]:
        """Hide visible toasts whose display time has elapsed. Returns those hidden."""
        now = self._clock()
        expired = [t for t in self._toasts if t.visible and t.hide_at <= now]
        for toast in expired:
            toast.visible = False
        return expired
