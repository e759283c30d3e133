"""Tests for the dashboard toast store."""

import pytest

from hookwatch.dashboard.toasts import ToastStore
from hookwatch.webhooks.models import NotificationMessage, WebhookEvent


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return ToastStore(max_toasts=10, display_seconds=10.0, clock=clock)


def webhook(payload, n=0):
    return WebhookEvent(
        id=f"evt-{n}",
        timestamp=f"2025-01-01T00:00:{n:02d}.000Z",
        method="POST",
        body=payload,
        path="/api/webhook",
    )


class TestAddToast:
    def test_adds_visible_unread_toast(self, store, payload):
        toast = store.add_toast(webhook(payload))
        assert toast is not None
        assert toast.visible is True
        assert toast.read is False
        assert toast.timestamp == "2025-01-01T00:00:00.000Z"
        assert toast.event["eventName"] == "WithdrawEvent"
        assert toast.event["rootMessageObject"] == payload["message"]
        assert toast.notification.title == "Withdraw Event"

    def test_uses_given_notification(self, store, payload):
        notification = NotificationMessage(title="T", message="M")
        assert store.add_toast(webhook(payload), notification).notification is notification

    def test_skips_bodies_without_events(self, store, payload):
        assert store.add_toast(webhook("plain text")) is None
        payload["events"] = []
        assert store.add_toast(webhook(payload)) is None
        assert store.toasts == []

    def test_newest_first_and_capped(self, store, payload):
        for n in range(12):
            store.add_toast(webhook(payload, n))
        toasts = store.toasts
        assert len(toasts) == 10
        assert toasts[0].timestamp.endswith(":11.000Z")
        assert toasts[-1].timestamp.endswith(":02.000Z")


class TestDismiss:
    def test_dismiss_by_id_hides_only_that_toast(self, store, payload):
        toasts = [store.add_toast(webhook(payload, n)) for n in range(3)]
        assert store.dismiss_toast_by_id(toasts[1].id) is True

        assert len(store.toasts) == 3
        assert [t.visible for t in store.toasts] == [True, False, True]
        assert [t.id for t in store.visible] == [toasts[2].id, toasts[0].id]

    def test_dismiss_unknown_id(self, store, payload):
        store.add_toast(webhook(payload))
        assert store.dismiss_toast_by_id("missing") is False
        assert len(store.visible) == 1

    def test_dismiss_by_event(self, store, payload):
        first = store.add_toast(webhook(payload, 0))
        second = store.add_toast(webhook(payload, 1))
        store.dismiss_toast(first.event)
        assert first.visible is False
        assert second.visible is True

    def test_mark_as_read(self, store, payload):
        toast = store.add_toast(webhook(payload))
        store.mark_as_read(toast.id)
        assert store.toasts[0].read is True
        assert store.toasts[0].visible is True

    def test_clear_all(self, store, payload):
        store.add_toast(webhook(payload))
        store.clear_all()
        assert store.toasts == []


class TestExpire:
    def test_hides_after_display_time(self, store, clock, payload):
        old = store.add_toast(webhook(payload, 0))
        clock.now += 6
        fresh = store.add_toast(webhook(payload, 1))

        clock.now += 4
        assert store.expire() == [old]
        assert old.visible is False
        assert fresh.visible is True

        clock.now += 6
        assert store.expire() == [fresh]
        assert store.visible == []
        assert store.expire() == []
