"""Tests for the dashboard API client and the polling reconciliation loop."""

import asyncio
import json

import httpx
import pytest

from hookwatch.config import GatewayConfig, NotificationsConfig
from hookwatch.dashboard.client import WebhookApiClient, filter_events
from hookwatch.dashboard.poller import WebhookPoller
from hookwatch.dashboard.toasts import ToastStore
from hookwatch.gateway.client import GatewayClient
from hookwatch.notifications.dispatcher import NotificationDispatcher
from hookwatch.notifications.settings import NotificationSettingsStore
from hookwatch.webhooks.models import WebhookEvent


def event_dict(n, body):
    return {
        "id": f"evt-{n}",
        "timestamp": f"2025-01-01T00:00:{n:02d}.000Z",
        "method": "POST",
        "headers": {},
        "query": {"id": "watch-1" if n % 2 else "other"},
        "body": body,
        "path": "/api/webhook",
    }


class FakeServer:
    """Serves /api/webhook newest first and records notification posts."""

    def __init__(self) -> None:
        self.events: list[dict] = []
        self.notifications: list[tuple[str, dict]] = []
        self.gateway_calls = 0
        self.gateway_response: object = {
            "items": [{"metadata": {"items": [{"key": "name", "value": "Radix"}]}}],
        }

    def add(self, n, body):
        self.events.insert(0, event_dict(n, body))

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path == "/api/webhook" and request.method == "GET":
            return httpx.Response(200, json=self.events)
        if path == "/api/webhook" and request.method == "DELETE":
            cleared = len(self.events)
            self.events = []
            return httpx.Response(200, json={"success": True, "cleared": cleared})
        if path.startswith("/api/notifications/"):
            self.notifications.append((path.rsplit("/", 1)[-1], json.loads(request.content)))
            return httpx.Response(200, json={"success": True})
        if path == "/state/entity/details":
            self.gateway_calls += 1
            return httpx.Response(200, json=self.gateway_response)
        return httpx.Response(404)


@pytest.fixture
def server():
    return FakeServer()


@pytest.fixture
def transport(server):
    return httpx.MockTransport(server.handler)


@pytest.fixture
def api(transport):
    return WebhookApiClient(
        "http://hookwatch.test",
        client=httpx.AsyncClient(transport=transport, base_url="http://hookwatch.test"),
    )


@pytest.fixture
def dispatcher(tmp_path, transport):
    store = NotificationSettingsStore(tmp_path / "settings.json")
    store.toggle(True)
    store.update_telegram("123456", True)
    config = NotificationsConfig(base_url="http://hookwatch.test")
    return NotificationDispatcher(
        config,
        store,
        client=httpx.AsyncClient(transport=transport, base_url=config.base_url),
    )


@pytest.fixture
def gateway(transport):
    config = GatewayConfig(url="https://gateway.test")
    return GatewayClient(
        config, client=httpx.AsyncClient(transport=transport, base_url=config.url)
    )


@pytest.fixture
def make_poller(tmp_path, api, dispatcher, gateway):
    def _make(**kwargs):
        return WebhookPoller(
            api,
            ToastStore(),
            tmp_path / "state.json",
            dispatcher=dispatcher,
            gateway=gateway,
            **kwargs,
        )
    return _make


class TestWebhookApiClient:
    async def test_fetch_and_clear(self, api, server, payload):
        server.add(1, payload)
        server.add(2, "text")
        events = await api.fetch_events()
        assert [e.id for e in events] == ["evt-2", "evt-1"]
        assert isinstance(events[0], WebhookEvent)
        assert await api.clear_events() == 2
        assert await api.fetch_events() == []

    async def test_fetch_raises_on_error(self, transport):
        client = WebhookApiClient(
            "http://hookwatch.test",
            client=httpx.AsyncClient(
                transport=httpx.MockTransport(lambda r: httpx.Response(500)),
                base_url="http://hookwatch.test",
            ),
        )
        with pytest.raises(httpx.HTTPStatusError):
            await client.fetch_events()

    def test_filter_events(self, payload):
        events = [WebhookEvent.from_dict(event_dict(n, payload)) for n in range(4)]
        assert [e.id for e in filter_events(events, "watch-1")] == ["evt-1", "evt-3"]
        assert filter_events(events, "") == events
        assert filter_events(events, None) == events


class TestWebhookPoller:
    async def test_first_poll_seeds_without_notifying(self, make_poller, server, payload):
        server.add(1, payload)
        poller = make_poller()
        assert await poller.poll_once() == []
        assert server.notifications == []
        assert [e.id for e in poller.cached_events] == ["evt-1"]
        assert poller.last_seen == "2025-01-01T00:00:01.000Z"

    async def test_new_events_raise_toasts_and_dispatch(self, make_poller, server, payload):
        server.add(1, payload)
        poller = make_poller()
        await poller.poll_once()

        server.add(2, payload)
        server.add(3, "not structured")
        toasts = await poller.poll_once()

        assert len(toasts) == 1
        assert toasts[0].timestamp == "2025-01-01T00:00:02.000Z"
        assert "Resource: Radix (resource_rdx...radxrd)" in toasts[0].notification.message
        assert server.gateway_calls == 1
        assert len(server.notifications) == 1
        channel, body = server.notifications[0]
        assert channel == "telegram"
        assert body["chatId"] == "123456"
        assert body["message"].startswith("Withdraw Event\n")
        assert poller.last_seen == "2025-01-01T00:00:03.000Z"

    async def test_no_repeat_notifications(self, make_poller, server, payload):
        poller = make_poller()
        await poller.poll_once()
        server.add(1, payload)
        assert len(await poller.poll_once()) == 1
        assert await poller.poll_once() == []
        assert len(server.notifications) == 1

    async def test_new_events_handled_oldest_first(self, make_poller, server, payload):
        poller = make_poller()
        await poller.poll_once()
        server.add(4, payload)
        server.add(5, payload)
        toasts = await poller.poll_once()
        assert [t.timestamp for t in toasts] == [
            "2025-01-01T00:00:04.000Z",
            "2025-01-01T00:00:05.000Z",
        ]

    async def test_state_persists_between_instances(self, make_poller, server, payload):
        server.add(1, payload)
        await make_poller().poll_once()

        server.add(2, payload)
        restarted = make_poller()
        assert restarted.last_seen == "2025-01-01T00:00:01.000Z"
        toasts = await restarted.poll_once()
        assert [t.timestamp for t in toasts] == ["2025-01-01T00:00:02.000Z"]

    async def test_diff_ignores_older_unknown_events(self, make_poller, server, payload):
        server.add(5, payload)
        poller = make_poller()
        await poller.poll_once()
        stale = WebhookEvent.from_dict(event_dict(3, payload))
        assert poller.diff([stale]) == []

    async def test_malformed_gateway_reply_falls_back_to_address(self, make_poller, server, payload):
        server.gateway_response = {"items": {"unexpected": 1}}
        poller = make_poller()
        await poller.poll_once()

        server.add(1, "not structured")
        server.add(2, payload)
        toasts = await poller.poll_once()
        assert len(toasts) == 1
        assert "Resource: resource_rdx...radxrd" in toasts[0].notification.message

        assert await poller.poll_once() == []
        assert await poller.poll_once() == []
        assert len(server.notifications) == 1
        assert poller.last_seen == "2025-01-01T00:00:02.000Z"

    async def test_failing_event_does_not_replay_batch(
        self, make_poller, server, gateway, payload, monkeypatch
    ):
        poller = make_poller()
        await poller.poll_once()

        lookup = gateway.resource_metadata
        calls = []

        async def flaky_lookup(address):
            calls.append(address)
            if len(calls) == 2:
                raise RuntimeError("boom")
            return await lookup(address)

        monkeypatch.setattr(gateway, "resource_metadata", flaky_lookup)
        server.add(1, payload)
        server.add(2, payload)
        server.add(3, payload)
        toasts = await poller.poll_once()
        assert [t.timestamp for t in toasts] == [
            "2025-01-01T00:00:01.000Z",
            "2025-01-01T00:00:03.000Z",
        ]

        assert await poller.poll_once() == []
        assert len(server.notifications) == 2
        assert len(calls) == 3

    def test_non_object_state_file_ignored(self, make_poller, tmp_path):
        (tmp_path / "state.json").write_text("[]")
        poller = make_poller()
        assert poller.cached_events == []
        assert poller.last_seen is None

    async def test_run_survives_errors_and_stops(self, tmp_path, dispatcher):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(500)

        api = WebhookApiClient(
            "http://hookwatch.test",
            client=httpx.AsyncClient(
                transport=httpx.MockTransport(handler), base_url="http://hookwatch.test"
            ),
        )

        async def fake_sleep(seconds):
            if len(calls) >= 3:
                poller.stop()
            await asyncio.sleep(0)

        poller = WebhookPoller(
            api, ToastStore(), tmp_path / "state.json", interval=0.01, sleep=fake_sleep
        )
        await asyncio.wait_for(poller.run(), timeout=2)
        assert len(calls) == 3
