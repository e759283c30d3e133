"""Webhook HTTP server using aiohttp."""

from __future__ import annotations

import json
from typing import Any, Awaitable, Callable

from aiohttp import web

from hookwatch.config import AuthConfig, ServerConfig
from hookwatch.core.auth import TokenStore
from hookwatch.core.store import EventRepository
from hookwatch.gateway.client import GatewayClient, extract_resource_metadata
from hookwatch.notifications.channels import CHANNEL_HANDLERS
from hookwatch.utils.logging import get_logger
from hookwatch.webhooks.messages import analyze_message_structure
from hookwatch.webhooks.models import WebhookEvent
from hookwatch.webhooks.validation import validate_webhook_payload

log = get_logger(__name__)

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


def _error(status: int, error: str, **extra: Any) -> web.Response:
    return web.json_response({"success": False, "error": error, **extra}, status=status)


class WebhookServer:
    """Receives webhooks, serves the stored events and the notification stubs."""

    def __init__(
        self,
        config: ServerConfig,
        auth_config: AuthConfig,
        repository: EventRepository,
        tokens: TokenStore,
        gateway: GatewayClient | None = None,
    ) -> None:
        self._config = config
        self._auth_config = auth_config
        self._repository = repository
        self._tokens = tokens
        self._gateway = gateway
        self._runner: web.AppRunner | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        if not self._auth_config.required:
            log.warning(
                "webhook_auth_disabled",
                msg="auth.required is false; any client can post webhooks.",
            )
        await self._repository.start()
        app = self._build_app()
        self._runner = web.AppRunner(app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self._config.bind, self._config.port)
        await site.start()
        log.info(
            "webhook_server_started",
            bind=self._config.bind,
            port=self._config.port,
        )

    async def stop(self) -> None:
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
        await self._repository.stop()
        log.info("webhook_server_stopped")

    # ------------------------------------------------------------------
    # App construction
    # ------------------------------------------------------------------

    def _build_app(self) -> web.Application:
        app = web.Application(middlewares=[self._cors_middleware, self._error_middleware])
        app.router.add_get("/health", self._handle_health)
        app.router.add_get("/api/webhook", self._handle_list)
        app.router.add_post("/api/webhook", self._handle_receive)
        app.router.add_delete("/api/webhook", self._handle_clear)
        app.router.add_post("/api/webhook/test", self._handle_analyze)
        app.router.add_post(
            "/api/notifications/{channel:email|sms|telegram}", self._handle_notification
        )
        app.router.add_get("/api/gateway/resource", self._handle_resource)
        return app

    def _cors_headers(self) -> dict[str, str]:
        return {
            "Access-Control-Allow-Origin": self._config.cors_origin,
            "Access-Control-Allow-Methods": "GET, POST, DELETE, OPTIONS",
            "Access-Control-Allow-Headers": "Content-Type, Authorization",
        }

    @web.middleware
    async def _cors_middleware(self, request: web.Request, handler: Handler) -> web.StreamResponse:
        # Preflight never reaches a route
        if request.method == "OPTIONS":
            return web.Response(status=200, headers=self._cors_headers())
        try:
            response = await handler(request)
        except web.HTTPException as exc:
            exc.headers.update(self._cors_headers())
            raise
        response.headers.update(self._cors_headers())
        return response

    @web.middleware
    async def _error_middleware(self, request: web.Request, handler: Handler) -> web.StreamResponse:
        try:
            return await handler(request)
        except web.HTTPException:
            raise
        except Exception as e:
            log.exception("request_failed", method=request.method, path=request.path)
            return _error(500, str(e) or type(e).__name__)

    # ------------------------------------------------------------------
    # Webhook events
    # ------------------------------------------------------------------

    async def _handle_health(self, request: web.Request) -> web.Response:
        return web.json_response({"status": "ok", "events": await self._repository.count()})

    async def _handle_list(self, request: web.Request) -> web.Response:
        events = await self._repository.list_events()
        return web.json_response([event.to_dict() for event in events])

    async def _handle_receive(self, request: web.Request) -> web.Response:
        if not self._authorized(request):
            log.warning("webhook_unauthorized", remote=request.remote)
            return _error(401, "Unauthorized")

        event = WebhookEvent.create(
            method=request.method,
            path=request.path,
            headers={k.lower(): v for k, v in request.headers.items()},
            query=dict(request.query),
            body=await self._read_body(request),
        )
        result = validate_webhook_payload(event.body)
        await self._repository.add(event)

        if not result.valid:
            log.info("webhook_payload_invalid", event_id=event.id, errors=result.errors)
        log.info("webhook_received", event_id=event.id, valid=result.valid)

        return web.json_response({
            "success": True,
            "message": "Webhook received",
            "id": event.id,
            "validationResult": result.to_dict(),
        })

    async def _handle_clear(self, request: web.Request) -> web.Response:
        cleared = await self._repository.clear()
        log.info("webhook_events_cleared", cleared=cleared)
        return web.json_response({
            "success": True,
            "message": "All webhook events cleared",
            "cleared": cleared,
        })

    async def _handle_analyze(self, request: web.Request) -> web.Response:
        if "application/json" not in request.content_type:
            return _error(400, "Content-Type must be application/json")
        try:
            payload = await request.json()
        except ValueError as e:
            log.warning("webhook_test_invalid_json", error=str(e))
            return _error(500, str(e))
        return web.json_response({
            "success": True,
            "messageAnalysis": analyze_message_structure(payload),
        })

    # ------------------------------------------------------------------
    # Notifications and gateway
    # ------------------------------------------------------------------

    async def _handle_notification(self, request: web.Request) -> web.Response:
        channel = request.match_info["channel"]
        try:
            payload = await request.json()
        except ValueError as e:
            log.warning("notification_invalid_json", channel=channel, error=str(e))
            return _error(500, str(e))
        status, body = CHANNEL_HANDLERS[channel](payload)
        return web.json_response(body, status=status)

    async def _handle_resource(self, request: web.Request) -> web.Response:
        address = request.query.get("address")
        if not address:
            return web.json_response(
                {
                    "error": "Missing resource address. Please provide it as a query "
                    "parameter, e.g., ?address=resource_rdx...",
                },
                status=400,
            )
        if self._gateway is None or not self._gateway.enabled:
            return _error(503, "Gateway lookups are disabled", resourceAddress=address)

        details = await self._gateway.fetch_resource_details(address)
        return web.json_response({
            "success": True,
            "resourceAddress": address,
            "metadata": extract_resource_metadata(details).to_dict(),
            "fullResponse": details,
        })

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _authorized(self, request: web.Request) -> bool:
        if not self._auth_config.required:
            return True
        if self._auth_config.allow_test_bypass and "test" in request.query:
            return True
        return self._tokens.validate_auth_header(request.headers.get("Authorization"))

    async def _read_body(self, request: web.Request) -> Any:
        # Undecodable bytes become U+FFFD; the webhook is still stored
        data = await request.read()
        try:
            raw = data.decode(request.charset or "utf-8", errors="replace")
        except LookupError:
            raw = data.decode("utf-8", errors="replace")
        if not raw:
            return None
        if "application/json" not in request.content_type:
            return raw
        try:
            return json.loads(raw)
        except ValueError:
            log.warning("webhook_body_invalid_json", path=request.path)
            return raw
