"""hookwatch entry point: wires the server and dashboard poller together."""

from __future__ import annotations

import asyncio
import signal
import sys
from typing import Any

import click

from hookwatch import __version__
from hookwatch.config import Settings, load_settings
from hookwatch.core.auth import TokenStore
from hookwatch.core.store import create_repository
from hookwatch.dashboard.client import WebhookApiClient
from hookwatch.dashboard.poller import STATE_FILE, WebhookPoller
from hookwatch.dashboard.toasts import ToastStore
from hookwatch.gateway.client import GatewayClient
from hookwatch.notifications.dispatcher import NotificationDispatcher
from hookwatch.notifications.settings import SETTINGS_FILE, NotificationSettingsStore
from hookwatch.utils.logging import get_logger, setup_logging
from hookwatch.webhooks.server import WebhookServer

log = get_logger(__name__)


class Hookwatch:
    """Runs the webhook server, the dashboard poller, or both."""

    def __init__(self, settings: Settings, serve: bool = True, watch: bool = False) -> None:
        self.settings = settings
        data_dir = settings.get_data_dir()

        self.gateway = GatewayClient(settings.gateway)
        self.server: WebhookServer | None = None
        self.poller: WebhookPoller | None = None
        self._closers: list[Any] = [self.gateway]
        self._poll_task: asyncio.Task[None] | None = None

        if serve:
            self.server = WebhookServer(
                settings.server,
                settings.auth,
                create_repository(settings.store, data_dir),
                TokenStore(settings.auth, data_dir),
                self.gateway,
            )

        if watch:
            api = WebhookApiClient(settings.dashboard.server_url)
            dispatcher = NotificationDispatcher(
                settings.notifications,
                NotificationSettingsStore(data_dir / SETTINGS_FILE),
            )
            self._closers.extend([api, dispatcher])
            self.poller = WebhookPoller(
                api,
                ToastStore(
                    max_toasts=settings.dashboard.max_toasts,
                    display_seconds=settings.dashboard.toast_seconds,
                ),
                data_dir / STATE_FILE,
                dispatcher=dispatcher,
                gateway=self.gateway,
                interval=settings.dashboard.poll_interval,
            )

    async def start(self) -> None:
        log.info("hookwatch_starting", version=__version__)
        if self.server is not None:
            await self.server.start()
        if self.poller is not None:
            self._poll_task = asyncio.create_task(self.poller.run(), name="dashboard-poller")
        log.info("hookwatch_ready")

    async def stop(self) -> None:
        log.info("hookwatch_stopping")
        if self.poller is not None:
            self.poller.stop()
        if self._poll_task is not None:
            self._poll_task.cancel()
            await asyncio.gather(self._poll_task, return_exceptions=True)
            self._poll_task = None
        if self.server is not None:
            await self.server.stop()
        for closer in self._closers:
            try:
                await closer.close()
            except Exception:
                log.exception("client_close_error", client=type(closer).__name__)
        log.info("hookwatch_stopped")


async def run(settings: Settings, serve: bool = True, watch: bool = False) -> None:
    app = Hookwatch(settings, serve=serve, watch=watch)

    loop = asyncio.get_running_loop()
    stop_event = asyncio.Event()

    def _signal_handler() -> None:
        log.info("shutdown_signal")
        stop_event.set()

    if sys.platform != "win32":
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, _signal_handler)

    await app.start()

    try:
        if sys.platform == "win32":
            while not stop_event.is_set():
                await asyncio.sleep(1)
        else:
            await stop_event.wait()
    except KeyboardInterrupt:
        pass
    finally:
        await app.stop()


def _load(ctx: click.Context) -> Settings:
    settings = load_settings(ctx.obj["config_path"])
    if ctx.obj["log_level"]:
        settings.log_level = ctx.obj["log_level"]
    setup_logging(level=settings.log_level, json_output=settings.log_json)
    return settings


@click.group()
@click.option("--config", "config_path", default=None, help="Path to config YAML file")
@click.option("--log-level", default=None, help="Log level (DEBUG, INFO, WARNING, ERROR)")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, log_level: str | None) -> None:
    """hookwatch: webhook receiver and notification dashboard."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["log_level"] = log_level


@cli.command()
@click.option("--watch", is_flag=True, help="Also run the dashboard poller in this process")
@click.pass_context
def serve(ctx: click.Context, watch: bool) -> None:
    """Start the webhook server."""
    settings = _load(ctx)
    asyncio.run(run(settings, serve=True, watch=watch))


@cli.command()
@click.pass_context
def watch(ctx: click.Context) -> None:
    """Poll a running server, raise toasts and forward notifications."""
    settings = _load(ctx)
    asyncio.run(run(settings, serve=False, watch=True))


@cli.command()
@click.option("--regenerate", is_flag=True, help="Replace the stored token with a new one")
@click.pass_context
def token(ctx: click.Context, regenerate: bool) -> None:
    """Print the webhook bearer token."""
    settings = _load(ctx)
    if regenerate and settings.auth.token:
        raise click.UsageError("auth.token is set in config; regenerate it there instead.")
    store = TokenStore(settings.auth, settings.get_data_dir())
    click.echo(store.regenerate() if regenerate else store.token)


@cli.command()
@click.option("--enable/--disable", "enabled", default=None, help="Master switch for all channels")
@click.option("--email", default=None, help="Email address; empty string disables email")
@click.option("--sms", default=None, help="Phone number; empty string disables SMS")
@click.option("--telegram", default=None, help="Telegram chat id; empty string disables Telegram")
@click.pass_context
def notify(
    ctx: click.Context,
    enabled: bool | None,
    email: str | None,
    sms: str | None,
    telegram: str | None,
) -> None:
    """Show or change the notification channel settings."""
    settings = _load(ctx)
    store = NotificationSettingsStore(settings.get_data_dir() / SETTINGS_FILE)
    if enabled is not None:
        store.toggle(enabled)
    if email is not None:
        store.update_email(email, bool(email))
    if sms is not None:
        store.update_sms(sms, bool(sms))
    if telegram is not None:
        store.update_telegram(telegram, bool(telegram))
    click.echo(store.settings.model_dump_json(by_alias=True, indent=2))


if __name__ == "__main__":
    cli()
