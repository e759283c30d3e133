"""Configuration management with Pydantic Settings + optional YAML."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from hookwatch.utils.platform import get_config_dir, get_data_dir


class ServerConfig(BaseModel):
    bind: str = "0.0.0.0"
    port: int = 8420
    cors_origin: str = "*"


class AuthConfig(BaseModel):
    # Empty means load the persisted token, or generate one on first start
    token: str = ""
    required: bool = True
    allow_test_bypass: bool = True


class StoreConfig(BaseModel):
    backend: Literal["memory", "sqlite"] = "memory"
    max_events: int = 100
    db_file: str = "events.db"


class GatewayConfig(BaseModel):
    enabled: bool = True
    url: str = "https://mainnet.radixdlt.com"
    timeout: float = 10.0


class NotificationsConfig(BaseModel):
    """Where the dispatcher sends channel notifications (the stub endpoints)."""
    base_url: str = "http://127.0.0.1:8420"
    timeout: float = 10.0


class DashboardConfig(BaseModel):
    server_url: str = "http://127.0.0.1:8420"
    poll_interval: float = 5.0
    max_toasts: int = 10
    toast_seconds: float = 10.0


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="HOOKWATCH_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    server: ServerConfig = Field(default_factory=ServerConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    gateway: GatewayConfig = Field(default_factory=GatewayConfig)
    notifications: NotificationsConfig = Field(default_factory=NotificationsConfig)
    dashboard: DashboardConfig = Field(default_factory=DashboardConfig)
    data_dir: str = ""
    log_level: str = "INFO"
    log_json: bool = False

    def get_data_dir(self) -> Path:
        if self.data_dir:
            return Path(self.data_dir)
        return get_data_dir()


def load_settings(config_path: str | Path | None = None) -> Settings:
    """Load settings from env vars, optionally overlaying a YAML config."""
    yaml_data: dict[str, Any] = {}

    if config_path is None:
        config_path = os.environ.get("HOOKWATCH_CONFIG") or None
    if config_path is None:
        default = get_config_dir() / "config.yaml"
        if default.exists():
            config_path = default

    if config_path is not None:
        path = Path(config_path)
        if path.exists():
            with open(path) as f:
                yaml_data = yaml.safe_load(f) or {}

    # YAML values are init kwargs, so they take precedence over env vars
    return Settings(**yaml_data)
