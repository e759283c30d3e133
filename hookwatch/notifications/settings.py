"""Per-channel notification settings, persisted as JSON in the data dir."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from hookwatch.utils.logging import get_logger

log = get_logger(__name__)

SETTINGS_FILE = "notification_settings.json"


class EmailSettings(BaseModel):
    enabled: bool = False
    address: str = ""


class SmsSettings(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    enabled: bool = False
    phone_number: str = Field(default="", alias="phoneNumber")


class TelegramSettings(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    enabled: bool = False
    chat_id: str = Field(default="", alias="chatId")


class NotificationSettings(BaseModel):
    """Missing keys fall back to defaults, so files written before a channel existed still load."""

    enabled: bool = False
    email: EmailSettings = Field(default_factory=EmailSettings)
    sms: SmsSettings = Field(default_factory=SmsSettings)
    telegram: TelegramSettings = Field(default_factory=TelegramSettings)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class NotificationSettingsStore:
    def __init__(self, path: Path) -> None:
        self._path = path
        self._settings = self._load()

    @property
    def settings(self) -> NotificationSettings:
        return self._settings

    def _load(self) -> NotificationSettings:
        if not self._path.exists():
            return NotificationSettings()
        try:
            data = json.loads(self._path.read_text())
            return NotificationSettings.model_validate(data)
        except (OSError, ValueError, ValidationError):
            log.exception("notification_settings_load_failed", path=str(self._path))
            return NotificationSettings()

    def _save(self) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps(self._settings.to_dict(), indent=2))
        except OSError:
            log.exception("notification_settings_save_failed", path=str(self._path))

    def _replace(self, settings: NotificationSettings) -> NotificationSettings:
        self._settings = settings
        self._save()
        return settings

    def update(self, **fields: Any) -> NotificationSettings:
        merged = {**self._settings.to_dict(), **fields}
        return self._replace(NotificationSettings.model_validate(merged))

    def update_email(self, address: str, enabled: bool) -> NotificationSettings:
        return self._replace(
            self._settings.model_copy(
                update={"email": EmailSettings(address=address, enabled=enabled)}
            )
        )

    def update_sms(self, phone_number: str, enabled: bool) -> NotificationSettings:
        return self._replace(
            self._settings.model_copy(
                update={"sms": SmsSettings(phone_number=phone_number, enabled=enabled)}
            )
        )

    def update_telegram(self, chat_id: str, enabled: bool) -> NotificationSettings:
        return self._replace(
            self._settings.model_copy(
                update={"telegram": TelegramSettings(chat_id=chat_id, enabled=enabled)}
            )
        )

    def toggle(self, enabled: bool) -> NotificationSettings:
        return self._replace(self._settings.model_copy(update={"enabled": enabled}))
