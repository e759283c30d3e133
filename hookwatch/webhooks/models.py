"""Webhook event models."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision, e.g. 2025-01-01T00:00:00.000Z."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class WebhookEvent:
    id: str
    timestamp: str
    method: str
    headers: dict[str, str] = field(default_factory=dict)
    query: dict[str, str] = field(default_factory=dict)
    body: Any = None
    path: str = ""

    @classmethod
    def create(
        cls,
        method: str,
        path: str,
        headers: dict[str, str] | None = None,
        query: dict[str, str] | None = None,
        body: Any = None,
    ) -> WebhookEvent:
        return cls(
            id=str(uuid4()),
            timestamp=utc_timestamp(),
            method=method,
            headers=dict(headers or {}),
            query=dict(query or {}),
            body=body,
            path=path,
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> WebhookEvent:
        return cls(
            id=str(data["id"]),
            timestamp=str(data["timestamp"]),
            method=data.get("method", "POST"),
            headers=dict(data.get("headers") or {}),
            query=dict(data.get("query") or {}),
            body=data.get("body"),
            path=data.get("path", ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @property
    def sub_events(self) -> list[Any]:
        """The payload's ``events`` list, or an empty list for other bodies."""
        if isinstance(self.body, dict) and isinstance(self.body.get("events"), list):
            return self.body["events"]
        return []


@dataclass
class ValidationResult:
    valid: bool
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"valid": self.valid, "errors": list(self.errors)}


@dataclass
class NotificationMessage:
    title: str
    message: str
    resource_address: str | None = None

    @property
    def text(self) -> str:
        return f"{self.title}\n{self.message}"
