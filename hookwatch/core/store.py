"""Capped webhook event repositories: in-memory and SQLite."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from pathlib import Path

import aiosqlite

from hookwatch.config import StoreConfig
from hookwatch.utils.logging import get_logger
from hookwatch.webhooks.models import WebhookEvent

log = get_logger(__name__)

DEFAULT_MAX_EVENTS = 100


class EventRepository(ABC):
    """CRUD contract for received webhook events, newest first."""

    def __init__(self, max_events: int = DEFAULT_MAX_EVENTS) -> None:
        self.max_events = max_events

    async def start(self) -> None:
        return None

    async def stop(self) -> None:
        return None

    @abstractmethod
    async def list_events(self) -> list[WebhookEvent]: ...

    @abstractmethod
    async def add(self, event: WebhookEvent) -> None: ...

    @abstractmethod
    async def get(self, event_id: str) -> WebhookEvent | None: ...

    @abstractmethod
    async def clear(self) -> int:
        """Remove every event. Returns the number removed."""
        ...

    @abstractmethod
    async def count(self) -> int: ...


class InMemoryEventRepository(EventRepository):
    """Process-local list; contents are lost on restart."""

    def __init__(self, max_events: int = DEFAULT_MAX_EVENTS) -> None:
        super().__init__(max_events)
        self._events: list[WebhookEvent] = []

    async def list_events(self) -> list[WebhookEvent]:
        return list(self._events)

    async def add(self, event: WebhookEvent) -> None:
        self._events = [event, *self._events][: self.max_events]

    async def get(self, event_id: str) -> WebhookEvent | None:
        for event in self._events:
            if event.id == event_id:
                return event
        return None

    async def clear(self) -> int:
        count = len(self._events)
        self._events = []
        return count

    async def count(self) -> int:
        return len(self._events)


_SCHEMA = """
CREATE TABLE IF NOT EXISTS events (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    id TEXT NOT NULL UNIQUE,
    timestamp TEXT NOT NULL,
    method TEXT NOT NULL,
    headers TEXT NOT NULL,
    query TEXT NOT NULL,
    body TEXT,
    path TEXT NOT NULL
);
"""

_COLUMNS = "id, timestamp, method, headers, query, body, path"


def _row_to_event(row: tuple) -> WebhookEvent:
    return WebhookEvent(
        id=row[0],
        timestamp=row[1],
        method=row[2],
        headers=json.loads(row[3]),
        query=json.loads(row[4]),
        body=json.loads(row[5]) if row[5] is not None else None,
        path=row[6],
    )


class SqliteEventRepository(EventRepository):
    """Same contract as the in-memory store, persisted with aiosqlite."""

    def __init__(self, db_path: Path, max_events: int = DEFAULT_MAX_EVENTS) -> None:
        super().__init__(max_events)
        self._db_path = db_path
        self._db: aiosqlite.Connection | None = None

    async def start(self) -> None:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._db = await aiosqlite.connect(str(self._db_path))
        await self._db.executescript(_SCHEMA)
        await self._db.commit()

    async def stop(self) -> None:
        if self._db:
            await self._db.close()
            self._db = None

    async def list_events(self) -> list[WebhookEvent]:
        assert self._db is not None
        cursor = await self._db.execute(
            f"SELECT {_COLUMNS} FROM events ORDER BY seq DESC LIMIT ?",
            (self.max_events,),
        )
        rows = await cursor.fetchall()
        return [_row_to_event(row) for row in rows]

    async def add(self, event: WebhookEvent) -> None:
        assert self._db is not None
        await self._db.execute(
            f"INSERT INTO events ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)",
            (
                event.id,
                event.timestamp,
                event.method,
                json.dumps(event.headers),
                json.dumps(event.query),
                json.dumps(event.body) if event.body is not None else None,
                event.path,
            ),
        )
        # Drop everything older than the newest max_events rows
        await self._db.execute(
            "DELETE FROM events WHERE seq NOT IN "
            "(SELECT seq FROM events ORDER BY seq DESC LIMIT ?)",
            (self.max_events,),
        )
        await self._db.commit()

    async def get(self, event_id: str) -> WebhookEvent | None:
        assert self._db is not None
        cursor = await self._db.execute(
            f"SELECT {_COLUMNS} FROM events WHERE id = ?",
            (event_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return _row_to_event(row)

    async def clear(self) -> int:
        assert self._db is not None
        cursor = await self._db.execute("DELETE FROM events")
        await self._db.commit()
        return cursor.rowcount

    async def count(self) -> int:
        assert self._db is not None
        cursor = await self._db.execute("SELECT COUNT(*) FROM events")
        row = await cursor.fetchone()
        return row[0] if row else 0


def create_repository(config: StoreConfig, data_dir: Path) -> EventRepository:
    if config.backend == "memory":
        return InMemoryEventRepository(config.max_events)
    if config.backend == "sqlite":
        log.info("event_store_sqlite", path=str(data_dir / config.db_file))
        return SqliteEventRepository(data_dir / config.db_file, config.max_events)
    raise ValueError(f"Unknown store backend: {config.backend}")
