"""Core modules for hookwatch."""

from hookwatch.core.auth import TokenStore
from hookwatch.core.store import EventRepository, InMemoryEventRepository, SqliteEventRepository

__all__ = [
    "TokenStore",
    "EventRepository",
    "InMemoryEventRepository",
    "SqliteEventRepository",
]
