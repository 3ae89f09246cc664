"""Key/value cache stores shared by the offset index and the content cache."""

from line_server.store.base import CacheStore
from line_server.store.memory import MemoryStore
from line_server.store.sqlite import SqliteStore

__all__ = ["CacheStore", "MemoryStore", "SqliteStore"]
