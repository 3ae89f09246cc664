import threading
import time
from collections import OrderedDict
from typing import Callable, Optional, Tuple

from line_server.store.base import CacheStore


class MemoryStore(CacheStore):
    """
    In-process store guarded by a single lock.
    With `max_entries` set it evicts the least recently used key once full.
    Only coordinates threads of one process; use SqliteStore across processes.
    """

    def __init__(
        self,
        max_entries: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_entries is not None and max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self.max_entries = max_entries
        self._clock = clock
        self._data: "OrderedDict[str, Tuple[bytes, Optional[float]]]" = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def _expires_at(self, ttl: Optional[float]) -> Optional[float]:
        if ttl is None:
            return None
        return self._clock() + ttl

    def _live(self, key: str) -> Optional[bytes]:
        entry = self._data.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and expires_at <= self._clock():
            del self._data[key]
            return None
        return value

    def _put(self, key: str, value: bytes, ttl: Optional[float]) -> None:
        self._data[key] = (bytes(value), self._expires_at(ttl))
        self._data.move_to_end(key)
        if self.max_entries is not None:
            while len(self._data) > self.max_entries:
                self._data.popitem(last=False)

    def get(self, key: str) -> Optional[bytes]:
        with self._lock:
            value = self._live(key)
            if value is not None:
                self._data.move_to_end(key)
            return value

    def set(self, key: str, value: bytes, ttl: Optional[float] = None) -> None:
        with self._lock:
            self._put(key, value, ttl)

    def set_if_absent(self, key: str, value: bytes, ttl: Optional[float] = None) -> bool:
        with self._lock:
            if self._live(key) is not None:
                return False
            self._put(key, value, ttl)
            return True

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def purge_expired(self) -> int:
        with self._lock:
            now = self._clock()
            expired = [
                key
                for key, (_, expires_at) in self._data.items()
                if expires_at is not None and expires_at <= now
            ]
            for key in expired:
                del self._data[key]
        return len(expired)
