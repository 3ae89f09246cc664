import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from line_server.store.base import CacheStore

logger = logging.getLogger(__name__)


class BuildLock:
    """
    Global lock over index extension, one per backing file.

    Acquisition is a single set-if-absent on the shared store. The stored value
    only records which chunk the holder is building. The TTL frees the lock if
    the holder dies; `hold` deletes it on every normal or error exit.
    """

    def __init__(self, store: CacheStore, key: str, ttl: Optional[float] = 30.0) -> None:
        if ttl is not None and ttl <= 0:
            raise ValueError("ttl must be positive")
        self.store = store
        self.key = key
        self.ttl = ttl

    def try_acquire(self, chunk_index: int = 0) -> bool:
        acquired = self.store.set_if_absent(self.key, str(chunk_index).encode("ascii"), ttl=self.ttl)
        if not acquired:
            logger.debug("Build lock %s is held elsewhere", self.key)
        return acquired

    def refresh(self, chunk_index: int) -> None:
        """Push the expiry forward while the holder is still making progress."""
        self.store.set(self.key, str(chunk_index).encode("ascii"), ttl=self.ttl)

    def release(self) -> None:
        self.store.delete(self.key)

    def holder_chunk(self) -> Optional[int]:
        raw = self.store.get(self.key)
        if raw is None:
            return None
        return int(raw.decode("ascii"))

    @contextmanager
    def hold(self, chunk_index: int = 0) -> Iterator[bool]:
        """Yields whether the lock was acquired; releases it only if it was."""
        acquired = self.try_acquire(chunk_index)
        try:
            yield acquired
        finally:
            if acquired:
                self.release()
