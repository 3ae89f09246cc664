from abc import ABC, abstractmethod
from typing import Optional


class CacheStore(ABC):
    """
    Minimal key/value contract the index relies on.
    Values are raw bytes; `ttl` is in seconds and `None` means no expiry.
    `set_if_absent` must be atomic across every process sharing the store.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[bytes]:
        pass

    @abstractmethod
    def set(self, key: str, value: bytes, ttl: Optional[float] = None) -> None:
        pass

    @abstractmethod
    def set_if_absent(self, key: str, value: bytes, ttl: Optional[float] = None) -> bool:
        """Store `value` only if `key` is missing or expired. Returns True on write."""
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        pass

    def purge_expired(self) -> int:
        """Drop expired entries. Returns how many were removed."""
        return 0

    def close(self) -> None:
        pass
