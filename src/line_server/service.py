import logging
from pathlib import Path
from typing import Dict, Optional

from line_server.config import Settings, settings as default_settings
from line_server.errors import InvalidIndex
from line_server.index.builder import OffsetIndexBuilder
from line_server.index.lock import BuildLock
from line_server.index.offsets import CHUNK_LOCK_KEY, OffsetIndexStore, namespace_for
from line_server.reader import RecordReader
from line_server.store.base import CacheStore
from line_server.store.memory import MemoryStore
from line_server.store.sqlite import SqliteStore

logger = logging.getLogger(__name__)

LINE_CACHE_KEY_PREFIX = "line_"


class LineService:
    """
    Fetches lines of a large file by index.

    Content is memoized in `content_cache`; misses resolve the byte offset
    through the chunked index and read the record from disk.
    """

    def __init__(
        self,
        file_path: Path,
        store: CacheStore,
        content_cache: Optional[CacheStore] = None,
        chunk_size: int = 1000,
        lock_ttl: Optional[float] = 30.0,
        backoff: float = 0.1,
        content_ttl: Optional[float] = None,
    ) -> None:
        self.file_path = Path(file_path)
        self.reader = RecordReader(self.file_path)
        self.namespace = namespace_for(self.file_path)
        self.store = store
        self.content_cache = content_cache if content_cache is not None else store
        self.content_ttl = content_ttl
        self.index_store = OffsetIndexStore(store, self.namespace, chunk_size)
        self.lock = BuildLock(store, self.index_store.key(CHUNK_LOCK_KEY), ttl=lock_ttl)
        self.builder = OffsetIndexBuilder(
            self.file_path,
            self.index_store,
            self.lock,
            backoff=backoff,
        )

    @property
    def chunk_size(self) -> int:
        return self.index_store.chunk_size

    def _line_key(self, index: int) -> str:
        return f"{self.namespace}:{LINE_CACHE_KEY_PREFIX}{index}"

    def fetch_line(self, index: int) -> Optional[bytes]:
        """Return line `index` without its newline, or None past the end of the file."""
        if index < 0:
            raise InvalidIndex(index)

        key = self._line_key(index)
        cached = self.content_cache.get(key)
        if cached is not None:
            return cached
        logger.debug("Cache miss for line %d", index)

        offset = self.fetch_offset(index)
        if offset is None:
            return None
        line = self.reader.read_record_at(offset)
        if line is None:
            return None
        self.content_cache.set(key, line, ttl=self.content_ttl)
        return line

    def fetch_offset(self, index: int) -> Optional[int]:
        if index < 0:
            raise InvalidIndex(index)
        table = self.builder.ensure_chunk_built(self.builder.chunk_for(index))
        if table is None:
            return None
        return table.offset_at(index - table.first_index)

    def status(self) -> Dict:
        end_chunk = self.index_store.get_end_chunk()
        total_lines = None
        if end_chunk is not None:
            last = self.index_store.get_chunk_offsets(end_chunk)
            if last is not None:
                total_lines = end_chunk * self.chunk_size + len(last.offsets)
        return {
            "file_path": str(self.file_path),
            "namespace": self.namespace,
            "chunk_size": self.chunk_size,
            "frontier": self.index_store.get_frontier(),
            "end_chunk": end_chunk,
            "total_lines": total_lines,
            "building_chunk": self.lock.holder_chunk(),
        }


def _backend(config: Settings) -> str:
    return (config.store_backend or "sqlite").strip().lower()


def build_store(config: Settings) -> CacheStore:
    backend = _backend(config)
    if backend == "memory":
        return MemoryStore()
    if backend == "sqlite":
        return SqliteStore(config.store_path)
    raise ValueError(f"Unknown store backend: {config.store_backend!r} (expected 'sqlite' or 'memory')")


def build_line_service(config: Optional[Settings] = None) -> LineService:
    config = config or default_settings
    store = build_store(config)
    if _backend(config) == "memory":
        content_cache: CacheStore = MemoryStore(max_entries=config.content_cache_size)
    else:
        content_cache = store
    return LineService(
        config.require_file_path(),
        store,
        content_cache=content_cache,
        chunk_size=config.chunk_size,
        lock_ttl=config.lock_ttl,
        backoff=config.backoff,
        content_ttl=config.content_ttl,
    )
