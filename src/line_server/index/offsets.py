import hashlib
import json
from pathlib import Path
from typing import List, Optional

from line_server.index.models import OffsetTable
from line_server.store.base import CacheStore

LINE_OFFSETS_PREFIX = "line_offsets_block_"
NEXT_BLOCK_KEY = "next_line_offsets_block"
END_BLOCK_KEY = "last_line_offsets_block"
CHUNK_LOCK_KEY = "chunk_lock"


def namespace_for(file_path: Path) -> str:
    """Stable key prefix for one backing file, derived from its resolved path."""
    resolved = str(Path(file_path).resolve())
    digest = hashlib.md5(resolved.encode("utf-8")).hexdigest()
    return f"lines:{digest[:16]}"


def _decode_int(raw: Optional[bytes]) -> Optional[int]:
    if raw is None:
        return None
    return int(raw.decode("ascii"))


class OffsetIndexStore:
    """Chunk offset tables, the build frontier and the end marker for one file."""

    def __init__(self, store: CacheStore, namespace: str, chunk_size: int) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self.store = store
        self.namespace = namespace
        self.chunk_size = chunk_size

    def key(self, name: str) -> str:
        return f"{self.namespace}:{name}"

    def get_chunk_offsets(self, chunk_index: int) -> Optional[OffsetTable]:
        raw = self.store.get(self.key(f"{LINE_OFFSETS_PREFIX}{chunk_index}"))
        if raw is None:
            return None
        offsets = [int(value) for value in json.loads(raw.decode("utf-8"))]
        return OffsetTable(chunk_index=chunk_index, offsets=offsets, chunk_size=self.chunk_size)

    def put_chunk_offsets(self, chunk_index: int, offsets: List[int]) -> OffsetTable:
        if len(offsets) > self.chunk_size:
            raise ValueError(
                f"chunk {chunk_index} has {len(offsets)} offsets, more than chunk_size={self.chunk_size}"
            )
        payload = json.dumps(list(offsets), separators=(",", ":")).encode("utf-8")
        self.store.set(self.key(f"{LINE_OFFSETS_PREFIX}{chunk_index}"), payload)
        return OffsetTable(chunk_index=chunk_index, offsets=list(offsets), chunk_size=self.chunk_size)

    def get_frontier(self) -> int:
        return _decode_int(self.store.get(self.key(NEXT_BLOCK_KEY))) or 0

    def set_frontier(self, chunk_index: int) -> None:
        self.store.set(self.key(NEXT_BLOCK_KEY), str(chunk_index).encode("ascii"))

    def get_end_chunk(self) -> Optional[int]:
        return _decode_int(self.store.get(self.key(END_BLOCK_KEY)))

    def set_end_chunk(self, chunk_index: int) -> None:
        self.store.set(self.key(END_BLOCK_KEY), str(chunk_index).encode("ascii"))
