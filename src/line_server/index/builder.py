"""
Lazy, chunked construction of the byte-offset index.

Chunks are built by a single sequential scan that resumes where the previous
scan stopped (the build frontier). Only the holder of the build lock scans;
everyone else polls the store with a fixed backoff until their chunk shows up.
"""

import logging
import time
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from line_server.index.lock import BuildLock
from line_server.index.models import OffsetTable
from line_server.index.offsets import OffsetIndexStore

logger = logging.getLogger(__name__)


class OffsetIndexBuilder:
    def __init__(
        self,
        file_path: Path,
        index_store: OffsetIndexStore,
        lock: BuildLock,
        backoff: float = 0.1,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if backoff < 0:
            raise ValueError("backoff must be non-negative")
        self.file_path = Path(file_path)
        self.index_store = index_store
        self.lock = lock
        self.backoff = backoff
        self._sleep = sleep

    @property
    def chunk_size(self) -> int:
        return self.index_store.chunk_size

    def chunk_for(self, record_index: int) -> int:
        return record_index // self.chunk_size

    def ensure_chunk_built(self, target_chunk: int) -> Optional[OffsetTable]:
        """
        Return the offset table of `target_chunk`, building it if needed.
        Returns None when the file ends before that chunk.
        """
        if target_chunk < 0:
            raise ValueError(f"target_chunk must be non-negative, got {target_chunk}")
        while True:
            table = self.index_store.get_chunk_offsets(target_chunk)
            if table is not None:
                return table
            if self._past_end(target_chunk):
                return None
            with self.lock.hold(target_chunk) as acquired:
                if acquired:
                    self._build(target_chunk)
                    continue
            logger.debug("Waiting %.3fs for chunk %d of %s", self.backoff, target_chunk, self.file_path)
            self._sleep(self.backoff)

    def _past_end(self, target_chunk: int) -> bool:
        end_chunk = self.index_store.get_end_chunk()
        return end_chunk is not None and target_chunk > end_chunk

    def _build(self, target_chunk: int) -> None:
        # Another builder may have finished between our miss and our acquire.
        if self.index_store.get_chunk_offsets(target_chunk) is not None:
            return
        if self._past_end(target_chunk):
            return
        start_chunk, start_offset = self._resume_point(target_chunk)
        logger.info(
            "Indexing %s: chunks %d..%d from byte %d",
            self.file_path,
            start_chunk,
            target_chunk,
            start_offset,
        )
        started = time.perf_counter()
        built = self._scan(start_chunk, start_offset, target_chunk)
        logger.info(
            "Indexed %d chunk(s) of %s in %.2fs (frontier=%d)",
            built,
            self.file_path,
            time.perf_counter() - started,
            self.index_store.get_frontier(),
        )

    def _resume_point(self, target_chunk: int) -> Tuple[int, int]:
        frontier = self.index_store.get_frontier()
        if frontier == 0:
            return 0, 0
        if frontier > target_chunk:
            logger.warning(
                "Chunk %d of %s is missing below frontier %d; rescanning from the start",
                target_chunk,
                self.file_path,
                frontier,
            )
            return 0, 0
        previous = self.index_store.get_chunk_offsets(frontier - 1)
        if previous is None or not previous.offsets:
            logger.warning(
                "Chunk %d of %s is missing; rescanning from the start",
                frontier - 1,
                self.file_path,
            )
            return 0, 0
        return frontier, previous.offsets[-1]

    def _scan(self, start_chunk: int, start_offset: int, target_chunk: int) -> int:
        built = 0
        with self.file_path.open("rb") as f:
            f.seek(start_offset)
            if start_chunk > 0:
                # start_offset is the last record of the previous chunk.
                f.readline()
            for chunk_index in range(start_chunk, target_chunk + 1):
                offsets, reached_eof = self._read_chunk(f)
                table = self.index_store.put_chunk_offsets(chunk_index, offsets)
                if reached_eof:
                    self.index_store.set_end_chunk(chunk_index)
                self._advance_frontier(chunk_index + 1)
                built += 1
                if reached_eof:
                    logger.info(
                        "Reached end of %s in chunk %d (%d record(s)%s)",
                        self.file_path,
                        chunk_index,
                        len(table.offsets),
                        ", short" if table.is_short else "",
                    )
                    break
                if chunk_index < target_chunk:
                    self.lock.refresh(chunk_index + 1)
        return built

    def _read_chunk(self, f) -> Tuple[List[int], bool]:
        offsets: List[int] = []
        while len(offsets) < self.chunk_size:
            position = f.tell()
            if not f.readline():
                return offsets, True
            offsets.append(position)
        return offsets, False

    def _advance_frontier(self, chunk_index: int) -> None:
        if chunk_index > self.index_store.get_frontier():
            self.index_store.set_frontier(chunk_index)
