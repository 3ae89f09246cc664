from __future__ import annotations

from pathlib import Path
from typing import Callable, Iterable, Optional

import pytest

from line_server.service import LineService
from line_server.store import CacheStore, MemoryStore


def _write_lines(path: Path, lines: Iterable[str], trailing_newline: bool = True) -> Path:
    body = "\n".join(lines)
    if trailing_newline and body:
        body += "\n"
    path.write_bytes(body.encode("utf-8"))
    return path


@pytest.fixture
def make_file(tmp_path: Path) -> Callable[..., Path]:
    """Writes lines to a file under tmp_path and returns its path."""

    def factory(lines: Iterable[str], name: str = "data.txt", trailing_newline: bool = True) -> Path:
        return _write_lines(tmp_path / name, lines, trailing_newline=trailing_newline)

    return factory


@pytest.fixture
def make_service() -> Callable[..., LineService]:
    """Builds a LineService over a memory store with a fast backoff."""

    def factory(
        file_path: Path,
        chunk_size: int = 2,
        store: Optional[CacheStore] = None,
        content_cache: Optional[CacheStore] = None,
        lock_ttl: Optional[float] = 30.0,
    ) -> LineService:
        return LineService(
            file_path,
            store if store is not None else MemoryStore(),
            content_cache=content_cache,
            chunk_size=chunk_size,
            lock_ttl=lock_ttl,
            backoff=0.001,
        )

    return factory


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
