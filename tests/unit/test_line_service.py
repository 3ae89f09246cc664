from __future__ import annotations

from pathlib import Path

import pytest

from line_server.config import Settings
from line_server.errors import InvalidIndex
from line_server.service import LineService, build_line_service, build_store
from line_server.store import CacheStore, MemoryStore, SqliteStore


class ExplodingStore(CacheStore):
    def get(self, key):
        raise AssertionError(f"unexpected get {key}")

    def set(self, key, value, ttl=None):
        raise AssertionError(f"unexpected set {key}")

    def set_if_absent(self, key, value, ttl=None):
        raise AssertionError(f"unexpected set_if_absent {key}")

    def delete(self, key):
        raise AssertionError(f"unexpected delete {key}")


def test_worked_example(make_file, make_service) -> None:
    service = make_service(make_file(["a", "bb", "ccc"]), chunk_size=2)

    assert service.fetch_line(1) == b"bb"
    assert service.fetch_line(0) == b"a"
    assert service.fetch_line(2) == b"ccc"
    assert service.fetch_line(3) is None


def test_negative_index_touches_nothing(make_file) -> None:
    service = LineService(make_file(["a"]), ExplodingStore(), chunk_size=2)

    with pytest.raises(InvalidIndex) as excinfo:
        service.fetch_line(-5)
    assert excinfo.value.index == -5
    assert isinstance(excinfo.value, ValueError)


@pytest.mark.parametrize("chunk_size", [1, 2, 5, 1000])
def test_every_line_matches_file_content(make_file, make_service, chunk_size: int) -> None:
    lines = ["", "alpha", "  spaced  ", "ünïcödé", "", "last"]
    service = make_service(make_file(lines), chunk_size=chunk_size)

    for index, expected in reversed(list(enumerate(lines))):
        assert service.fetch_line(index) == expected.encode("utf-8")
    assert service.fetch_line(len(lines)) is None


def test_exact_multiple_boundary(make_file, make_service) -> None:
    service = make_service(make_file(["a", "b", "c", "d"]), chunk_size=2)

    assert service.fetch_line(3) == b"d"
    assert service.fetch_line(4) is None
    assert service.index_store.get_chunk_offsets(1).offsets == [4, 6]


def test_repeated_fetches_are_served_from_content_cache(make_file, make_service) -> None:
    path = make_file(["one", "two", "three"])
    content_cache = MemoryStore()
    service = make_service(path, chunk_size=2, content_cache=content_cache)

    assert service.fetch_line(2) == b"three"

    def fail(offset):
        raise AssertionError("reader should not be called on a cache hit")

    service.reader.read_record_at = fail
    assert service.fetch_line(2) == b"three"
    assert service.fetch_line(2) == b"three"


def test_content_cache_is_separate_from_index_store(make_file, make_service) -> None:
    store = MemoryStore()
    content_cache = MemoryStore()
    service = make_service(make_file(["one", "two"]), chunk_size=2, store=store, content_cache=content_cache)

    service.fetch_line(1)

    line_key = f"{service.namespace}:line_1"
    assert content_cache.get(line_key) == b"two"
    assert store.get(line_key) is None


def test_not_found_is_not_cached(make_file, make_service) -> None:
    content_cache = MemoryStore()
    service = make_service(make_file(["one"]), chunk_size=2, content_cache=content_cache)

    assert service.fetch_line(1) is None
    assert service.fetch_line(500) is None
    assert len(content_cache) == 0


def test_content_ttl_expires_entries(make_file, clock) -> None:
    content_cache = MemoryStore(clock=clock)
    service = LineService(
        make_file(["one", "two"]),
        MemoryStore(),
        content_cache=content_cache,
        chunk_size=2,
        content_ttl=60,
    )
    service.fetch_line(0)
    key = f"{service.namespace}:line_0"
    assert content_cache.get(key) == b"one"

    clock.advance(61)
    assert content_cache.get(key) is None
    assert service.fetch_line(0) == b"one"


def test_two_files_share_one_store(make_file, make_service) -> None:
    store = MemoryStore()
    first = make_service(make_file(["a1", "a2", "a3"], name="a.txt"), store=store)
    second = make_service(make_file(["b1"], name="b.txt"), store=store)

    assert first.fetch_line(2) == b"a3"
    assert second.fetch_line(0) == b"b1"
    assert second.fetch_line(2) is None
    assert first.fetch_line(0) == b"a1"


def test_status_reports_progress(make_file, make_service) -> None:
    service = make_service(make_file(["a", "b", "c", "d", "e"]), chunk_size=2)

    before = service.status()
    assert before["frontier"] == 0
    assert before["end_chunk"] is None
    assert before["total_lines"] is None
    assert before["building_chunk"] is None

    service.fetch_line(99)
    after = service.status()
    assert after["frontier"] == 3
    assert after["end_chunk"] == 2
    assert after["total_lines"] == 5
    assert after["chunk_size"] == 2


def test_fetch_offset(make_file, make_service) -> None:
    service = make_service(make_file(["a", "bb", "ccc"]), chunk_size=2)

    assert service.fetch_offset(2) == 5
    assert service.fetch_offset(3) is None
    with pytest.raises(InvalidIndex):
        service.fetch_offset(-1)


def test_build_line_service_from_settings(make_file, tmp_path: Path) -> None:
    path = make_file(["x", "y"])
    memory = build_line_service(Settings(file_path=path, chunk_size=1, store_backend="memory"))
    assert isinstance(memory.store, MemoryStore)
    assert memory.content_cache is not memory.store
    assert memory.fetch_line(1) == b"y"

    sqlite = build_line_service(
        Settings(file_path=path, chunk_size=1, store_path=tmp_path / "store.sqlite")
    )
    assert isinstance(sqlite.store, SqliteStore)
    assert sqlite.content_cache is sqlite.store
    assert sqlite.fetch_line(0) == b"x"
    sqlite.store.close()


def test_build_store_rejects_unknown_backend() -> None:
    with pytest.raises(ValueError):
        build_store(Settings(store_backend="redis"))


def test_missing_file_path_setting() -> None:
    with pytest.raises(ValueError):
        build_line_service(Settings(file_path=None, store_backend="memory"))


def test_backend_name_is_case_insensitive(make_file) -> None:
    service = build_line_service(
        Settings(file_path=make_file(["x"]), store_backend=" Memory ", content_cache_size=5)
    )

    assert isinstance(service.store, MemoryStore)
    assert service.content_cache is not service.store
    assert service.content_cache.max_entries == 5
