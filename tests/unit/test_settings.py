from __future__ import annotations

from pathlib import Path

import pytest

from line_server.config import DEFAULT_CHUNK_SIZE, Settings

ENV_VARS = [
    "FILE_PATH",
    "FILE_READER_CHUNK_SIZE",
    "LINE_SERVER_STORE",
    "LINE_SERVER_STORE_PATH",
    "LINE_SERVER_LOCK_TTL",
    "LINE_SERVER_BACKOFF",
    "LINE_SERVER_CONTENT_TTL",
    "LINE_SERVER_CONTENT_CACHE_SIZE",
    "LINE_SERVER_LOG_LEVEL",
    "LINE_SERVER_PREWARM",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults(clean_env) -> None:
    config = Settings.from_env()

    assert config.file_path is None
    assert config.chunk_size == DEFAULT_CHUNK_SIZE == 1000
    assert config.store_backend == "sqlite"
    assert config.content_ttl == 7 * 24 * 60 * 60
    assert config.prewarm_on_startup is False
    assert config.log_level == "INFO"


def test_reads_environment(clean_env, tmp_path: Path) -> None:
    clean_env.setenv("FILE_PATH", str(tmp_path / "big.txt"))
    clean_env.setenv("FILE_READER_CHUNK_SIZE", "250")
    clean_env.setenv("LINE_SERVER_STORE", "Memory")
    clean_env.setenv("LINE_SERVER_STORE_PATH", str(tmp_path / "s.sqlite"))
    clean_env.setenv("LINE_SERVER_LOCK_TTL", "12.5")
    clean_env.setenv("LINE_SERVER_BACKOFF", "0.5")
    clean_env.setenv("LINE_SERVER_CONTENT_TTL", "0")
    clean_env.setenv("LINE_SERVER_CONTENT_CACHE_SIZE", "10")
    clean_env.setenv("LINE_SERVER_LOG_LEVEL", "debug")
    clean_env.setenv("LINE_SERVER_PREWARM", "yes")

    config = Settings.from_env()

    assert config.file_path == tmp_path / "big.txt"
    assert config.chunk_size == 250
    assert config.store_backend == "memory"
    assert config.store_path == tmp_path / "s.sqlite"
    assert config.lock_ttl == 12.5
    assert config.backoff == 0.5
    assert config.content_ttl is None
    assert config.content_cache_size == 10
    assert config.log_level == "DEBUG"
    assert config.prewarm_on_startup is True


def test_invalid_numbers_raise(clean_env) -> None:
    clean_env.setenv("FILE_READER_CHUNK_SIZE", "lots")
    with pytest.raises(ValueError, match="FILE_READER_CHUNK_SIZE"):
        Settings.from_env()


def test_require_file_path(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="FILE_PATH"):
        Settings().require_file_path()
    assert Settings(file_path=tmp_path).require_file_path() == tmp_path
