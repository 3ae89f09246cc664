import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


ROOT_DIR = Path(__file__).resolve().parents[2]
DATA_DIR = ROOT_DIR / "data"

DEFAULT_CHUNK_SIZE = 1000
DEFAULT_CONTENT_TTL = 7 * 24 * 60 * 60


def _load_env() -> None:
    current = Path(__file__).resolve()
    for parent in current.parents:
        env_path = parent / ".env"
        if env_path.exists():
            load_dotenv(env_path)
            break


_load_env()


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc


def _env_flag(name: str) -> bool:
    return (os.getenv(name) or "").strip().lower() in {"1", "true", "yes", "on"}


def _env_path(name: str) -> Optional[Path]:
    raw = os.getenv(name)
    if not raw:
        return None
    return Path(raw)


@dataclass
class Settings:
    """Centralized configuration for the backing file, store and index."""

    file_path: Optional[Path] = None
    chunk_size: int = DEFAULT_CHUNK_SIZE
    store_backend: str = "sqlite"
    store_path: Path = DATA_DIR / "line_server.sqlite"
    lock_ttl: float = 30.0
    backoff: float = 0.1
    content_ttl: Optional[float] = DEFAULT_CONTENT_TTL
    content_cache_size: int = 100_000
    log_level: str = "INFO"
    prewarm_on_startup: bool = False

    @classmethod
    def from_env(cls) -> "Settings":
        content_ttl = _env_float("LINE_SERVER_CONTENT_TTL", DEFAULT_CONTENT_TTL)
        return cls(
            file_path=_env_path("FILE_PATH"),
            chunk_size=_env_int("FILE_READER_CHUNK_SIZE", DEFAULT_CHUNK_SIZE),
            store_backend=(os.getenv("LINE_SERVER_STORE") or "sqlite").strip().lower(),
            store_path=_env_path("LINE_SERVER_STORE_PATH") or DATA_DIR / "line_server.sqlite",
            lock_ttl=_env_float("LINE_SERVER_LOCK_TTL", 30.0),
            backoff=_env_float("LINE_SERVER_BACKOFF", 0.1),
            content_ttl=content_ttl if content_ttl > 0 else None,
            content_cache_size=_env_int("LINE_SERVER_CONTENT_CACHE_SIZE", 100_000),
            log_level=(os.getenv("LINE_SERVER_LOG_LEVEL") or "INFO").upper(),
            prewarm_on_startup=_env_flag("LINE_SERVER_PREWARM"),
        )

    def require_file_path(self) -> Path:
        if self.file_path is None:
            raise ValueError("FILE_PATH is not set; export it or add it to .env.")
        return Path(self.file_path)


settings = Settings.from_env()


def configure_logging(level: Optional[str] = None) -> None:
    level_name = (level or settings.log_level or "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
