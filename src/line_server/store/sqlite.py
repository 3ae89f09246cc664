import logging
import sqlite3
import threading
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator, List, Optional

from line_server.errors import StoreUnavailable
from line_server.store.base import CacheStore

logger = logging.getLogger(__name__)


@contextmanager
def _guard(db_path: Path) -> Iterator[None]:
    try:
        yield
    except sqlite3.Error as exc:
        raise StoreUnavailable(f"SQLite store {db_path} failed: {exc}") from exc


class SqliteStore(CacheStore):
    """
    Key/value store in a single SQLite file, shared by every process on the host.
    Each thread gets its own connection. Expiry uses wall-clock time so that
    separate processes agree on it.
    """

    def __init__(
        self,
        db_path: Path,
        timeout: float = 30.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.db_path = Path(db_path)
        self.timeout = timeout
        self._clock = clock
        self._local = threading.local()
        self._connections: List[sqlite3.Connection] = []
        self._connections_lock = threading.Lock()
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with _guard(self.db_path):
            self._init_db(self._conn())

    def _conn(self) -> sqlite3.Connection:
        conn = getattr(self._local, "conn", None)
        if conn is None:
            conn = sqlite3.connect(
                str(self.db_path),
                timeout=self.timeout,
                isolation_level=None,
                # close() runs on whichever thread shuts the store down.
                check_same_thread=False,
            )
            self._local.conn = conn
            with self._connections_lock:
                self._connections.append(conn)
        return conn

    @staticmethod
    def _init_db(conn: sqlite3.Connection) -> None:
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA synchronous=NORMAL")
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS kv (
                key TEXT PRIMARY KEY,
                value BLOB NOT NULL,
                expires_at REAL
            )
            """
        )

    def _expires_at(self, ttl: Optional[float]) -> Optional[float]:
        if ttl is None:
            return None
        return self._clock() + ttl

    def get(self, key: str) -> Optional[bytes]:
        with _guard(self.db_path):
            row = self._conn().execute(
                "SELECT value, expires_at FROM kv WHERE key = ?", (key,)
            ).fetchone()
        if row is None:
            return None
        value, expires_at = row
        if expires_at is not None and expires_at <= self._clock():
            return None
        return bytes(value)

    def set(self, key: str, value: bytes, ttl: Optional[float] = None) -> None:
        with _guard(self.db_path):
            self._conn().execute(
                "INSERT OR REPLACE INTO kv (key, value, expires_at) VALUES (?, ?, ?)",
                (key, sqlite3.Binary(value), self._expires_at(ttl)),
            )

    def set_if_absent(self, key: str, value: bytes, ttl: Optional[float] = None) -> bool:
        conn = self._conn()
        with _guard(self.db_path):
            # BEGIN IMMEDIATE takes the write lock, so the check and the insert
            # are one step for every connection on this file.
            conn.execute("BEGIN IMMEDIATE")
            try:
                row = conn.execute(
                    "SELECT expires_at FROM kv WHERE key = ?", (key,)
                ).fetchone()
                now = self._clock()
                if row is not None and (row[0] is None or row[0] > now):
                    conn.execute("COMMIT")
                    return False
                conn.execute(
                    "INSERT OR REPLACE INTO kv (key, value, expires_at) VALUES (?, ?, ?)",
                    (key, sqlite3.Binary(value), self._expires_at(ttl)),
                )
                conn.execute("COMMIT")
                return True
            except sqlite3.Error:
                conn.execute("ROLLBACK")
                raise

    def delete(self, key: str) -> None:
        with _guard(self.db_path):
            self._conn().execute("DELETE FROM kv WHERE key = ?", (key,))

    def purge_expired(self) -> int:
        with _guard(self.db_path):
            cur = self._conn().execute(
                "DELETE FROM kv WHERE expires_at IS NOT NULL AND expires_at <= ?",
                (self._clock(),),
            )
        removed = cur.rowcount or 0
        if removed:
            logger.info("Purged %d expired entries from %s", removed, self.db_path)
        return removed

    def close(self) -> None:
        """Close the connections of every thread that used this store."""
        with self._connections_lock:
            connections, self._connections = self._connections, []
        for conn in connections:
            conn.close()
        self._local = threading.local()
