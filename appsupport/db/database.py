"""Core database connection with ACID transaction support."""

from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Generator, Optional, Sequence

from appsupport.errors import ConnectionUnavailable

logger = logging.getLogger(__name__)


class Database:
    """
    SQLite database wrapper with explicit ACID transaction support.

    The connection runs in autocommit mode: single statements commit on
    their own, and ``transaction()`` wraps a block in BEGIN/COMMIT, rolling
    back on failure.  Writers that cannot take the lock within
    ``busy_timeout`` seconds fail instead of blocking.

    One connection is shared by every thread.  Statements are serialized
    by a re-entrant lock, and ``transaction()`` holds that lock from BEGIN
    to COMMIT/ROLLBACK, so other threads wait until the transaction ends
    instead of running inside it.
    """

    def __init__(
        self,
        path: Optional[Path | str] = None,
        busy_timeout: Optional[float] = None,
    ):
        from appsupport.config import get_db_path, get_settings

        settings = get_settings()
        if path is None:
            self.path: Path = get_db_path()
        elif isinstance(path, str):
            self.path = Path(path)
        else:
            self.path = path
        self.busy_timeout = settings.DB_BUSY_TIMEOUT if busy_timeout is None else busy_timeout
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = threading.RLock()
        self._local = threading.local()

    # -- connection lifecycle --------------------------------------------------

    def _ensure_dir(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def connection(self) -> sqlite3.Connection:
        """Return the shared connection, opening it on first use.

        Raises:
            ConnectionUnavailable: if the database file cannot be opened
        """
        with self._lock:
            if self._conn is None:
                try:
                    self._ensure_dir()
                    conn = sqlite3.connect(
                        str(self.path),
                        timeout=self.busy_timeout,
                        isolation_level=None,
                        check_same_thread=False,
                    )
                    conn.row_factory = sqlite3.Row
                    conn.execute("PRAGMA journal_mode = WAL")
                except (sqlite3.Error, OSError) as e:
                    logger.error(f"SQLite connection error: {e}")
                    raise ConnectionUnavailable(f"Cannot open database at {self.path}: {e}") from e
                self._conn = conn
            return self._conn

    def close(self) -> None:
        with self._lock:
            if self._conn:
                self._conn.close()
                self._conn = None

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    # -- transaction helpers ---------------------------------------------------

    @property
    def _depth(self) -> int:
        return getattr(self._local, "depth", 0)

    @contextmanager
    def transaction(self) -> Generator[sqlite3.Connection, None, None]:
        """ACID transaction: commits on success, rolls back on exception.

        Nested use from the thread that opened the transaction joins it.
        Other threads block until it has committed or rolled back.
        """
        with self._lock:
            conn = self.connection()
            if self._depth:
                self._local.depth += 1
                try:
                    yield conn
                finally:
                    self._local.depth -= 1
                return

            conn.execute("BEGIN")
            self._local.depth = 1
            try:
                yield conn
            except Exception:
                conn.execute("ROLLBACK")
                raise
            else:
                conn.execute("COMMIT")
            finally:
                self._local.depth = 0

    # -- low-level query helpers -----------------------------------------------

    def execute(self, sql: str, params: Sequence[Any] = ()) -> sqlite3.Cursor:
        with self._lock:
            return self.connection().execute(sql, tuple(params))

    def fetchone(self, sql: str, params: Sequence[Any] = ()) -> Optional[dict[str, Any]]:
        with self._lock:
            row = self.connection().execute(sql, tuple(params)).fetchone()
        return dict(row) if row else None

    def fetchall(self, sql: str, params: Sequence[Any] = ()) -> list[dict[str, Any]]:
        with self._lock:
            rows = self.connection().execute(sql, tuple(params)).fetchall()
        return [dict(r) for r in rows]


# -- module singleton ----------------------------------------------------------

_default_db: Optional[Database] = None


def get_db(path: Optional[Path] = None) -> Database:
    """Return (and lazily create) the process-wide default Database."""
    global _default_db
    if _default_db is None:
        _default_db = Database(path)
    return _default_db


def reset_db() -> None:
    """Close and discard the default Database (useful in tests)."""
    global _default_db
    if _default_db is not None:
        _default_db.close()
        _default_db = None
