"""Table creation and additive schema migration for record tables."""

from __future__ import annotations

import logging
import sqlite3
import threading
from typing import Sequence

from appsupport.db.database import Database
from appsupport.db.schema import (
    ColumnDescriptor,
    add_column_sql,
    create_table_sql,
    drop_table_sql,
    quote_identifier,
)
from appsupport.errors import AppSupportError, SchemaError

logger = logging.getLogger(__name__)


class TableManager:
    """
    Keeps record tables in line with their column descriptors.

    Tables are created once per manager (the "created" fact is memoized by
    table name).  Columns are only ever added; existing columns are never
    dropped, renamed or retyped.  Every method logs failures and returns
    ``False`` instead of raising.
    """

    def __init__(self, db: Database):
        self._db = db
        self._created: set[str] = set()
        self._lock = threading.Lock()

    @property
    def created_tables(self) -> frozenset[str]:
        return frozenset(self._created)

    # -- create ----------------------------------------------------------------

    def ensure_table(self, name: str, columns: Sequence[ColumnDescriptor]) -> bool:
        """Create the table if absent; repeated calls issue no statement."""
        with self._lock:
            if name in self._created:
                return True
        try:
            self._db.execute(create_table_sql(name, columns))
        except (sqlite3.Error, AppSupportError) as e:
            logger.error(f"Table:{name}, create error: {e}")
            return False
        with self._lock:
            self._created.add(name)
        return True

    # -- migrate ---------------------------------------------------------------

    def table_columns(self, name: str) -> list[str]:
        """Column names of the live table, in table order (empty if absent)."""
        rows = self._db.fetchall(f"PRAGMA table_info({quote_identifier(name)})")
        return [row["name"] for row in rows]

    def add_missing_columns(self, name: str, columns: Sequence[ColumnDescriptor]) -> bool:
        """Add every descriptor the live table lacks, all-or-nothing."""
        try:
            existing = set(self.table_columns(name))
            missing = [c for c in columns if c.name not in existing]
            if not missing:
                return True
            with self._db.transaction() as conn:
                for column in missing:
                    conn.execute(add_column_sql(name, column))
        except (sqlite3.Error, AppSupportError) as e:
            logger.error(f"Table:{name}, add column error: {e}")
            return False
        for column in missing:
            logger.debug(f"Table:{name}, add column: {column.name}")
        return True

    def prepare(self, name: str, columns: Sequence[ColumnDescriptor]) -> bool:
        """Ensure the table exists and carries every column in ``columns``."""
        return self.ensure_table(name, columns) and self.add_missing_columns(name, columns)

    def require(self, name: str, columns: Sequence[ColumnDescriptor]) -> None:
        """Like ``prepare`` but raises SchemaError on failure."""
        if not self.prepare(name, columns):
            raise SchemaError(f"Table:{name} is not usable")

    # -- drop ------------------------------------------------------------------

    def drop_table(self, name: str) -> bool:
        try:
            self._db.execute(drop_table_sql(name))
        except (sqlite3.Error, AppSupportError) as e:
            logger.error(f"Table:{name}, drop error: {e}")
            return False
        with self._lock:
            self._created.discard(name)
        logger.debug(f"Table:{name}, drop success")
        return True
