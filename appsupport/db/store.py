"""Record store: insert, update, delete and query records of any Record type.

Every operation is fail-soft: schema and write failures are logged and
reported through the return value (``None`` / ``False``), never raised.
Callers check results, not exceptions.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import Any, Optional, Sequence, Type, TypeVar, Union

from appsupport.db.database import Database, get_db
from appsupport.db.expressions import Column, Ordering, Predicate, rowid_column
from appsupport.db.kinds import encode_value
from appsupport.db.mapper import from_row, to_write_set
from appsupport.db.record import Record
from appsupport.db.schema import ROWID, ColumnDescriptor, quote_identifier, reflect_columns
from appsupport.db.table_manager import TableManager
from appsupport.errors import AppSupportError, DecodeError, WriteError

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=Record)

OrderBy = Union[Ordering, Column, Sequence[Union[Ordering, Column]], None]


def _orderings(order_by: OrderBy) -> list[Ordering]:
    if order_by is None:
        return []
    if isinstance(order_by, (Ordering, Column)):
        order_by = [order_by]
    return [o.asc() if isinstance(o, Column) else o for o in order_by]


class RecordStore:
    """Persistence operations for Record subclasses, one table per class."""

    def __init__(self, db: Optional[Database] = None, tables: Optional[TableManager] = None):
        self._db = db or get_db()
        self._tables = tables or TableManager(self._db)

    @property
    def tables(self) -> TableManager:
        return self._tables

    # -- helpers ---------------------------------------------------------------

    def _prepare(self, record_type: Type[Record]) -> Optional[tuple[str, list[ColumnDescriptor]]]:
        name = record_type.table_name()
        columns = reflect_columns(record_type)
        if not self._tables.prepare(name, columns):
            return None
        return name, columns

    @staticmethod
    def _insert_row(conn: sqlite3.Connection, name: str, record: Record) -> int:
        write_set = to_write_set(record)
        table = quote_identifier(name)
        if write_set:
            columns = ", ".join(quote_identifier(column) for column, _ in write_set)
            marks = ", ".join("?" for _ in write_set)
            sql = f"INSERT INTO {table} ({columns}) VALUES ({marks})"
        else:
            sql = f"INSERT INTO {table} DEFAULT VALUES"
        cursor = conn.execute(sql, [value for _, value in write_set])
        if cursor.lastrowid is None:
            raise WriteError(f"Table:{name}, no rowid assigned")
        return cursor.lastrowid

    def _delete(self, name: str, predicate: Optional[Predicate]) -> bool:
        sql = f"DELETE FROM {quote_identifier(name)}"
        params: tuple[Any, ...] = ()
        if predicate is not None:
            sql += f" WHERE {predicate.sql}"
            params = predicate.params
        try:
            self._db.execute(sql, params)
        except (sqlite3.Error, AppSupportError) as e:
            logger.error(f"Table:{name}, delete error: {e}")
            return False
        logger.debug(f"Table:{name}, delete success")
        return True

    def _select(
        self,
        record_type: Type[R],
        predicate: Optional[Predicate] = None,
        order_by: OrderBy = None,
        limit: Optional[int] = None,
    ) -> Optional[list[R]]:
        prepared = self._prepare(record_type)
        if prepared is None:
            return None
        name, columns = prepared

        sql = f"SELECT * FROM {quote_identifier(name)}"
        params: tuple[Any, ...] = ()
        if predicate is not None:
            sql += f" WHERE {predicate.sql}"
            params = predicate.params
        orderings = _orderings(order_by)
        if orderings:
            sql += " ORDER BY " + ", ".join(o.sql for o in orderings)
        if limit is not None:
            sql += " LIMIT ?"
            params += (limit,)

        try:
            rows = self._db.fetchall(sql, params)
        except (sqlite3.Error, AppSupportError) as e:
            logger.error(f"Table:{name}, query error: {e}")
            return None
        try:
            records = [record_type.from_dict(from_row(row, columns)) for row in rows]
        except (DecodeError, TypeError, ValueError) as e:
            logger.error(f"Table:{name}, decode error: {e}")
            return None
        logger.debug(f"Table:{name}, query success")
        return records

    # -- insert ----------------------------------------------------------------

    def insert(self, record: Record) -> Optional[int]:
        """Insert ``record`` and write the assigned rowid back into it."""
        prepared = self._prepare(type(record))
        if prepared is None:
            return None
        name, _ = prepared
        try:
            with self._db.transaction() as conn:
                new_rowid = self._insert_row(conn, name, record)
        except (sqlite3.Error, AppSupportError) as e:
            logger.error(f"Table:{name}, insert error: {e}")
            return None
        record.rowid = new_rowid
        logger.debug(f"Table:{name}, insert success")
        return new_rowid

    def insert_replacing(self, record: Record, predicate: Predicate) -> Optional[int]:
        """Delete rows matching ``predicate``, then insert ``record``.

        A failed delete is logged and the insert still runs.
        """
        prepared = self._prepare(type(record))
        if prepared is None:
            return None
        self._delete(prepared[0], predicate)
        return self.insert(record)

    def insert_batch(
        self,
        records: Sequence[Record],
        predicate: Optional[Predicate] = None,
    ) -> bool:
        """
        Insert every record in one transaction.

        With ``predicate``, matching rows of the first record's table are
        deleted beforehand (logged, non-blocking).  Rowids are written back
        only when every insert succeeded; otherwise nothing is committed and
        ``False`` is returned.
        """
        if not records:
            return False

        record_types = list(dict.fromkeys(type(r) for r in records))
        for record_type in record_types:
            if self._prepare(record_type) is None:
                return False

        if predicate is not None:
            self._delete(records[0].table_name(), predicate)

        rowids: list[int] = []
        name = records[0].table_name()
        try:
            with self._db.transaction() as conn:
                for record in records:
                    name = record.table_name()
                    rowids.append(self._insert_row(conn, name, record))
        except (sqlite3.Error, AppSupportError) as e:
            logger.error(f"Table:{name}, insert error: {e}")
            return False

        for record, new_rowid in zip(records, rowids):
            record.rowid = new_rowid
        logger.debug(f"Table:{name}, insert success ({len(rowids)} rows)")
        return True

    # -- update ----------------------------------------------------------------

    def update(self, record: Record) -> bool:
        """Overwrite all columns of the row with ``record.rowid``."""
        name = record.table_name()
        if record.rowid <= 0:
            logger.warning(f"Table:{name}, update skipped: rowid not set")
            return False
        if self._prepare(type(record)) is None:
            return False

        write_set = to_write_set(record)
        if not write_set:
            return True
        assignments = ", ".join(f"{quote_identifier(column)} = ?" for column, _ in write_set)
        params = [value for _, value in write_set] + [record.rowid]
        try:
            self._db.execute(
                f"UPDATE {quote_identifier(name)} SET {assignments} WHERE {quote_identifier(ROWID)} = ?",
                params,
            )
        except (sqlite3.Error, AppSupportError) as e:
            logger.error(f"Table:{name}, update error: {e}")
            return False
        logger.debug(f"Table:{name}, update success")
        return True

    def update_where(self, record_type: Type[Record], predicate: Predicate, **values: Any) -> bool:
        """Overwrite the given columns on every row matching ``predicate``."""
        prepared = self._prepare(record_type)
        if prepared is None:
            return False
        name, columns = prepared
        if not values:
            return True

        by_name = {c.name: c for c in columns if not c.is_primary_key}
        unknown = [key for key in values if key not in by_name]
        if unknown:
            logger.error(f"Table:{name}, update error: unknown columns {unknown}")
            return False

        assignments = ", ".join(f"{quote_identifier(key)} = ?" for key in values)
        params = [encode_value(by_name[key].kind, value) for key, value in values.items()]
        params.extend(predicate.params)
        try:
            self._db.execute(
                f"UPDATE {quote_identifier(name)} SET {assignments} WHERE {predicate.sql}",
                params,
            )
        except (sqlite3.Error, AppSupportError) as e:
            logger.error(f"Table:{name}, update error: {e}")
            return False
        logger.debug(f"Table:{name}, update success")
        return True

    # -- delete ----------------------------------------------------------------

    def delete(self, record: Record) -> bool:
        return self.delete_where(type(record), rowid_column == record.rowid)

    def delete_where(self, record_type: Type[Record], predicate: Predicate) -> bool:
        prepared = self._prepare(record_type)
        if prepared is None:
            return False
        return self._delete(prepared[0], predicate)

    # -- query -----------------------------------------------------------------

    def first(
        self,
        record_type: Type[R],
        predicate: Optional[Predicate] = None,
        order_by: OrderBy = None,
    ) -> Optional[R]:
        """First matching record, or None when nothing matches or the query failed."""
        records = self._select(record_type, predicate, order_by, limit=1)
        return records[0] if records else None

    def filter(
        self,
        record_type: Type[R],
        predicate: Optional[Predicate] = None,
        order_by: OrderBy = None,
        limit: Optional[int] = None,
    ) -> Optional[list[R]]:
        """All matching records in storage order unless ``order_by`` is given.

        Returns None if the query failed and an empty list if nothing matched.
        """
        return self._select(record_type, predicate, order_by, limit)

    def last(self, record_type: Type[R]) -> Optional[R]:
        """The record with the highest rowid."""
        return self.first(record_type, order_by=rowid_column.desc())

    def count(self, record_type: Type[Record], predicate: Optional[Predicate] = None) -> Optional[int]:
        prepared = self._prepare(record_type)
        if prepared is None:
            return None
        name = prepared[0]
        sql = f"SELECT COUNT(*) AS n FROM {quote_identifier(name)}"
        params: tuple[Any, ...] = ()
        if predicate is not None:
            sql += f" WHERE {predicate.sql}"
            params = predicate.params
        try:
            row = self._db.fetchone(sql, params)
        except (sqlite3.Error, AppSupportError) as e:
            logger.error(f"Table:{name}, query error: {e}")
            return None
        return row["n"] if row else 0

    # -- table maintenance -----------------------------------------------------

    def clear(self, record_type: Type[Record]) -> bool:
        """Delete every row, keep the table."""
        prepared = self._prepare(record_type)
        if prepared is None:
            return False
        return self._delete(prepared[0], None)

    def drop(self, record_type: Type[Record]) -> bool:
        """Remove the table and forget that it was created."""
        return self._tables.drop_table(record_type.table_name())
