"""Column descriptors derived from record types, and the DDL built from them."""

from __future__ import annotations

import inspect
import logging
import typing
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Sequence

from appsupport.db.kinds import ColumnKind, classify, default_sql, sql_type

logger = logging.getLogger(__name__)

ROWID = "rowid"

@dataclass(frozen=True)
class ColumnDescriptor:
    """One persisted field: name, storage kind and primary-key flag."""

    name: str
    kind: ColumnKind
    is_primary_key: bool = False

    def get(self, record: Any) -> Any:
        return getattr(record, self.name, None)

    def set(self, record: Any, value: Any) -> None:
        setattr(record, self.name, value)

    def definition(self) -> str:
        if self.is_primary_key:
            return f"{quote_identifier(self.name)} INTEGER PRIMARY KEY AUTOINCREMENT"
        return (
            f"{quote_identifier(self.name)} {sql_type(self.kind)}"
            f" DEFAULT {default_sql(self.kind)}"
        )

ROWID_COLUMN = ColumnDescriptor(ROWID, ColumnKind.INT, is_primary_key=True)

def quote_identifier(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


# -- reflection ----------------------------------------------------------------

def _is_classvar(hint: Any) -> bool:
    return hint is typing.ClassVar or typing.get_origin(hint) is typing.ClassVar

@lru_cache(maxsize=None)
def _columns_for(record_type: type) -> tuple[ColumnDescriptor, ...]:
    hints = typing.get_type_hints(record_type)
    ignored = set(getattr(record_type, "ignored_fields", ())) - {ROWID}

    columns = [ROWID_COLUMN]
    seen = {ROWID}
    # Own fields first, then each base in MRO order.
    for klass in record_type.__mro__:
        if klass is object:
            continue
        for name in inspect.get_annotations(klass):
            if name in seen or name in ignored:
                continue
            hint = hints.get(name)
            if hint is None or _is_classvar(hint):
                continue
            seen.add(name)
            kind = classify(hint)
            if kind is ColumnKind.UNSUPPORTED:
                logger.debug(f"Table:{record_type.__name__}, skip unsupported field: {name}")
                continue
            columns.append(ColumnDescriptor(name, kind))
    return tuple(columns)

def reflect_columns(record: Any) -> list[ColumnDescriptor]:
    """
    Ordered column descriptors for a record instance or record type.

    ``rowid`` always comes first.  Ignored and unsupported fields are left
    out; the result depends only on the type, never on field values.
    """
    record_type = record if isinstance(record, type) else type(record)
    return list(_columns_for(record_type))


# -- DDL -----------------------------------------------------------------------

def create_table_sql(table: str, columns: Sequence[ColumnDescriptor]) -> str:
    body = ",\n    ".join(c.definition() for c in columns)
    return f"CREATE TABLE IF NOT EXISTS {quote_identifier(table)} (\n    {body}\n)"

def add_column_sql(table: str, column: ColumnDescriptor) -> str:
    return f"ALTER TABLE {quote_identifier(table)} ADD COLUMN {column.definition()}"

def drop_table_sql(table: str) -> str:
    return f"DROP TABLE IF EXISTS {quote_identifier(table)}"
