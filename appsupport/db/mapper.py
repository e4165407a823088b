"""Conversion between record values and SQLite rows."""

from __future__ import annotations

from typing import Any, Mapping, Sequence

from appsupport.db.kinds import decode_value, encode_value
from appsupport.db.schema import ColumnDescriptor, reflect_columns


def to_write_set(record: Any) -> list[tuple[str, Any]]:
    """Encoded ``(column, value)`` pairs for insert/update, rowid excluded."""
    return [
        (column.name, encode_value(column.kind, column.get(record)))
        for column in reflect_columns(record)
        if not column.is_primary_key
    ]


def from_row(row: Mapping[str, Any], columns: Sequence[ColumnDescriptor]) -> dict[str, Any]:
    """
    Decode a fetched row into a ``{column: value}`` mapping.

    A NULL decodes to ``None`` for optional kinds and to the zero value for
    required kinds.  Columns the row does not carry are left out so the
    record's own defaults apply when the mapping is decoded into a record.
    """
    result: dict[str, Any] = {}
    for column in columns:
        if column.name not in row:
            continue
        result[column.name] = decode_value(column.kind, row[column.name])
    return result
