"""Column kinds and the coercion policy between Python values and SQLite columns.

Classification looks only at a field's declared type, so a field that is
currently ``None`` still maps to the right kind.  Writes are best-effort:
numeric values go through a string round-trip and anything that does not
parse becomes the kind's zero value (or NULL for optional kinds).
"""

from __future__ import annotations

import types
import typing
from enum import Enum
from typing import Any, Union

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1


class ColumnKind(str, Enum):
    INT = "int"
    OPTIONAL_INT = "optional_int"
    TEXT = "text"
    OPTIONAL_TEXT = "optional_text"
    REAL = "real"
    OPTIONAL_REAL = "optional_real"
    BOOL = "bool"
    OPTIONAL_BOOL = "optional_bool"
    BLOB = "blob"
    OPTIONAL_BLOB = "optional_blob"
    UNSUPPORTED = "unsupported"

    @property
    def is_optional(self) -> bool:
        return self in _OPTIONAL_KINDS

    @property
    def base(self) -> "ColumnKind":
        """The required kind this kind is an optional variant of (or itself)."""
        return _BASE_KIND.get(self, self)


_OPTIONAL_KINDS = frozenset({
    ColumnKind.OPTIONAL_INT,
    ColumnKind.OPTIONAL_TEXT,
    ColumnKind.OPTIONAL_REAL,
    ColumnKind.OPTIONAL_BOOL,
    ColumnKind.OPTIONAL_BLOB,
})

_BASE_KIND = {
    ColumnKind.OPTIONAL_INT: ColumnKind.INT,
    ColumnKind.OPTIONAL_TEXT: ColumnKind.TEXT,
    ColumnKind.OPTIONAL_REAL: ColumnKind.REAL,
    ColumnKind.OPTIONAL_BOOL: ColumnKind.BOOL,
    ColumnKind.OPTIONAL_BLOB: ColumnKind.BLOB,
}

_OPTIONAL_OF = {base: optional for optional, base in _BASE_KIND.items()}

# bool must be tested before int: bool is an int subclass.
_TYPE_FAMILIES: tuple[tuple[tuple[type, ...], ColumnKind], ...] = (
    ((bool,), ColumnKind.BOOL),
    ((int,), ColumnKind.INT),
    ((float,), ColumnKind.REAL),
    ((str,), ColumnKind.TEXT),
    ((bytes, bytearray), ColumnKind.BLOB),
)

_SQL_TYPES = {
    ColumnKind.INT: "INTEGER",
    ColumnKind.TEXT: "TEXT",
    ColumnKind.REAL: "REAL",
    ColumnKind.BOOL: "INTEGER",
    ColumnKind.BLOB: "BLOB",
}

_ZERO_VALUES: dict[ColumnKind, Any] = {
    ColumnKind.INT: 0,
    ColumnKind.TEXT: "",
    ColumnKind.REAL: 0.0,
    ColumnKind.BOOL: False,
    ColumnKind.BLOB: b"",
}

_DEFAULT_SQL = {
    ColumnKind.INT: "0",
    ColumnKind.TEXT: "''",
    ColumnKind.REAL: "0.0",
    ColumnKind.BOOL: "0",
    ColumnKind.BLOB: "X''",
}


# -- classification ------------------------------------------------------------

def _unwrap_optional(annotation: Any) -> tuple[Any, bool]:
    """Return ``(inner, True)`` for ``Optional[X]`` / ``X | None``."""
    origin = typing.get_origin(annotation)
    if origin is Union or origin is types.UnionType:
        args = [a for a in typing.get_args(annotation) if a is not type(None)]
        if len(args) == 1 and len(typing.get_args(annotation)) == 2:
            return args[0], True
    return annotation, False


def classify(annotation: Any) -> ColumnKind:
    """Map a declared field type to its column kind."""
    inner, optional = _unwrap_optional(annotation)
    if typing.get_origin(inner) is not None or not isinstance(inner, type):
        return ColumnKind.UNSUPPORTED
    if issubclass(inner, Enum):
        return ColumnKind.UNSUPPORTED
    for family, kind in _TYPE_FAMILIES:
        if issubclass(inner, family):
            return _OPTIONAL_OF[kind] if optional else kind
    return ColumnKind.UNSUPPORTED


# -- SQL fragments -------------------------------------------------------------

def sql_type(kind: ColumnKind) -> str:
    """Column type declaration, ``NOT NULL`` for required kinds."""
    declared = _SQL_TYPES[kind.base]
    return declared if kind.is_optional else f"{declared} NOT NULL"


def default_sql(kind: ColumnKind) -> str:
    """Literal used as the DEFAULT of a column added to an existing table."""
    if kind.is_optional:
        return "NULL"
    return _DEFAULT_SQL[kind]


def zero_value(kind: ColumnKind) -> Any:
    return None if kind.is_optional else _ZERO_VALUES[kind]


# -- coercion ------------------------------------------------------------------

def _parse_int(value: Any) -> Any:
    try:
        parsed = int(str(value))
    except ValueError:
        return None
    if parsed < INT64_MIN or parsed > INT64_MAX:
        return None
    return parsed


def _parse_real(value: Any) -> Any:
    try:
        return float(str(value))
    except ValueError:
        return None


def encode_value(kind: ColumnKind, value: Any) -> Any:
    """Convert a field value into what gets bound for its column.

    Unparseable numbers fall back to the zero value instead of failing.
    """
    if kind is ColumnKind.UNSUPPORTED:
        raise ValueError("unsupported kinds are never stored")
    if value is None:
        return zero_value(kind)

    base = kind.base
    if base is ColumnKind.INT:
        encoded = _parse_int(value)
    elif base is ColumnKind.REAL:
        encoded = _parse_real(value)
    elif base is ColumnKind.TEXT:
        encoded = value if isinstance(value, str) else None
    elif base is ColumnKind.BOOL:
        encoded = value if isinstance(value, bool) else None
    else:
        encoded = bytes(value) if isinstance(value, (bytes, bytearray, memoryview)) else None

    if encoded is None:
        return zero_value(kind)
    return encoded


def decode_value(kind: ColumnKind, raw: Any) -> Any:
    """Convert a column value read from SQLite back into a field value."""
    if kind is ColumnKind.UNSUPPORTED:
        raise ValueError("unsupported kinds are never stored")
    if raw is None:
        return zero_value(kind)

    base = kind.base
    if base is ColumnKind.INT:
        return int(raw)
    if base is ColumnKind.REAL:
        return float(raw)
    if base is ColumnKind.TEXT:
        return raw if isinstance(raw, str) else str(raw)
    if base is ColumnKind.BOOL:
        return bool(raw)
    return bytes(raw)
