"""Filter language for the record store.

A deliberately small predicate builder: compare a column to a value,
combine predicates with ``&`` / ``|`` / ``~``, and order by a column.
Values are always bound as parameters, column names are quoted.

    from appsupport.db.expressions import Column

    name = Column("name")
    score = Column("score")
    predicate = (name == "A") & (score >= 1.0)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

from appsupport.db.schema import ROWID, quote_identifier


class Predicate:
    """A boolean SQL expression with its bound parameters."""

    def __init__(self, sql: str, params: Iterable[Any] = ()):
        self.sql = sql
        self.params: tuple[Any, ...] = tuple(params)

    def __and__(self, other: "Predicate") -> "Predicate":
        return and_(self, other)

    def __or__(self, other: "Predicate") -> "Predicate":
        return or_(self, other)

    def __invert__(self) -> "Predicate":
        return Predicate(f"NOT ({self.sql})", self.params)

    def __repr__(self) -> str:
        return f"Predicate({self.sql!r}, {self.params!r})"


@dataclass(frozen=True)
class Ordering:
    column: str
    descending: bool = False

    @property
    def sql(self) -> str:
        return f"{quote_identifier(self.column)} {'DESC' if self.descending else 'ASC'}"


class Column:
    """Reference to a column by name; comparisons produce predicates."""

    __hash__ = object.__hash__

    def __init__(self, name: str):
        self.name = name

    @property
    def _sql(self) -> str:
        return quote_identifier(self.name)

    def _compare(self, op: str, value: Any) -> Predicate:
        return Predicate(f"{self._sql} {op} ?", (value,))

    def __eq__(self, value: Any) -> Predicate:  # type: ignore[override]
        if value is None:
            return self.is_null()
        return self._compare("=", value)

    def __ne__(self, value: Any) -> Predicate:  # type: ignore[override]
        if value is None:
            return self.is_not_null()
        return self._compare("!=", value)

    def __lt__(self, value: Any) -> Predicate:
        return self._compare("<", value)

    def __le__(self, value: Any) -> Predicate:
        return self._compare("<=", value)

    def __gt__(self, value: Any) -> Predicate:
        return self._compare(">", value)

    def __ge__(self, value: Any) -> Predicate:
        return self._compare(">=", value)

    def like(self, pattern: str) -> Predicate:
        return self._compare("LIKE", pattern)

    def in_(self, values: Iterable[Any]) -> Predicate:
        values = list(values)
        if not values:
            return Predicate("0")
        marks = ", ".join("?" for _ in values)
        return Predicate(f"{self._sql} IN ({marks})", values)

    def between(self, low: Any, high: Any) -> Predicate:
        return Predicate(f"{self._sql} BETWEEN ? AND ?", (low, high))

    def is_null(self) -> Predicate:
        return Predicate(f"{self._sql} IS NULL")

    def is_not_null(self) -> Predicate:
        return Predicate(f"{self._sql} IS NOT NULL")

    def asc(self) -> Ordering:
        return Ordering(self.name)

    def desc(self) -> Ordering:
        return Ordering(self.name, descending=True)

    def __repr__(self) -> str:
        return f"Column({self.name!r})"


def and_(*predicates: Predicate) -> Predicate:
    if not predicates:
        raise ValueError("and_() requires at least one predicate")
    sql = " AND ".join(f"({p.sql})" for p in predicates)
    return Predicate(sql, [param for p in predicates for param in p.params])


def or_(*predicates: Predicate) -> Predicate:
    if not predicates:
        raise ValueError("or_() requires at least one predicate")
    sql = " OR ".join(f"({p.sql})" for p in predicates)
    return Predicate(sql, [param for p in predicates for param in p.params])


rowid_column = Column(ROWID)
