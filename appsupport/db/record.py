"""Record base type: an application value persisted as one table row."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Any, ClassVar, Mapping, Type, TypeVar

from appsupport.db.schema import reflect_columns
from appsupport.errors import DecodeError

R = TypeVar("R", bound="Record")


@dataclass(kw_only=True)
class Record:
    """
    Base class for persisted records.

    Subclasses are plain dataclasses; the table is named after the class and
    its columns are derived from the annotated fields.  ``rowid`` is assigned
    by the database on insert; zero or negative means "not yet persisted".

    Example::

        @dataclass
        class Score(Record):
            name: str = ""
            score: float = 0.0
            note: Optional[str] = None
            ignored_fields: ClassVar[tuple[str, ...]] = ("scratch",)
    """

    rowid: int = 0

    ignored_fields: ClassVar[tuple[str, ...]] = ()

    @classmethod
    def table_name(cls) -> str:
        return cls.__name__

    @property
    def is_persisted(self) -> bool:
        return self.rowid > 0

    def to_dict(self) -> dict[str, Any]:
        """Persistable fields keyed by column name (rowid included)."""
        return {column.name: column.get(self) for column in reflect_columns(type(self))}

    @classmethod
    def from_dict(cls: Type[R], data: Mapping[str, Any]) -> R:
        """Build a record from a column mapping; unknown keys are ignored.

        Raises:
            DecodeError: if the mapping cannot satisfy the constructor
        """
        accepted = {f.name for f in dataclasses.fields(cls) if f.init}
        kwargs = {key: value for key, value in data.items() if key in accepted}
        try:
            return cls(**kwargs)
        except (TypeError, ValueError) as exc:
            raise DecodeError(f"Cannot decode {cls.__name__}: {exc}") from exc
