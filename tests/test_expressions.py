"""Unit tests for the filter language and Record helpers."""

from __future__ import annotations

import tempfile
import unittest
from dataclasses import dataclass
from pathlib import Path

from appsupport.db.database import Database
from appsupport.db.expressions import Column, Ordering, and_, or_, rowid_column
from appsupport.db.record import Record
from appsupport.db.schema import reflect_columns
from appsupport.db.store import RecordStore
from appsupport.db.table_manager import TableManager
from appsupport.errors import SchemaError


@dataclass
class City(Record):
    name: str = ""
    population: int = 0


name = Column("name")
population = Column("population")


class TestPredicates(unittest.TestCase):
    def test_comparisons_bind_values(self):
        predicate = population >= 10
        self.assertEqual(predicate.sql, '"population" >= ?')
        self.assertEqual(predicate.params, (10,))

    def test_none_becomes_null_check(self):
        self.assertEqual((name == None).sql, '"name" IS NULL')  # noqa: E711
        self.assertEqual((name != None).sql, '"name" IS NOT NULL')  # noqa: E711

    def test_combinators(self):
        predicate = (name == "A") & ~(population < 5)
        self.assertEqual(predicate.sql, '("name" = ?) AND (NOT ("population" < ?))')
        self.assertEqual(predicate.params, ("A", 5))
        either = or_(name.like("B%"), population.between(1, 3))
        self.assertEqual(either.params, ("B%", 1, 3))

    def test_empty_combinators_rejected(self):
        with self.assertRaises(ValueError):
            and_()
        with self.assertRaises(ValueError):
            or_()

    def test_in_list(self):
        self.assertEqual(name.in_(["a", "b"]).sql, '"name" IN (?, ?)')
        self.assertEqual(name.in_([]).sql, "0")

    def test_identifiers_are_quoted(self):
        self.assertEqual((Column('we"ird') == 1).sql, '"we""ird" = ?')

    def test_columns_are_hashable(self):
        labels = {name: "Name", population: "Population"}
        self.assertEqual(labels[name], "Name")
        self.assertEqual(len({name, population, name}), 2)

    def test_ordering(self):
        self.assertEqual(rowid_column.desc(), Ordering("rowid", descending=True))
        self.assertEqual(population.asc().sql, '"population" ASC')


class TestFilterLanguageAgainstStore(unittest.TestCase):
    def setUp(self):
        tmp = tempfile.NamedTemporaryFile(suffix=".db", delete=False)
        tmp.close()
        self.db = Database(path=Path(tmp.name))
        self.store = RecordStore(self.db)
        self.store.insert_batch([
            City(name="Oslo", population=700),
            City(name="Bergen", population=290),
            City(name="Tromso", population=77),
        ])

    def tearDown(self):
        self.db.close()

    def _names(self, predicate, **kwargs) -> list[str]:
        return [c.name for c in self.store.filter(City, predicate, **kwargs)]

    def test_queries(self):
        self.assertEqual(self._names(name.in_(["Oslo", "Tromso"])), ["Oslo", "Tromso"])
        self.assertEqual(self._names(name.like("B%")), ["Bergen"])
        self.assertEqual(self._names(population.between(100, 500)), ["Bergen"])
        self.assertEqual(self._names(~(name == "Oslo"), order_by=name), ["Bergen", "Tromso"])
        self.assertEqual(self._names(None, order_by=[population.desc()], limit=2), ["Oslo", "Bergen"])
        self.assertEqual(self._names(name.in_([])), [])


class TestRecordHelpers(unittest.TestCase):
    def test_to_dict_and_persisted_flag(self):
        city = City(name="Oslo", population=700)
        self.assertFalse(city.is_persisted)
        self.assertEqual(city.to_dict(), {"rowid": 0, "name": "Oslo", "population": 700})
        city.rowid = 4
        self.assertTrue(city.is_persisted)

    def test_from_dict_ignores_unknown_keys(self):
        city = City.from_dict({"rowid": 2, "name": "Oslo", "legacy": 1})
        self.assertEqual(city, City(rowid=2, name="Oslo"))


class TestTableManagerRequire(unittest.TestCase):
    def test_require_raises_when_unusable(self):
        tmp = tempfile.NamedTemporaryFile(delete=False)
        tmp.close()
        tables = TableManager(Database(path=Path(tmp.name) / "nested" / "x.db"))
        with self.assertRaises(SchemaError):
            tables.require("City", reflect_columns(City))


if __name__ == "__main__":
    unittest.main()
