"""Unit tests for the record mapper and record store."""

from __future__ import annotations

import tempfile
import threading
import unittest
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from appsupport.db.database import Database
from appsupport.db.expressions import Column, rowid_column
from appsupport.db.mapper import from_row, to_write_set
from appsupport.db.record import Record
from appsupport.db.schema import reflect_columns
from appsupport.db.store import RecordStore
from appsupport.errors import DecodeError


# ---------------------------------------------------------------------------
# Sample records
# ---------------------------------------------------------------------------

@dataclass
class Score(Record):
    name: str = ""
    score: float = 0.0


@dataclass
class ScoreWithLevel(Record):
    """A later revision of Score that added a field."""
    name: str = ""
    score: float = 0.0
    level: int = 0

    @classmethod
    def table_name(cls) -> str:
        return "Score"


@dataclass
class Attachment(Record):
    title: str = ""
    payload: bytes = b""
    checksum: Optional[int] = None
    pinned: bool = False
    caption: Optional[str] = None


@dataclass
class Note(Record):
    body: Optional[str]


@dataclass
class Nickname(Record):
    nickname: Optional[str] = "anon"
    visits: Optional[int] = 1


name = Column("name")
score = Column("score")


def _make_db() -> Database:
    tmp = tempfile.NamedTemporaryFile(suffix=".db", delete=False)
    tmp.close()
    return Database(path=Path(tmp.name))


# ===========================================================================
# 1. Mapper
# ===========================================================================

class TestMapper(unittest.TestCase):
    def test_write_set_excludes_rowid(self):
        pairs = to_write_set(Score(rowid=9, name="A", score=1.5))
        self.assertEqual(pairs, [("name", "A"), ("score", 1.5)])

    def test_write_set_coerces(self):
        record = Attachment(title="t", payload=bytearray(b"ab"), checksum=None)
        self.assertEqual(
            to_write_set(record),
            [("title", "t"), ("payload", b"ab"), ("checksum", None),
             ("pinned", False), ("caption", None)],
        )

    def test_from_row_decodes_nulls(self):
        row = {"rowid": 3, "title": "x", "payload": b"", "checksum": None,
               "pinned": 1, "caption": None, "legacy": "ignored"}
        decoded = from_row(row, reflect_columns(Attachment))
        self.assertEqual(
            decoded,
            {"rowid": 3, "title": "x", "payload": b"", "checksum": None,
             "pinned": True, "caption": None},
        )
        self.assertEqual(Attachment.from_dict(decoded).checksum, None)

    def test_from_row_leaves_out_missing_columns(self):
        decoded = from_row({"rowid": 3, "title": "x"}, reflect_columns(Attachment))
        self.assertEqual(decoded, {"rowid": 3, "title": "x"})
        self.assertEqual(Attachment.from_dict(decoded).payload, b"")

    def test_from_dict_rejects_missing_required_field(self):
        with self.assertRaises(DecodeError):
            Note.from_dict({"rowid": 1})


# ===========================================================================
# 2. Store
# ===========================================================================

class TestRecordStore(unittest.TestCase):
    def setUp(self):
        self.db = _make_db()
        self.store = RecordStore(self.db)

    def tearDown(self):
        self.db.close()

    def _statements(self) -> list[str]:
        statements: list[str] = []
        self.db.connection().set_trace_callback(statements.append)
        return statements

    def test_insert_filter_last_delete_scenario(self):
        a = Score(name="A", score=1.5)
        b = Score(name="B", score=2.5)
        self.assertEqual(self.store.insert(a), 1)
        self.assertEqual(self.store.insert(b), 2)
        self.assertEqual(a.rowid, 1)
        self.assertEqual(b.rowid, 2)

        self.assertEqual(self.store.last(Score).name, "B")
        self.assertEqual(self.store.first(Score, rowid_column == 1), Score(rowid=1, name="A", score=1.5))

        self.assertTrue(self.store.delete_where(Score, rowid_column == 1))
        self.assertIsNone(self.store.first(Score, rowid_column == 1))

    def test_rowids_are_not_reused(self):
        first, second = Score(name="A"), Score(name="B")
        self.store.insert(first)
        self.store.insert(second)
        self.store.delete(second)
        self.assertEqual(self.store.insert(Score(name="C")), 3)

    def test_round_trip_all_kinds(self):
        record = Attachment(title="doc", payload=b"\x00\x01", checksum=-5, pinned=True, caption=None)
        self.store.insert(record)
        loaded = self.store.first(Attachment, rowid_column == record.rowid)
        self.assertEqual(loaded, record)

    def test_stored_null_wins_over_field_default(self):
        record = Nickname(nickname=None, visits=None)
        self.store.insert(record)
        loaded = self.store.first(Nickname, rowid_column == record.rowid)
        self.assertIsNone(loaded.nickname)
        self.assertIsNone(loaded.visits)
        self.assertEqual(loaded, record)

    def test_rollback_in_another_thread_keeps_committed_insert(self):
        self.store.insert(Score(name="first"))
        entered = threading.Event()
        release = threading.Event()

        def failing_writer():
            try:
                with self.db.transaction() as conn:
                    conn.execute('INSERT INTO "Score" ("name") VALUES (?)', ("doomed",))
                    entered.set()
                    release.wait(5)
                    raise RuntimeError("abort")
            except RuntimeError:
                pass

        writer = threading.Thread(target=failing_writer, daemon=True)
        writer.start()
        self.assertTrue(entered.wait(5))

        results: list = []
        other = threading.Thread(
            target=lambda: results.append(self.store.insert(Score(name="other-thread"))),
            daemon=True,
        )
        other.start()
        other.join(0.2)
        self.assertTrue(other.is_alive())

        release.set()
        writer.join(5)
        other.join(5)

        other_rowid = results[0]
        self.assertIsNotNone(other_rowid)
        self.assertEqual(self.store.first(Score, rowid_column == other_rowid).name, "other-thread")
        self.assertEqual(self.store.count(Score), 2)
        self.assertNotEqual(self.store.insert(Score(name="later")), other_rowid)

    def test_update_requires_rowid(self):
        statements = self._statements()
        self.assertFalse(self.store.update(Score(name="ghost")))
        self.assertEqual(statements, [])

    def test_update_overwrites_row(self):
        record = Score(name="A", score=1.0)
        self.store.insert(record)
        record.score = 9.5
        self.assertTrue(self.store.update(record))
        self.assertEqual(self.store.first(Score, name == "A").score, 9.5)

    def test_update_where(self):
        self.store.insert_batch([Score(name="A", score=1), Score(name="B", score=2), Score(name="C", score=3)])
        self.assertTrue(self.store.update_where(Score, score >= 2, name="high"))
        names = [s.name for s in self.store.filter(Score, order_by=rowid_column)]
        self.assertEqual(names, ["A", "high", "high"])

    def test_update_where_unknown_column(self):
        self.assertFalse(self.store.update_where(Score, name == "A", colour="red"))

    def test_filter_ordering_and_empty(self):
        self.store.insert_batch([Score(name="A", score=2), Score(name="B", score=3), Score(name="C", score=1)])
        ordered = self.store.filter(Score, order_by=score.desc())
        self.assertEqual([s.name for s in ordered], ["B", "A", "C"])
        self.assertEqual([s.name for s in self.store.filter(Score, (name == "A") | (name == "C"))], ["A", "C"])
        self.assertEqual(self.store.filter(Score, name == "nobody"), [])
        self.assertEqual(self.store.count(Score, score > 1), 2)

    def test_insert_replacing(self):
        self.store.insert(Score(name="A", score=1))
        replacement = Score(name="A", score=5)
        self.assertEqual(self.store.insert_replacing(replacement, name == "A"), 2)
        rows = self.store.filter(Score, name == "A")
        self.assertEqual(rows, [replacement])

    def test_insert_batch_assigns_rowids(self):
        records = [Score(name=n) for n in ("A", "B", "C")]
        self.assertTrue(self.store.insert_batch(records))
        self.assertEqual([r.rowid for r in records], [1, 2, 3])

    def test_insert_batch_with_predicate_deletes_first(self):
        self.store.insert(Score(name="stale"))
        self.assertTrue(self.store.insert_batch([Score(name="fresh")], predicate=name == "stale"))
        self.assertEqual([s.name for s in self.store.filter(Score)], ["fresh"])

    def test_insert_batch_empty_reports_failure(self):
        self.assertFalse(self.store.insert_batch([]))

    def test_insert_batch_is_atomic(self):
        self.store.tables.prepare("Score", reflect_columns(Score))
        self.db.execute(
            """CREATE TRIGGER reject_boom BEFORE INSERT ON "Score"
               WHEN NEW.name = 'boom'
               BEGIN SELECT RAISE(ABORT, 'boom rejected'); END"""
        )
        records = [Score(name="ok1"), Score(name="boom"), Score(name="ok2")]

        self.assertFalse(self.store.insert_batch(records))

        self.assertEqual(self.store.count(Score), 0)
        self.assertEqual([r.rowid for r in records], [0, 0, 0])

    def test_clear_keeps_table_and_drop_removes_it(self):
        self.store.insert(Score(name="A"))
        self.assertTrue(self.store.clear(Score))
        self.assertEqual(self.store.filter(Score), [])
        self.assertIn("Score", self.store.tables.created_tables)

        self.assertTrue(self.store.drop(Score))
        self.assertNotIn("Score", self.store.tables.created_tables)
        self.assertEqual(self.store.tables.table_columns("Score"), [])

    def test_schema_migration_through_store(self):
        self.store.insert(Score(name="A", score=1.5))
        newer = ScoreWithLevel(name="B", score=2.0, level=4)
        self.assertEqual(self.store.insert(newer), 2)

        old_row = self.store.first(ScoreWithLevel, rowid_column == 1)
        self.assertEqual(old_row, ScoreWithLevel(rowid=1, name="A", score=1.5, level=0))
        self.assertEqual(self.store.last(Score), Score(rowid=2, name="B", score=2.0))

    def test_decode_failure_is_absent_result(self):
        self.store.insert(Score(name="A", score=1.0))
        self.db.execute('UPDATE "Score" SET "score" = ?', ("not a number",))
        self.assertIsNone(self.store.filter(Score))
        self.assertIsNone(self.store.last(Score))


class TestRecordStoreWithoutConnection(unittest.TestCase):
    def setUp(self):
        tmp = tempfile.NamedTemporaryFile(delete=False)
        tmp.close()
        self.store = RecordStore(Database(path=Path(tmp.name) / "nested" / "x.db"))

    def test_operations_degrade_to_no_data(self):
        record = Score(name="A")
        self.assertIsNone(self.store.insert(record))
        self.assertEqual(record.rowid, 0)
        self.assertFalse(self.store.insert_batch([Score(name="B")]))
        self.assertIsNone(self.store.filter(Score))
        self.assertIsNone(self.store.last(Score))
        self.assertFalse(self.store.update(Score(rowid=1, name="A")))
        self.assertFalse(self.store.delete(Score(rowid=1)))
        self.assertFalse(self.store.clear(Score))


if __name__ == "__main__":
    unittest.main()
