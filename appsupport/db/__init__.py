"""Record store: SQLite tables derived from Record types."""

from appsupport.db.database import Database, get_db, reset_db
from appsupport.db.expressions import Column, Ordering, Predicate, and_, or_, rowid_column
from appsupport.db.kinds import ColumnKind, classify, decode_value, encode_value
from appsupport.db.record import Record
from appsupport.db.schema import ColumnDescriptor, reflect_columns
from appsupport.db.store import RecordStore
from appsupport.db.table_manager import TableManager

__all__ = [
    "Column",
    "ColumnDescriptor",
    "ColumnKind",
    "Database",
    "Ordering",
    "Predicate",
    "Record",
    "RecordStore",
    "TableManager",
    "and_",
    "classify",
    "decode_value",
    "encode_value",
    "get_db",
    "or_",
    "reflect_columns",
    "reset_db",
    "rowid_column",
]
