"""appsupport: record store over SQLite and a coalescing API client."""

from appsupport.db import Column, Database, Record, RecordStore, TableManager
from appsupport.errors import (
    AppSupportError,
    AuthExpired,
    BusinessError,
    ConnectionUnavailable,
    DecodeError,
    SchemaError,
    TransportError,
    WriteError,
)
from appsupport.network import ApiClient, ApiResponse, Endpoint, RequestCoalescer, TokenStore

__version__ = "0.1.0"

__all__ = [
    "ApiClient",
    "ApiResponse",
    "AppSupportError",
    "AuthExpired",
    "BusinessError",
    "Column",
    "ConnectionUnavailable",
    "Database",
    "DecodeError",
    "Endpoint",
    "Record",
    "RecordStore",
    "RequestCoalescer",
    "SchemaError",
    "TableManager",
    "TokenStore",
    "TransportError",
    "WriteError",
]
