"""Exception taxonomy shared by the record store and the API client."""

from __future__ import annotations

from typing import Optional


class AppSupportError(Exception):
    """Base class for every error raised by appsupport."""


# -- persistence ---------------------------------------------------------------

class ConnectionUnavailable(AppSupportError):
    """No open database handle."""


class SchemaError(AppSupportError):
    """Creating or altering a table failed."""


class WriteError(AppSupportError):
    """An insert, update or delete failed."""


class DecodeError(AppSupportError):
    """A row, dictionary or response payload could not be decoded."""


# -- network -------------------------------------------------------------------

class TransportError(AppSupportError):
    """The request never produced a usable response."""


class BusinessError(AppSupportError):
    """The server answered with a non-zero envelope code."""

    def __init__(self, code: int, message: str, url: Optional[str] = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.url = url

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


class AuthExpired(BusinessError):
    """The server rejected the access token; a refresh is required."""
