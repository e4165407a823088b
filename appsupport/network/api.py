"""Endpoint descriptions: what to send, independent of how it is sent."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass(frozen=True)
class Endpoint:
    """One API call: method, URL, headers and parameters.

    ``url`` may be relative; the client joins it to its base URL.
    GET/DELETE parameters travel in the query string, everything else in
    the body (form-encoded unless ``json_body`` is set).
    """

    method: str
    url: str
    params: dict[str, Any] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)
    json_body: bool = False
    name: Optional[str] = None

    @classmethod
    def get(cls, url: str, **kwargs: Any) -> "Endpoint":
        return cls("GET", url, **kwargs)

    @classmethod
    def post(cls, url: str, **kwargs: Any) -> "Endpoint":
        return cls("POST", url, **kwargs)

    @property
    def params_in_query(self) -> bool:
        return self.method.upper() in ("GET", "DELETE", "HEAD")

    def __str__(self) -> str:
        return self.name or f"{self.method.upper()} {self.url}"
