"""Access-token holder with optional JSON-file persistence."""

from __future__ import annotations

import json
import logging
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional

logger = logging.getLogger(__name__)


@dataclass
class TokenInfo:
    """Stores token with expiration metadata."""
    token: str
    expires_at: float = 0.0  # Unix timestamp, 0 = unknown
    refresh_token: Optional[str] = None

    def is_expired(self, buffer_seconds: int = 300) -> bool:
        """Check if token is expired or will expire within buffer."""
        if not self.expires_at:
            return False
        return time.time() >= (self.expires_at - buffer_seconds)

    def to_dict(self) -> dict:
        return {
            "token": self.token,
            "expires_at": self.expires_at,
            "refresh_token": self.refresh_token,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TokenInfo":
        return cls(
            token=data["token"],
            expires_at=data.get("expires_at", 0.0),
            refresh_token=data.get("refresh_token"),
        )

    @classmethod
    def from_refresh_data(
        cls, data: Mapping[str, Any], previous: Optional["TokenInfo"] = None
    ) -> "TokenInfo":
        """Build from a refresh response's ``data`` payload.

        Accepts ``token`` or ``access_token``; ``expires_in`` is relative.
        """
        token = data.get("token") or data.get("access_token")
        if not token:
            raise KeyError("refresh response carries no token")
        expires_in = data.get("expires_in") or data.get("expire")
        return cls(
            token=token,
            expires_at=time.time() + float(expires_in) if expires_in else 0.0,
            refresh_token=data.get("refresh_token")
            or (previous.refresh_token if previous else None),
        )


class TokenStore:
    """Holds the current credentials; optionally mirrors them to a JSON file.

    Usage:
        store = TokenStore(path=Path("data/.tokens.json"))
        store.set(TokenInfo(token="abc", refresh_token="r1"))
        store.access_token  # "abc"
    """

    def __init__(self, path: Optional[Path] = None):
        self._lock = threading.Lock()
        self._path = path
        self._token: Optional[TokenInfo] = None
        self._load()

    # -- persistence -----------------------------------------------------------

    def _load(self) -> None:
        if self._path is None or not self._path.exists():
            return
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                self._token = TokenInfo.from_dict(json.load(f))
        except (json.JSONDecodeError, KeyError, TypeError) as e:
            logger.warning(f"Could not load tokens from {self._path}: {e}")
            self._token = None

    def _save(self) -> None:
        if self._path is None:
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with open(self._path, "w", encoding="utf-8") as f:
            json.dump(self._token.to_dict() if self._token else {}, f, indent=2)

    # -- access ----------------------------------------------------------------

    @property
    def current(self) -> Optional[TokenInfo]:
        return self._token

    @property
    def access_token(self) -> Optional[str]:
        token = self._token
        return token.token if token else None

    @property
    def refresh_token(self) -> Optional[str]:
        token = self._token
        return token.refresh_token if token else None

    def set(self, token: Optional[TokenInfo]) -> None:
        with self._lock:
            self._token = token
            self._save()

    def update_from_refresh(self, data: Mapping[str, Any]) -> TokenInfo:
        """Replace the current token with the one in a refresh payload."""
        with self._lock:
            self._token = TokenInfo.from_refresh_data(data, previous=self._token)
            self._save()
            return self._token

    def clear(self) -> None:
        with self._lock:
            self._token = None
            if self._path is not None and self._path.exists():
                self._path.unlink()
