"""
Thin HTTP client that decodes the API response envelope.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Optional
from urllib.parse import urljoin

import requests

from appsupport.config import get_settings
from appsupport.errors import AuthExpired, BusinessError, TransportError
from appsupport.network.api import Endpoint
from appsupport.network.response import ApiResponse
from appsupport.network.tokens import TokenStore

logger = logging.getLogger(__name__)


class ApiClient:
    """Sends an Endpoint and returns a successful ApiResponse, or raises.

    Raises (from ``perform``):
        TransportError: network failure, HTTP error status, non-JSON body
        DecodeError: body is JSON but not a response envelope
        AuthExpired: envelope code is one of ``auth_expired_codes``
        BusinessError: any other non-zero envelope code
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        tokens: Optional[TokenStore] = None,
        timeout: Optional[float] = None,
        auth_expired_codes: Optional[Iterable[int]] = None,
        session: Optional[requests.Session] = None,
    ):
        settings = get_settings()
        self.base_url = settings.API_BASE_URL if base_url is None else base_url
        self.tokens = tokens or TokenStore(settings.TOKEN_FILE)
        self.timeout = settings.REQUEST_TIMEOUT if timeout is None else timeout
        self.auth_expired_codes = frozenset(
            settings.AUTH_EXPIRED_CODES if auth_expired_codes is None else auth_expired_codes
        )
        self.session = session or requests.Session()
        self.session.headers.setdefault("Cache-Control", "no-cache")

    def _url(self, endpoint: Endpoint) -> str:
        if not self.base_url:
            return endpoint.url
        return urljoin(self.base_url.rstrip("/") + "/", endpoint.url.lstrip("/"))

    def _get_headers(self, endpoint: Endpoint) -> dict[str, str]:
        headers: dict[str, str] = {}
        token = self.tokens.access_token
        if token:
            headers["Authorization"] = f"Bearer {token}"
        headers.update(endpoint.headers)
        return headers

    def _send(self, endpoint: Endpoint) -> requests.Response:
        kwargs: dict[str, Any] = {
            "headers": self._get_headers(endpoint),
            "timeout": self.timeout,
        }
        if endpoint.params_in_query:
            kwargs["params"] = endpoint.params
        elif endpoint.json_body:
            kwargs["json"] = endpoint.params
        else:
            kwargs["data"] = endpoint.params
        return self.session.request(endpoint.method.upper(), self._url(endpoint), **kwargs)

    def perform(self, endpoint: Endpoint) -> ApiResponse:
        url = self._url(endpoint)
        try:
            resp = self._send(endpoint)
            resp.raise_for_status()
            payload = resp.json()
        except requests.exceptions.RequestException as e:
            logger.warning(f"{endpoint} transport error: {e}")
            raise TransportError(f"{endpoint}: {e}") from e
        except ValueError as e:
            raise TransportError(f"{endpoint}: response is not JSON") from e

        response = ApiResponse.from_payload(payload)
        if response.code in self.auth_expired_codes:
            logger.info(f"{endpoint} rejected token (code {response.code})")
            raise AuthExpired(response.code, response.message, url)
        if not response.ok:
            raise BusinessError(response.code, response.message, url)
        return response

    def close(self) -> None:
        self.session.close()


__all__ = ["ApiClient"]
