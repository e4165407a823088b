"""Request coalescing around a single in-flight token refresh.

While a refresh runs, every other request waits in a queue instead of
being sent.  When the refresh resolves the queue is drained at once:
on success each waiter replays its own request with the new credentials,
on failure each waiter raises the refresh failure without retrying.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from enum import Enum
from typing import Callable, Optional, Union

from appsupport.config import get_settings
from appsupport.errors import AuthExpired, DecodeError, TransportError
from appsupport.network.api import Endpoint
from appsupport.network.client import ApiClient
from appsupport.network.response import ApiResponse

logger = logging.getLogger(__name__)


class CoalescerState(str, Enum):
    IDLE = "idle"
    REFRESHING = "refreshing"


class _Waiter:
    """A caller parked until the current refresh resolves."""

    def __init__(self) -> None:
        self._event = threading.Event()
        self.error: Optional[BaseException] = None

    def resolve(self, error: Optional[BaseException]) -> None:
        self.error = error
        self._event.set()

    def wait(self, timeout: Optional[float]) -> bool:
        return self._event.wait(timeout)


class RequestCoalescer:
    """
    Funnels concurrent callers through one token refresh at a time.

    Usage:
        client = ApiClient(base_url="https://api.example.com")
        coalescer = RequestCoalescer(
            client,
            refresh_endpoint=lambda: Endpoint.post(
                "/auth/refresh", params={"refresh_token": client.tokens.refresh_token}
            ),
        )
        response = coalescer.request(Endpoint.post("/area/countries", params={"lan": "en"}))
    """

    def __init__(
        self,
        client: ApiClient,
        refresh_endpoint: Union[Endpoint, Callable[[], Endpoint]],
        refresh_timeout: Optional[float] = None,
        on_refreshed: Optional[Callable[[ApiResponse], None]] = None,
    ):
        self._client = client
        self._refresh_endpoint = refresh_endpoint
        self.refresh_timeout = (
            get_settings().REFRESH_TIMEOUT if refresh_timeout is None else refresh_timeout
        )
        self._on_refreshed = on_refreshed
        self._lock = threading.Lock()
        self._state = CoalescerState.IDLE
        self._pending: list[_Waiter] = []

    # -- observation -----------------------------------------------------------

    @property
    def state(self) -> CoalescerState:
        return self._state

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    # -- public API ------------------------------------------------------------

    def request(self, endpoint: Endpoint) -> ApiResponse:
        """Send ``endpoint``, refreshing the token once if the server asks for it."""
        waiter = self._enqueue_if_refreshing()
        if waiter is not None:
            return self._wait_and_replay(endpoint, waiter)
        try:
            return self._client.perform(endpoint)
        except AuthExpired as e:
            logger.info(f"{endpoint} needs a token refresh: {e}")
            return self._refresh_then_retry(endpoint)

    def refresh(self) -> None:
        """Run the refresh call now, or join the one already in flight.

        Raises whatever the refresh call raised.
        """
        waiter = self._begin_refresh()
        if waiter is None:
            self._run_refresh()
            return
        self._await(waiter)

    # -- state transitions -----------------------------------------------------

    def _enqueue_if_refreshing(self) -> Optional[_Waiter]:
        with self._lock:
            if self._state is not CoalescerState.REFRESHING:
                return None
            waiter = _Waiter()
            self._pending.append(waiter)
            return waiter

    def _begin_refresh(self) -> Optional[_Waiter]:
        """Become the refresher (returns None) or queue behind the current one."""
        with self._lock:
            if self._state is CoalescerState.REFRESHING:
                waiter = _Waiter()
                self._pending.append(waiter)
                return waiter
            self._state = CoalescerState.REFRESHING
            return None

    def _run_refresh(self) -> None:
        error: Optional[Exception] = None
        try:
            endpoint = self._refresh_endpoint
            if callable(endpoint):
                endpoint = endpoint()
            response = self._client.perform(endpoint)
            self._store_credentials(response)
        except Exception as e:
            error = e

        with self._lock:
            self._state = CoalescerState.IDLE
            waiters, self._pending = self._pending, []

        if error is None:
            logger.info(f"Token refreshed, replaying {len(waiters)} queued request(s)")
        else:
            logger.error(f"Token refresh failed, failing {len(waiters)} queued request(s): {error}")
        for waiter in waiters:
            waiter.resolve(error)
        if error is not None:
            raise error

    def _store_credentials(self, response: ApiResponse) -> None:
        if self._on_refreshed is not None:
            self._on_refreshed(response)
            return
        if isinstance(response.data, Mapping):
            try:
                self._client.tokens.update_from_refresh(response.data)
            except KeyError as e:
                raise DecodeError(f"Refresh response without token: {e}") from e

    def _refresh_then_retry(self, endpoint: Endpoint) -> ApiResponse:
        waiter = self._begin_refresh()
        if waiter is not None:
            return self._wait_and_replay(endpoint, waiter)
        self._run_refresh()
        return self._client.perform(endpoint)

    def _await(self, waiter: _Waiter) -> None:
        if not waiter.wait(self.refresh_timeout):
            with self._lock:
                abandoned = waiter in self._pending
                if abandoned:
                    self._pending.remove(waiter)
            if abandoned:
                raise TransportError("refresh timeout")
        if waiter.error is not None:
            raise waiter.error

    def _wait_and_replay(self, endpoint: Endpoint, waiter: _Waiter) -> ApiResponse:
        self._await(waiter)
        return self._client.perform(endpoint)
