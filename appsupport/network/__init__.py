"""API client with envelope decoding and token-refresh coalescing."""

from appsupport.network.api import Endpoint
from appsupport.network.client import ApiClient
from appsupport.network.coalescer import CoalescerState, RequestCoalescer
from appsupport.network.response import ApiResponse
from appsupport.network.tokens import TokenInfo, TokenStore

__all__ = [
    "ApiClient",
    "ApiResponse",
    "CoalescerState",
    "Endpoint",
    "RequestCoalescer",
    "TokenInfo",
    "TokenStore",
]
