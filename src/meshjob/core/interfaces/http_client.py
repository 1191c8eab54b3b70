# meshjob/core/interfaces/http_client.py
from abc import ABC, abstractmethod
from typing import Any, Dict, TypedDict


class HttpResult(TypedDict):
    """One answered request. `body` is the decoded JSON value, or the raw
    text when the payload is not JSON."""

    status: int
    reason: str
    headers: Dict[str, str]
    body: Any


class HttpClientPort(ABC):
    """Outbound HTTP seam used by the provider gateway.

    HTTP error codes are returned, never raised. Implementations raise
    TransportError only when no answer was received at all, and
    ConnectTransportError when the request provably never left the client.
    Used as an async context manager that owns the underlying session.
    """

    @abstractmethod
    async def __aenter__(self) -> "HttpClientPort":
        pass

    @abstractmethod
    async def __aexit__(self, exc_type, exc_val, exc_tb):
        pass

    @abstractmethod
    async def get(
        self,
        url: str,
        params: Dict[str, str] | None = None,
        headers: Dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> HttpResult:
        """GET `url` with optional query params. `timeout` is a total in seconds."""

    @abstractmethod
    async def post(
        self,
        url: str,
        json: Dict[str, Any] | None,
        headers: Dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> HttpResult:
        """POST a JSON body to `url`."""

    @abstractmethod
    async def close(self) -> None:
        pass
