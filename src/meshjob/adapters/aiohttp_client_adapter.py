# meshjob/adapters/aiohttp_client_adapter.py
import asyncio
import json
from typing import Any, Dict, Optional

import aiohttp

from meshjob.core.exceptions import ConnectTransportError, TransportError
from meshjob.core.interfaces.http_client import HttpClientPort, HttpResult
from meshjob.core.settings import logger


class AioHttpClientAdapter(HttpClientPort):
    """HttpClientPort on a single shared aiohttp session.

    Timeouts: `total_timeout` bounds a whole request unless the caller passes
    its own total; `connect_timeout` always bounds socket connection.
    """

    def __init__(self, total_timeout: float = 30.0, connect_timeout: float = 5.0):
        self._session: Optional[aiohttp.ClientSession] = None
        self.total_timeout = total_timeout
        self.connect_timeout = connect_timeout

    async def __aenter__(self):
        self._session = aiohttp.ClientSession()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
        return False

    async def get(
        self,
        url: str,
        params: Dict[str, str] | None = None,
        headers: Dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> HttpResult:
        return await self._request("GET", url, timeout, params=params, headers=headers)

    async def post(
        self,
        url: str,
        json: Dict[str, Any] | None,
        headers: Dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> HttpResult:
        return await self._request("POST", url, timeout, json=json, headers=headers)

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    def _client_timeout(self, total: float | None) -> aiohttp.ClientTimeout:
        return aiohttp.ClientTimeout(
            total=total if total is not None else self.total_timeout,
            sock_connect=self.connect_timeout,
        )

    async def _request(self, method: str, url: str, timeout: float | None, **kwargs) -> HttpResult:
        if self._session is None:
            raise RuntimeError("HTTP client not initialized. Use 'async with' context manager.")

        try:
            async with self._session.request(
                method, url, timeout=self._client_timeout(timeout), **kwargs
            ) as response:
                return HttpResult(
                    status=response.status,
                    reason=response.reason or "",
                    headers=dict(response.headers),
                    body=await self._decode(response),
                )
        except asyncio.TimeoutError as exc:
            logger.error("[http] %s %s timed out", method, url)
            raise TransportError("The request to the provider timed out", url=url) from exc
        except aiohttp.ClientConnectorError as exc:
            # Subclass of ClientError: must be matched first
            logger.error("[http] %s %s could not connect: %s", method, url, exc)
            raise ConnectTransportError(
                "Could not connect to the provider", url=url, diagnostic=str(exc)
            ) from exc
        except aiohttp.ClientError as exc:
            logger.error("[http] %s %s failed without response: %s", method, url, exc)
            raise TransportError(
                "There was a connection error with the provider", url=url, diagnostic=str(exc)
            ) from exc

    @staticmethod
    async def _decode(response: aiohttp.ClientResponse) -> Any:
        try:
            return await response.json(content_type=None)
        except (json.JSONDecodeError, UnicodeDecodeError):
            text = await response.text(errors="replace")
            logger.debug("[http] non-JSON body status=%s snippet=%r", response.status, text[:200])
            return text
