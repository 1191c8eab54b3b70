"""Thin request layer over the provider's submit and status endpoints.

Turns raw HTTP results into either a JSON object or a domain error:
- non-2xx                -> ProviderError(code, message)
- body not a JSON object -> ProtocolError
- no response            -> TransportError (raised by the HTTP adapter, passed through)
"""

from typing import Any, Dict

from meshjob.core.exceptions import ProtocolError, ProviderError
from meshjob.core.interfaces.http_client import HttpClientPort, HttpResult
from meshjob.core.models.provider import ProviderEndpoint
from meshjob.core.utils.payload import extract_error_message


class ProviderGateway:
    def __init__(self, http_client: HttpClientPort, endpoint: ProviderEndpoint):
        self._http = http_client
        self.endpoint = endpoint

    async def submit(self, reference: str) -> Dict[str, Any]:
        resp = await self._http.post(
            str(self.endpoint.submit_url),
            json={"input_image_url": reference},
            headers=self.endpoint.auth_headers(),
            timeout=self.endpoint.timeout,
        )
        return self._read(resp)

    async def status(self, job_id: str) -> Dict[str, Any]:
        resp = await self._http.get(
            str(self.endpoint.status_url),
            params={"request_id": job_id},
            headers=self.endpoint.auth_headers(),
            timeout=self.endpoint.timeout,
        )
        return self._read(resp, job_id=job_id)

    def _read(self, resp: HttpResult, job_id: str | None = None) -> Dict[str, Any]:
        status = int(resp.get("status") or 0)
        body = resp.get("body")

        if not 200 <= status < 300:
            message = None
            if isinstance(body, dict):
                message = extract_error_message(body.get("error")) or extract_error_message(body.get("message"))
            reason = resp.get("reason") or ""
            raise ProviderError(
                code=status,
                message=message or f"HTTP {status} {reason}".strip(),
                upstream_body=body,
                job_id=job_id,
            )

        if not isinstance(body, dict):
            raise ProtocolError(
                "Provider response is not a JSON object",
                diagnostic=f"body={str(body)[:256]}",
                job_id=job_id,
            )
        return body
