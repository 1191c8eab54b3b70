"""SubmissionNormalizer: validates an image reference, submits it and returns a JobReference.

Stateless: every call is independent, identical references submitted twice
create two jobs.
"""

from __future__ import annotations

import json
import shlex
from typing import Any, Dict, Optional
from urllib.parse import urlsplit

from meshjob.core.config import SubmissionConfig
from meshjob.core.exceptions import (
    ConnectTransportError,
    ProtocolError,
    ProviderError,
    SubmissionError,
    TransportError,
    ValidationError,
)
from meshjob.core.interfaces.retry import RetryPort
from meshjob.core.managers.provider_gateway import ProviderGateway
from meshjob.core.models.job import JobReference
from meshjob.core.settings import logger
from meshjob.core.utils.payload import extract_error_message, extract_job_id

DATA_URL_PREFIX = "data:image/"


def validate_image_reference(reference: Optional[str]) -> str:
    """Return the reference stripped of whitespace, or raise ValidationError.

    Accepted: absolute http/https URLs with a host, and inline
    `data:image/<type>...` payloads.
    """
    if not isinstance(reference, str) or not reference.strip():
        raise ValidationError("Image reference must be a non-empty string")
    value = reference.strip()

    if value.lower().startswith(DATA_URL_PREFIX):
        if "," not in value:
            raise ValidationError("Inline image payload has no data section")
        return value

    try:
        parts = urlsplit(value)
    except ValueError as exc:
        raise ValidationError(f"Image reference is not a valid URL: {value[:100]}") from exc
    if parts.scheme.lower() not in ("http", "https"):
        raise ValidationError("Image reference must be an http/https URL or a data:image/ payload")
    if not parts.netloc:
        raise ValidationError(f"Image reference URL has no host: {value[:100]}")
    return value


def build_submit_curl(reference: str, api_key: str, submit_url: str) -> str:
    """Render a curl command equivalent to the submission request."""
    valid = validate_image_reference(reference)
    payload = json.dumps({"input_image_url": valid})
    return " \\\n  ".join(
        [
            f"curl -X POST {shlex.quote(submit_url)}",
            f"-H {shlex.quote('Authorization: Bearer ' + api_key)}",
            "-H 'Content-Type: application/json'",
            f"-d {shlex.quote(payload)}",
        ]
    )


class SubmissionNormalizer:
    def __init__(
        self,
        gateway: ProviderGateway,
        config: Optional[SubmissionConfig] = None,
        retry_port: Optional[RetryPort] = None,
    ) -> None:
        self._gateway = gateway
        self.config = config or SubmissionConfig()
        self._retry = retry_port

    async def submit(self, reference: str) -> JobReference:
        valid = validate_image_reference(reference)
        kind = "inline" if valid.lower().startswith(DATA_URL_PREFIX) else "url"
        logger.info(f"[submit] submitting image reference kind={kind} length={len(valid)}")

        body = await self._post(valid)

        # A 2xx answer may still carry an error object
        error = extract_error_message(body.get("error"))
        if error:
            logger.warning(f"[submit] provider reported error in 2xx response message={error}")
            raise ProviderError(code=502, message=error, upstream_body=body)

        job_id = extract_job_id(body)
        if job_id is None:
            logger.error(f"[submit] response carries no job id keys={sorted(body.keys())[:10]}")
            raise ProtocolError(
                "Provider response carries no job identifier",
                diagnostic=json.dumps(body, default=str)[:512],
            )

        job = JobReference(id=job_id, input_reference=valid)
        logger.info(f"[submit] job accepted job_id={job.id}")
        return job

    async def _post(self, reference: str) -> Dict[str, Any]:
        try:
            if self._retry:
                return await self._retry.execute(
                    self._gateway.submit,
                    reference,
                    attempts=self.config.connect_retries,
                    wait_initial=self.config.retry_base_wait,
                    wait_max=self.config.retry_max_wait,
                    exception_types=(ConnectTransportError,),
                )
            return await self._gateway.submit(reference)
        except TransportError as exc:
            logger.error(f"[submit] no response from provider error={exc.message}")
            raise SubmissionError(
                f"Submission failed, provider unreachable: {exc.message}",
                diagnostic=exc.diagnostic,
            ) from exc
        except ProviderError as exc:
            logger.warning(f"[submit] provider rejected submission code={exc.code} message={exc.message}")
            raise
