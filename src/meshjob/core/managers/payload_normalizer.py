"""Orchestrator for status payload normalization strategies."""

from typing import Any, List

from meshjob.core.exceptions import ProtocolError
from meshjob.core.interfaces.payload_normalization import (
    NormalizedPayload,
    PayloadContext,
    PayloadStrategy,
)
from meshjob.core.managers.payload_strategies import (
    BareOutputStrategy,
    EnvelopeStrategy,
    UnusablePayloadStrategy,
)
from meshjob.core.models.job import JobReference
from meshjob.core.settings import logger


class PayloadNormalizer:
    """Normalizes status payloads using a chain of strategies.

    Evaluated in priority order; the first strategy that can handle the
    payload wins:
    1. EnvelopeStrategy - status and/or job id present
    2. BareOutputStrategy - output fields only (implicit completion)
    3. UnusablePayloadStrategy - always matches, raises ProtocolError
    """

    def __init__(self):
        self._strategies: List[PayloadStrategy] = [
            EnvelopeStrategy(),
            BareOutputStrategy(),
            UnusablePayloadStrategy(),
        ]

    def normalize(self, job: JobReference, payload: Any) -> NormalizedPayload:
        if not isinstance(payload, dict):
            raise ProtocolError(
                "Status response is not a JSON object",
                diagnostic=f"body_type={type(payload).__name__} body={str(payload)[:256]}",
                job_id=job.id,
            )
        context = PayloadContext(job=job, payload=payload)
        for strategy in self._strategies:
            if strategy.can_handle(context):
                logger.debug(
                    f"[poll] using {strategy.__class__.__name__} job_id={job.id}"
                )
                return strategy.normalize(context)
        # UnusablePayloadStrategy always matches
        raise ProtocolError("No payload strategy matched", job_id=job.id)
