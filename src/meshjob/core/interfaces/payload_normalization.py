"""Protocol for status payload normalization strategies.

The provider answers status queries in several shapes (full envelope, bare
output once finished, ...). Each shape is handled by one strategy, following
the Strategy pattern.
"""

from typing import Any, Dict, Optional, Protocol

from meshjob.core.models.job import CanonicalStatus, JobReference


class PayloadContext:
    """Context object holding a parsed status payload and the job it belongs to."""

    def __init__(self, job: JobReference, payload: Dict[str, Any]):
        self.job = job
        self.payload = payload


class NormalizedPayload:
    """Provider-independent reading of one status payload.

    Attributes:
        job_id: Identifier reported by the provider (or the submitted id when absent)
        status: Canonical status
        raw_status: Status string exactly as received (None when absent)
        queue_position: Queue depth reported while queued
        output: Raw output payload (absent, legacy string URL, or variant object)
        error: Provider error text, if any
        implicit: True when the status was inferred rather than reported
    """

    def __init__(
        self,
        job_id: str,
        status: CanonicalStatus,
        raw_status: Optional[str] = None,
        queue_position: Optional[int] = None,
        output: Any = None,
        error: Optional[str] = None,
        implicit: bool = False,
    ):
        self.job_id = job_id
        self.status = status
        self.raw_status = raw_status
        self.queue_position = queue_position
        self.output = output
        self.error = error
        self.implicit = implicit


class PayloadStrategy(Protocol):
    """Interface for status payload normalization strategies.

    - EnvelopeStrategy: status and/or identifier present
    - BareOutputStrategy: only output artifact fields (implicit completion)
    - UnusablePayloadStrategy: nothing recognizable, raises ProtocolError
    """

    def can_handle(self, context: PayloadContext) -> bool:
        ...

    def normalize(self, context: PayloadContext) -> NormalizedPayload:
        ...
