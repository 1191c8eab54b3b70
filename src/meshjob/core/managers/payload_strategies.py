"""Concrete status payload normalization strategies.

1. EnvelopeStrategy: regular envelope carrying a status and/or a job id
2. BareOutputStrategy: only output fields, the provider's way of saying "done"
3. UnusablePayloadStrategy: nothing recognizable, raises ProtocolError
"""

from typing import Any, Optional, Tuple

from meshjob.core.exceptions import ProtocolError
from meshjob.core.interfaces.payload_normalization import (
    NormalizedPayload,
    PayloadContext,
)
from meshjob.core.managers.output_resolver import has_artifact_fields
from meshjob.core.models.job import CanonicalStatus
from meshjob.core.settings import logger
from meshjob.core.utils.payload import (
    coerce_queue_position,
    extract_error_message,
    extract_job_id,
)

STATUS_MAP = {
    "IN_QUEUE": CanonicalStatus.queued,
    "QUEUED": CanonicalStatus.queued,
    "PENDING": CanonicalStatus.queued,
    "PROCESSING": CanonicalStatus.processing,
    "GENERATING": CanonicalStatus.generating,
    "COMPLETED": CanonicalStatus.completed,
    "COMPLETE": CanonicalStatus.completed,
    "FAILED": CanonicalStatus.failed,
    "ERROR": CanonicalStatus.failed,
}

# Unknown provider vocabulary keeps the job alive instead of failing it
DEFAULT_STATUS = CanonicalStatus.processing


def map_status(raw: Any) -> Tuple[CanonicalStatus, bool]:
    """Map a raw provider status string (case-insensitive).

    Returns (status, recognized). Unrecognized values map to processing.
    """
    if isinstance(raw, str):
        status = STATUS_MAP.get(raw.strip().upper())
        if status is not None:
            return status, True
    return DEFAULT_STATUS, False


def _has_output(value: Any) -> bool:
    if isinstance(value, str):
        return bool(value.strip())
    return isinstance(value, dict) and bool(value)


def _raw_status(payload: dict) -> Optional[str]:
    raw = payload.get("status")
    if raw is None or raw == "":
        return None
    return str(raw)


class EnvelopeStrategy:
    """Strategy for the regular envelope: {id|request_id|..., status, queue_position?, output?, error?}."""

    def can_handle(self, context: PayloadContext) -> bool:
        payload = context.payload
        return _raw_status(payload) is not None or extract_job_id(payload) is not None

    def normalize(self, context: PayloadContext) -> NormalizedPayload:
        payload = context.payload
        job_id = extract_job_id(payload)
        if job_id is None:
            # The submitted id is authoritative while polling
            logger.debug(f"[poll] envelope without id, using submitted id job_id={context.job.id}")
            job_id = context.job.id
        elif job_id != context.job.id:
            logger.warning(
                f"[poll] provider answered for a different id job_id={context.job.id} reported={job_id}"
            )

        raw_status = _raw_status(payload)
        output = payload.get("output")
        implicit = False
        if raw_status is None and _has_output(output):
            status, implicit = CanonicalStatus.completed, True
        else:
            status, recognized = map_status(raw_status)
            if not recognized:
                logger.warning(
                    f"[poll] protocol anomaly: unrecognized status {raw_status!r} "
                    f"treated as {status} job_id={context.job.id}"
                )

        return NormalizedPayload(
            job_id=job_id,
            status=status,
            raw_status=raw_status,
            queue_position=coerce_queue_position(payload.get("queue_position")),
            output=output,
            error=extract_error_message(payload.get("error")),
            implicit=implicit,
        )


class BareOutputStrategy:
    """Strategy for a payload carrying only output fields.

    Once finished the provider sometimes returns the output object alone,
    either at top level ({model_glb: {...}}) or under "output", with neither
    status nor id. This is read as an implicit completion of the submitted job.
    """

    def can_handle(self, context: PayloadContext) -> bool:
        payload = context.payload
        if _raw_status(payload) is not None or extract_job_id(payload) is not None:
            return False
        return has_artifact_fields(payload) or _has_output(payload.get("output"))

    def normalize(self, context: PayloadContext) -> NormalizedPayload:
        payload = context.payload
        output = payload.get("output") if "output" in payload else payload
        logger.info(f"[poll] bare output payload read as completion job_id={context.job.id}")
        return NormalizedPayload(
            job_id=context.job.id,
            status=CanonicalStatus.completed,
            raw_status=None,
            output=output,
            implicit=True,
        )


class UnusablePayloadStrategy:
    """Catch-all: neither status, id nor output."""

    def can_handle(self, context: PayloadContext) -> bool:
        return True

    def normalize(self, context: PayloadContext) -> NormalizedPayload:
        keys = sorted(context.payload.keys())[:10]
        raise ProtocolError(
            "Status response carries neither status, job id nor output",
            diagnostic=f"keys={keys}",
            job_id=context.job.id,
        )
