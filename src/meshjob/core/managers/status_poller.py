"""StatusPoller: bounded, cancellable poll loop for one submitted job.

Lifecycle per job:
    idle -> active (queued | uploading | processing | generating)
         -> completed | failed | cancelled

One loop iteration is one status query. Every iteration pushes a snapshot to
the observer; the loop ends after pushing exactly one terminal snapshot.
Running out of attempts is reported as failed ("query timeout"), too many
consecutive transient errors as failed ("repeated query failure").

Cancellation is cooperative: the event is checked before every query, right
after the query returns, and while suspended between queries. A query result
that arrives after cancellation is discarded.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Callable, Optional

from meshjob.core.config import PollerConfig
from meshjob.core.exceptions import JobTimeoutError
from meshjob.core.interfaces.observers import JobStatusObserver
from meshjob.core.interfaces.payload_normalization import NormalizedPayload
from meshjob.core.logging_config import bind_correlation_id
from meshjob.core.managers.failure_policy import FailureDecision, FailurePolicy, PollOutcome
from meshjob.core.managers.output_resolver import resolve_output
from meshjob.core.managers.payload_normalizer import PayloadNormalizer
from meshjob.core.managers.progress_estimator import estimate_progress
from meshjob.core.managers.provider_gateway import ProviderGateway
from meshjob.core.models.job import (
    CanonicalStatus,
    JobReference,
    JobStatusSnapshot,
    PollingSession,
)
from meshjob.core.settings import logger

REASON_REPEATED_FAILURE = "repeated query failure"
REASON_TIMEOUT = "query timeout"
REASON_CANCELLED = "cancelled"

STATUS_MESSAGES = {
    CanonicalStatus.queued: "Waiting in queue",
    CanonicalStatus.uploading: "Uploading image",
    CanonicalStatus.processing: "Processing image",
    CanonicalStatus.generating: "Generating 3D model",
    CanonicalStatus.completed: "Model ready",
    CanonicalStatus.failed: "Generation failed",
    CanonicalStatus.cancelled: "Generation cancelled",
}


def initial_snapshot(message: str = "Job submitted") -> JobStatusSnapshot:
    """Snapshot describing a job that was just accepted by the provider."""
    return JobStatusSnapshot(
        status=CanonicalStatus.queued,
        progress=estimate_progress(CanonicalStatus.queued),
        message=message,
    )


class StatusPoller:
    def __init__(
        self,
        gateway: ProviderGateway,
        config: Optional[PollerConfig] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._gateway = gateway
        self.config = config or PollerConfig()
        self._policy = FailurePolicy(self.config.failure_threshold)
        self._normalizer = PayloadNormalizer()
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def run(
        self,
        job: JobReference,
        observer: JobStatusObserver,
        cancel_event: Optional[asyncio.Event] = None,
        last_snapshot: Optional[JobStatusSnapshot] = None,
    ) -> JobStatusSnapshot:
        """Poll until the job is terminal and return the terminal snapshot.

        `last_snapshot` seeds the snapshot re-emitted on transient errors
        before the first successful query.
        """
        cancel_event = cancel_event or asyncio.Event()
        session = PollingSession(job_id=job.id, started_at=self._clock())
        with bind_correlation_id(job.id):
            logger.info(
                f"[poll] start job_id={job.id} interval={self.config.poll_interval}s "
                f"max_attempts={self.config.max_attempts} failure_threshold={self.config.failure_threshold}"
            )
            try:
                return await self._loop(job, observer, cancel_event, session, last_snapshot or initial_snapshot())
            except asyncio.CancelledError:
                if not session.terminated:
                    logger.info(f"[poll] task cancelled job_id={job.id} attempt={session.attempt}")
                    await self._finish(job, observer, session, self._cancelled_snapshot(last_snapshot))
                raise

    async def _loop(
        self,
        job: JobReference,
        observer: JobStatusObserver,
        cancel_event: asyncio.Event,
        session: PollingSession,
        last: JobStatusSnapshot,
    ) -> JobStatusSnapshot:
        while session.attempt < self.config.max_attempts:
            if cancel_event.is_set():
                return await self._finish(job, observer, session, self._cancelled_snapshot(last))

            session.attempt += 1
            try:
                payload = await self._gateway.status(job.id)
                normalized = self._normalizer.normalize(job, payload)
            except Exception as exc:
                if cancel_event.is_set():
                    logger.debug(f"[poll] discarding failed query after cancellation job_id={job.id}")
                    return await self._finish(job, observer, session, self._cancelled_snapshot(last))
                last, escalated = self._on_transient(job, session, last, exc)
                if escalated:
                    return await self._finish(job, observer, session, last)
                await self._emit(job, observer, last)
            else:
                if cancel_event.is_set():
                    logger.debug(f"[poll] discarding response after cancellation job_id={job.id}")
                    return await self._finish(job, observer, session, self._cancelled_snapshot(last))
                session.consecutive_failures = 0
                snapshot = self._build_snapshot(job, session, normalized)
                if self._policy.classify(status=snapshot.status) != PollOutcome.active:
                    return await self._finish(job, observer, session, snapshot)
                last = snapshot
                await self._emit(job, observer, snapshot)

            if session.attempt >= self.config.max_attempts:
                break
            if await self._suspend(cancel_event):
                return await self._finish(job, observer, session, self._cancelled_snapshot(last))

        timeout = JobTimeoutError(job.id, session.attempt, session.elapsed_seconds(self._clock()))
        logger.error(f"[poll] {timeout.message}")
        failed = JobStatusSnapshot(
            status=CanonicalStatus.failed,
            progress=0,
            message=timeout.message,
            error=REASON_TIMEOUT,
        )
        return await self._finish(job, observer, session, failed)

    def _on_transient(
        self,
        job: JobReference,
        session: PollingSession,
        last: JobStatusSnapshot,
        exc: Exception,
    ) -> tuple[JobStatusSnapshot, bool]:
        """Count a transient failure; return (snapshot to emit, escalated)."""
        error = self._policy.to_transient(exc, job.id)
        session.consecutive_failures += 1
        failures = session.consecutive_failures
        threshold = self._policy.failure_threshold

        if self._policy.decide(failures) == FailureDecision.escalate:
            logger.error(
                f"[poll] giving up after {failures} consecutive failures job_id={job.id} "
                f"error={error.message} diagnostic={error.diagnostic}"
            )
            return JobStatusSnapshot(
                status=CanonicalStatus.failed,
                progress=0,
                message=f"Status query failed {failures} times in a row: {error.message}",
                error=REASON_REPEATED_FAILURE,
            ), True

        logger.warning(
            f"[poll] transient failure {failures}/{threshold} job_id={job.id} "
            f"attempt={session.attempt} error={error.message}"
        )
        annotated = last.model_copy(
            update={
                "message": f"Temporary status query error, retrying ({failures}/{threshold}): {error.message}",
                "observed_at": self._clock(),
            }
        )
        return annotated, False

    def _build_snapshot(
        self,
        job: JobReference,
        session: PollingSession,
        normalized: NormalizedPayload,
    ) -> JobStatusSnapshot:
        status = normalized.status
        elapsed = session.elapsed_seconds(self._clock())
        progress = estimate_progress(status, normalized.queue_position, elapsed)
        message = STATUS_MESSAGES[status]
        if status == CanonicalStatus.queued and normalized.queue_position:
            message = f"{message} (position {normalized.queue_position})"

        update = {}
        outcome = self._policy.classify(status=status)
        if outcome == PollOutcome.terminal_error:
            failure = self._policy.terminal_error(job.id, normalized.error)
            logger.warning(f"[poll] provider reported failure job_id={job.id} error={failure.message}")
            update["error"] = failure.message
        elif status == CanonicalStatus.completed:
            resolved = resolve_output(normalized.output, job.id)
            update["artifact"] = resolved.artifact
            update["downloads"] = resolved.downloads
            if resolved.warning:
                message = resolved.warning

        if logger.is_enabled("DEBUG"):
            logger.debug(
                f"[poll] attempt={session.attempt} job_id={job.id} reported_id={normalized.job_id} "
                f"raw_status={normalized.raw_status!r} status={status} "
                f"queue_position={normalized.queue_position} progress={progress} "
                f"implicit={normalized.implicit}"
            )
        return JobStatusSnapshot(
            status=status,
            queue_position=normalized.queue_position,
            progress=progress,
            message=message,
            observed_at=self._clock(),
            **update,
        )

    def _cancelled_snapshot(self, last: Optional[JobStatusSnapshot]) -> JobStatusSnapshot:
        return JobStatusSnapshot(
            status=CanonicalStatus.cancelled,
            queue_position=last.queue_position if last else None,
            progress=0,
            message=STATUS_MESSAGES[CanonicalStatus.cancelled],
            error=REASON_CANCELLED,
        )

    async def _suspend(self, cancel_event: asyncio.Event) -> bool:
        """Sleep for the poll interval; return True if cancelled meanwhile."""
        try:
            await asyncio.wait_for(cancel_event.wait(), timeout=self.config.poll_interval)
        except asyncio.TimeoutError:
            return False
        return True

    async def _finish(
        self,
        job: JobReference,
        observer: JobStatusObserver,
        session: PollingSession,
        snapshot: JobStatusSnapshot,
    ) -> JobStatusSnapshot:
        session.terminated = True
        logger.info(
            f"[poll] terminal job_id={job.id} status={snapshot.status} attempts={session.attempt} "
            f"artifact={snapshot.artifact.url if snapshot.artifact else None}"
        )
        await self._emit(job, observer, snapshot)
        return snapshot

    async def _emit(
        self,
        job: JobReference,
        observer: JobStatusObserver,
        snapshot: JobStatusSnapshot,
    ) -> None:
        try:
            await observer.on_snapshot(job, snapshot)
        except Exception as exc:
            logger.error(
                f"[observer:error] on_snapshot failed observer={type(observer).__name__} "
                f"job_id={job.id} error={exc}"
            )
