"""GenerationManager: submits image-to-model jobs and runs one poll loop per job.

Responsibilities:
1. Submit the image reference (errors surface synchronously to the caller).
2. Push the post-submission snapshot to observers.
3. Schedule a background poll loop for the job.
4. Cooperative cancellation per job, shutdown of all loops.

Only running loops are tracked as tasks. A finished loop is dropped in its
done callback; its terminal snapshot is kept for `wait` in a store bounded
by `finished_retention` (oldest evicted first).
"""

from __future__ import annotations

import asyncio
from collections import OrderedDict
from typing import Dict, Optional, Sequence

from meshjob.core.interfaces.observers import JobStatusObserver
from meshjob.core.managers.observers import CompositeObserver
from meshjob.core.managers.status_poller import StatusPoller, initial_snapshot
from meshjob.core.managers.submission_normalizer import SubmissionNormalizer
from meshjob.core.models.job import JobReference, JobStatusSnapshot
from meshjob.core.settings import logger


class GenerationManager:
    """Orchestrates job lifecycle: submission, background polling, cancellation."""

    def __init__(
        self,
        submission: SubmissionNormalizer,
        poller: StatusPoller,
        observers: Optional[Sequence[JobStatusObserver]] = None,
        finished_retention: int = 1000,
    ) -> None:
        if finished_retention < 0:
            raise ValueError("finished_retention must be >= 0")
        self._submission = submission
        self._poller = poller
        self._observers = list(observers or [])
        self._poll_tasks: Dict[str, asyncio.Task] = {}
        self._cancel_events: Dict[str, asyncio.Event] = {}
        self._finished: OrderedDict[str, JobStatusSnapshot] = OrderedDict()
        self.finished_retention = finished_retention
        self._shutdown = False

    async def start(
        self,
        reference: str,
        observer: Optional[JobStatusObserver] = None,
    ) -> JobReference:
        """Submit and start polling in the background. Returns the new job reference."""
        if self._shutdown:
            raise RuntimeError("GenerationManager is shut down")

        job = await self._submission.submit(reference)

        fan_out = CompositeObserver(self._observers + ([observer] if observer else []))
        first = initial_snapshot()
        await fan_out.on_snapshot(job, first)

        self._schedule_poll(job, fan_out, first)
        return job

    async def generate(
        self,
        reference: str,
        observer: Optional[JobStatusObserver] = None,
    ) -> JobStatusSnapshot:
        """Submit and wait in the foreground for the terminal snapshot."""
        job = await self.start(reference, observer)
        return await self.wait(job.id)

    async def wait(self, job_id: str) -> JobStatusSnapshot:
        """Terminal snapshot of a running or retained finished job; KeyError otherwise."""
        task = self._poll_tasks.get(job_id)
        if task is not None:
            return await asyncio.shield(task)
        if job_id in self._finished:
            return self._finished[job_id]
        raise KeyError(job_id)

    def cancel(self, job_id: str) -> bool:
        """Request cooperative cancellation. Returns False for unknown or finished jobs."""
        event = self._cancel_events.get(job_id)
        if event is None:
            return False
        logger.info(f"[job:cancel] cancellation requested job_id={job_id}")
        event.set()
        return True

    def is_polling(self, job_id: str) -> bool:
        task = self._poll_tasks.get(job_id)
        return task is not None and not task.done()

    @property
    def active_count(self) -> int:
        return len(self._poll_tasks)

    @property
    def retained_count(self) -> int:
        return len(self._finished)

    def _schedule_poll(
        self,
        job: JobReference,
        observer: JobStatusObserver,
        first: JobStatusSnapshot,
    ) -> None:
        cancel_event = asyncio.Event()
        logger.debug(f"[job:poll] scheduling poll loop job_id={job.id}")
        task = asyncio.create_task(
            self._poller.run(job, observer, cancel_event=cancel_event, last_snapshot=first),
            name=f"poll-{job.id}",
        )
        self._poll_tasks[job.id] = task
        self._cancel_events[job.id] = cancel_event
        task.add_done_callback(lambda t: self._on_poll_done(job.id, t))

    def _on_poll_done(self, job_id: str, task: asyncio.Task) -> None:
        self._poll_tasks.pop(job_id, None)
        self._cancel_events.pop(job_id, None)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"[job:poll] poll loop crashed job_id={job_id} error={exc!r}")
            return
        self._retain(job_id, task.result())

    def _retain(self, job_id: str, snapshot: JobStatusSnapshot) -> None:
        if self.finished_retention == 0:
            return
        self._finished[job_id] = snapshot
        self._finished.move_to_end(job_id)
        while len(self._finished) > self.finished_retention:
            evicted, _ = self._finished.popitem(last=False)
            logger.debug(f"[job:poll] evicted finished job job_id={evicted}")

    async def shutdown(self, grace_period: float = 1.0) -> None:
        """Cancel every running loop; loops stuck in a request are hard-cancelled after grace_period."""
        self._shutdown = True
        for event in list(self._cancel_events.values()):
            event.set()
        tasks = [t for t in self._poll_tasks.values() if not t.done()]
        if not tasks:
            return
        _, pending = await asyncio.wait(tasks, timeout=grace_period)
        for task in pending:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
