"""Concrete observer implementations for job status snapshots.

- SnapshotRecorder: keeps latest snapshot and history per job
- CallbackObserver: adapts a plain (sync or async) callable
- CompositeObserver: fans one snapshot out to several observers
"""

import asyncio
import inspect
from collections import OrderedDict, deque
from typing import Any, Callable, Deque, Dict, List, Optional, Sequence

from meshjob.core.interfaces.observers import JobStatusObserver
from meshjob.core.models.job import JobReference, JobStatusSnapshot
from meshjob.core.settings import logger


class SnapshotRecorder:
    """Records snapshots per job id.

    Backing store for status lookups from the web driver. Guarded by an
    asyncio.Lock since several poll loops push concurrently.

    Bounded: each job keeps its last `max_history` snapshots, and at most
    `max_finished_jobs` terminal jobs are retained. Once that count is
    exceeded, the job that finished first is forgotten entirely.
    """

    def __init__(self, max_history: int = 50, max_finished_jobs: int = 1000):
        if max_history < 1 or max_finished_jobs < 0:
            raise ValueError("max_history must be >= 1 and max_finished_jobs >= 0")
        self.max_history = max_history
        self.max_finished_jobs = max_finished_jobs
        self._latest: Dict[str, JobStatusSnapshot] = {}
        self._history: Dict[str, Deque[JobStatusSnapshot]] = {}
        self._jobs: Dict[str, JobReference] = {}
        self._finished: OrderedDict[str, None] = OrderedDict()
        self._lock = asyncio.Lock()

    async def on_snapshot(self, job: JobReference, snapshot: JobStatusSnapshot) -> None:
        async with self._lock:
            self._jobs[job.id] = job
            self._latest[job.id] = snapshot
            history = self._history.get(job.id)
            if history is None:
                history = self._history[job.id] = deque(maxlen=self.max_history)
            history.append(snapshot)
            if snapshot.is_terminal():
                self._finished[job.id] = None
                self._finished.move_to_end(job.id)
                self._evict_finished()
        logger.debug(
            f"[observer:recorder] recorded job_id={job.id} status={snapshot.status} progress={snapshot.progress}"
        )

    def _evict_finished(self) -> None:
        while len(self._finished) > self.max_finished_jobs:
            job_id, _ = self._finished.popitem(last=False)
            self._latest.pop(job_id, None)
            self._history.pop(job_id, None)
            self._jobs.pop(job_id, None)
            logger.debug(f"[observer:recorder] evicted finished job job_id={job_id}")

    async def tracked_count(self) -> int:
        async with self._lock:
            return len(self._latest)

    async def latest(self, job_id: str) -> Optional[JobStatusSnapshot]:
        async with self._lock:
            return self._latest.get(job_id)

    async def job(self, job_id: str) -> Optional[JobReference]:
        async with self._lock:
            return self._jobs.get(job_id)

    async def history(self, job_id: str) -> List[JobStatusSnapshot]:
        async with self._lock:
            return list(self._history.get(job_id, []))


class CallbackObserver:
    """Wraps `callback(job, snapshot)`; coroutine results are awaited."""

    def __init__(self, callback: Callable[[JobReference, JobStatusSnapshot], Any]):
        self._callback = callback

    async def on_snapshot(self, job: JobReference, snapshot: JobStatusSnapshot) -> None:
        result = self._callback(job, snapshot)
        if inspect.isawaitable(result):
            await result


class CompositeObserver:
    """Notifies observers in order; one failing observer never blocks the others."""

    def __init__(self, observers: Optional[Sequence[JobStatusObserver]] = None):
        self._observers: List[JobStatusObserver] = list(observers or [])

    def add(self, observer: JobStatusObserver) -> None:
        self._observers.append(observer)

    async def on_snapshot(self, job: JobReference, snapshot: JobStatusSnapshot) -> None:
        for observer in self._observers:
            try:
                await observer.on_snapshot(job, snapshot)
            except Exception as exc:
                logger.error(
                    f"[observer:error] on_snapshot failed observer={type(observer).__name__} "
                    f"job_id={job.id} error={exc}"
                )
