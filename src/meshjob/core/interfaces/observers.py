"""Observer protocol for job status snapshots.

The poll loop pushes every snapshot it produces to its observers: zero or more
intermediate snapshots, then exactly one terminal snapshot. Observers cannot
acknowledge or slow down the loop.
"""

from typing import Protocol

from meshjob.core.models.job import JobReference, JobStatusSnapshot


class JobStatusObserver(Protocol):
    """Push-only sink for job status snapshots.

    Observers should be cheap and thread-safe, as they may be called from
    several poll loops running concurrently.
    """

    async def on_snapshot(
        self,
        job: JobReference,
        snapshot: JobStatusSnapshot,
    ) -> None:
        """Called after submission and after every poll iteration.

        Args:
            job: The job the snapshot belongs to
            snapshot: Normalized, immutable status view
        """
        ...
