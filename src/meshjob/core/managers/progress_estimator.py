"""Heuristic progress percentage for jobs whose provider reports no progress.

The provider only exposes an ordinal stage plus an optional queue depth. The
estimate grows with wall-clock time spent since polling started, within a band
per stage, so a client sees movement while the job waits.

Bands:
    queued with position   5..20  (shorter queue starts higher)
    queued, no position   10..25
    processing            30..50
    generating            60..90
    completed             100
    failed / cancelled    0
    any other active      50

No ordering is guaranteed across stages: a provider reverting from a later
stage to an earlier one yields the earlier stage's band.
"""

import math
from typing import Optional

from meshjob.core.models.job import CanonicalStatus

QUEUE_TICK_SECONDS = 30
STAGE_TICK_SECONDS = 10


def estimate_progress(
    status: CanonicalStatus,
    queue_position: Optional[int] = None,
    elapsed_seconds: Optional[float] = None,
) -> int:
    """Return an integer in [0, 100] for the given stage and elapsed time."""
    elapsed = max(0.0, elapsed_seconds or 0.0)

    if status == CanonicalStatus.completed:
        return 100
    if status in (CanonicalStatus.failed, CanonicalStatus.cancelled):
        return 0

    if status == CanonicalStatus.queued:
        queue_ticks = math.floor(elapsed / QUEUE_TICK_SECONDS)
        if queue_position is not None and queue_position > 0:
            base = max(5, 15 - 2 * queue_position)
            return min(20, base + min(5, queue_ticks))
        return min(25, 10 + queue_ticks)

    stage_ticks = math.floor(elapsed / STAGE_TICK_SECONDS)
    if status == CanonicalStatus.processing:
        return min(50, 30 + stage_ticks)
    if status == CanonicalStatus.generating:
        return min(90, 60 + stage_ticks)

    return 50
