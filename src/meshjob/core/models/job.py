from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from datetime import datetime, timezone
from enum import StrEnum


class CanonicalStatus(StrEnum):
    queued = "queued"
    uploading = "uploading"
    processing = "processing"
    generating = "generating"
    completed = "completed"
    failed = "failed"
    cancelled = "cancelled"


TERMINAL_STATUSES = frozenset(
    {CanonicalStatus.completed, CanonicalStatus.failed, CanonicalStatus.cancelled}
)


class ArtifactKind(StrEnum):
    primary_model = "primary_model"
    pbr_model = "pbr_model"
    mesh_archive = "mesh_archive"


class OutputArtifact(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: ArtifactKind
    url: str
    content_type: Optional[str] = None
    byte_size: Optional[int] = Field(default=None, ge=0)


class JobReference(BaseModel):
    """Identity of a submitted job.

    Assigned once by the submission step and never changed afterwards; the
    model is frozen so the id cannot be reassigned by a consumer.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    input_reference: str


class JobStatusSnapshot(BaseModel):
    """One normalized view of a job as observed at a single poll.

    Snapshots are immutable: every poll produces a new one, derived views are
    made with `model_copy(update=...)`.
    """

    model_config = ConfigDict(frozen=True)

    status: CanonicalStatus
    queue_position: Optional[int] = None
    progress: int = Field(default=0, ge=0, le=100)
    message: str = ""
    error: Optional[str] = None
    artifact: Optional[OutputArtifact] = None
    downloads: List[OutputArtifact] = Field(default_factory=list)
    observed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


class PollingSession(BaseModel):
    """Mutable bookkeeping for exactly one poll loop of one job."""

    job_id: str
    attempt: int = Field(default=0, ge=0)
    consecutive_failures: int = Field(default=0, ge=0)
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    terminated: bool = False

    def elapsed_seconds(self, now: Optional[datetime] = None) -> float:
        now = now or datetime.now(timezone.utc)
        return max(0.0, (now - self.started_at).total_seconds())
