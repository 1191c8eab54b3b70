"""Classification of poll outcomes and the retry-vs-escalate decision.

A query that produced no response, a non-2xx answer or a body that cannot be
read is a TransientPollError: it is retried until `failure_threshold`
consecutive occurrences, then escalated. A parsed response reporting the job
as failed is a TerminalJobError and is final on first sight. Any parsed
response resets the consecutive failure count, whatever status it carries.
"""

from enum import StrEnum
from typing import Optional

from meshjob.core.exceptions import (
    ProtocolError,
    ProviderError,
    TerminalJobError,
    TransientPollError,
    TransportError,
)
from meshjob.core.models.job import CanonicalStatus, TERMINAL_STATUSES


class PollOutcome(StrEnum):
    active = "active"
    finished = "finished"  # completed or cancelled
    terminal_error = "terminal_error"


class FailureDecision(StrEnum):
    retry = "retry"
    escalate = "escalate"


class FailurePolicy:
    def __init__(self, failure_threshold: int = 3):
        if failure_threshold < 1:
            raise ValueError("failure_threshold must be >= 1")
        self.failure_threshold = failure_threshold

    def classify(self, status: CanonicalStatus) -> PollOutcome:
        """Outcome of a parsed status; query errors go through to_transient()."""
        if status == CanonicalStatus.failed:
            return PollOutcome.terminal_error
        if status in TERMINAL_STATUSES:
            return PollOutcome.finished
        return PollOutcome.active

    def to_transient(self, error: Exception, job_id: Optional[str] = None) -> TransientPollError:
        """Wrap a query failure into a TransientPollError with a readable message."""
        if isinstance(error, TransientPollError):
            return error
        if isinstance(error, ProviderError):
            message = f"Status query rejected by provider (HTTP {error.code}): {error.message}"
        elif isinstance(error, TransportError):
            message = f"Status query got no response: {error.message}"
        elif isinstance(error, ProtocolError):
            message = f"Status response unusable: {error.message}"
        else:
            message = f"Status query failed: {error}"
        return TransientPollError(message, cause=error, job_id=job_id)

    def terminal_error(self, job_id: str, provider_error: Optional[str]) -> TerminalJobError:
        return TerminalJobError(
            message=provider_error or "Generation failed on the provider",
            job_id=job_id,
        )

    def decide(self, consecutive_failures: int) -> FailureDecision:
        if consecutive_failures >= self.failure_threshold:
            return FailureDecision.escalate
        return FailureDecision.retry
