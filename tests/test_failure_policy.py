"""Unit tests for poll outcome classification and escalation."""

import pytest

from meshjob.core.exceptions import (
    ProtocolError,
    ProviderError,
    TransientPollError,
    TransportError,
)
from meshjob.core.managers.failure_policy import (
    FailureDecision,
    FailurePolicy,
    PollOutcome,
)
from meshjob.core.models.job import CanonicalStatus


@pytest.fixture
def policy():
    return FailurePolicy(failure_threshold=3)


class TestClassify:

    def test_failed_status_is_terminal_error(self, policy):
        assert policy.classify(status=CanonicalStatus.failed) == PollOutcome.terminal_error

    @pytest.mark.parametrize("status", [CanonicalStatus.completed, CanonicalStatus.cancelled])
    def test_other_terminal_statuses_finish(self, policy, status):
        assert policy.classify(status=status) == PollOutcome.finished

    @pytest.mark.parametrize(
        "status",
        [CanonicalStatus.queued, CanonicalStatus.processing, CanonicalStatus.generating],
    )
    def test_active_statuses(self, policy, status):
        assert policy.classify(status=status) == PollOutcome.active


class TestDecide:

    def test_retries_below_threshold(self, policy):
        assert policy.decide(1) == FailureDecision.retry
        assert policy.decide(2) == FailureDecision.retry

    def test_escalates_at_threshold(self, policy):
        assert policy.decide(3) == FailureDecision.escalate
        assert policy.decide(4) == FailureDecision.escalate

    def test_threshold_of_one_escalates_immediately(self):
        assert FailurePolicy(1).decide(1) == FailureDecision.escalate

    def test_rejects_invalid_threshold(self):
        with pytest.raises(ValueError):
            FailurePolicy(0)


class TestWrapping:

    def test_provider_error_message_kept(self, policy):
        wrapped = policy.to_transient(ProviderError(503, "busy"), job_id="abc")
        assert isinstance(wrapped, TransientPollError)
        assert "503" in wrapped.message and "busy" in wrapped.message
        assert wrapped.job_id == "abc"

    def test_transient_passes_through(self, policy):
        original = TransientPollError("x")
        assert policy.to_transient(original) is original

    def test_terminal_error_uses_provider_text(self, policy):
        err = policy.terminal_error("abc", "image too small")
        assert err.message == "image too small"
        assert policy.terminal_error("abc", None).message

    @pytest.mark.parametrize(
        "error,fragment",
        [(TransportError("boom"), "no response"), (ProtocolError("bad body"), "unusable")],
    )
    def test_query_errors_become_transient(self, policy, error, fragment):
        wrapped = policy.to_transient(error, job_id="abc")
        assert isinstance(wrapped, TransientPollError)
        assert fragment in wrapped.message
        assert wrapped.cause is error
