"""Unit tests for status payload normalization strategies.

Each strategy is tested for can_handle() and normalize(); the orchestrator is
tested for strategy precedence.
"""

import pytest

from meshjob.core.exceptions import ProtocolError
from meshjob.core.interfaces.payload_normalization import PayloadContext
from meshjob.core.managers.payload_normalizer import PayloadNormalizer
from meshjob.core.managers.payload_strategies import (
    BareOutputStrategy,
    EnvelopeStrategy,
    UnusablePayloadStrategy,
    map_status,
)
from meshjob.core.models.job import CanonicalStatus, JobReference


@pytest.fixture
def job():
    return JobReference(id="abc", input_reference="https://x/a.png")


def ctx(job, payload):
    return PayloadContext(job=job, payload=payload)


class TestMapStatus:

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("IN_QUEUE", CanonicalStatus.queued),
            ("queued", CanonicalStatus.queued),
            ("Pending", CanonicalStatus.queued),
            ("PROCESSING", CanonicalStatus.processing),
            ("generating", CanonicalStatus.generating),
            ("COMPLETED", CanonicalStatus.completed),
            ("completed", CanonicalStatus.completed),
            ("Complete", CanonicalStatus.completed),
            ("FAILED", CanonicalStatus.failed),
            ("error", CanonicalStatus.failed),
        ],
    )
    def test_known_values_case_insensitive(self, raw, expected):
        assert map_status(raw) == (expected, True)

    @pytest.mark.parametrize("raw", ["WARMING_UP", "", None, 7])
    def test_unknown_values_default_to_processing(self, raw):
        assert map_status(raw) == (CanonicalStatus.processing, False)


class TestEnvelopeStrategy:

    def test_handles_status_or_id(self, job):
        strategy = EnvelopeStrategy()
        assert strategy.can_handle(ctx(job, {"status": "IN_QUEUE"}))
        assert strategy.can_handle(ctx(job, {"request_id": "abc"}))
        assert strategy.can_handle(ctx(job, {"task": {"id": "abc"}}))
        assert not strategy.can_handle(ctx(job, {"model_glb": {"url": "u"}}))

    def test_reads_queue_position_and_id_alias(self, job):
        result = EnvelopeStrategy().normalize(
            ctx(job, {"request_id": "abc", "status": "IN_QUEUE", "queue_position": "2"})
        )
        assert result.job_id == "abc"
        assert result.status == CanonicalStatus.queued
        assert result.queue_position == 2
        assert result.raw_status == "IN_QUEUE"
        assert result.implicit is False

    def test_structured_error_message(self, job):
        result = EnvelopeStrategy().normalize(
            ctx(job, {"id": "abc", "status": "FAILED", "error": {"message": "bad image", "err_code": 17}})
        )
        assert result.status == CanonicalStatus.failed
        assert result.error == "bad image"

    def test_unrecognized_status_is_processing(self, job):
        result = EnvelopeStrategy().normalize(ctx(job, {"id": "abc", "status": "WARMING_UP"}))
        assert result.status == CanonicalStatus.processing

    def test_missing_id_uses_submitted_id(self, job):
        result = EnvelopeStrategy().normalize(ctx(job, {"status": "PROCESSING"}))
        assert result.job_id == "abc"

    def test_id_without_status_but_with_output_is_completion(self, job):
        result = EnvelopeStrategy().normalize(
            ctx(job, {"id": "abc", "output": {"model_glb": {"url": "https://x/m.glb"}}})
        )
        assert result.status == CanonicalStatus.completed
        assert result.implicit is True


class TestBareOutputStrategy:

    def test_top_level_variants(self, job):
        payload = {"model_glb": {"url": "https://x/m.glb"}, "seed": 3}
        strategy = BareOutputStrategy()
        assert strategy.can_handle(ctx(job, payload))
        result = strategy.normalize(ctx(job, payload))
        assert result.status == CanonicalStatus.completed
        assert result.job_id == "abc"
        assert result.output is payload
        assert result.implicit is True

    def test_output_key_only(self, job):
        payload = {"output": {"model_glb_pbr": {"url": "https://x/p.glb"}}}
        result = BareOutputStrategy().normalize(ctx(job, payload))
        assert result.output == payload["output"]

    def test_not_used_when_status_present(self, job):
        assert not BareOutputStrategy().can_handle(
            ctx(job, {"status": "PROCESSING", "model_glb": {"url": "u"}})
        )


class TestUnusablePayloadStrategy:

    def test_raises_protocol_error(self, job):
        strategy = UnusablePayloadStrategy()
        assert strategy.can_handle(ctx(job, {}))
        with pytest.raises(ProtocolError):
            strategy.normalize(ctx(job, {"logs": []}))


class TestPayloadNormalizer:

    def test_bare_output_yields_completed_with_submitted_id(self, job):
        result = PayloadNormalizer().normalize(job, {"output": {"model_glb": {"url": "https://x/m.glb"}}})
        assert result.status == CanonicalStatus.completed
        assert result.job_id == job.id

    def test_envelope_takes_precedence(self, job):
        result = PayloadNormalizer().normalize(
            job, {"id": "abc", "status": "GENERATING", "model_glb": {"url": "u"}}
        )
        assert result.status == CanonicalStatus.generating

    @pytest.mark.parametrize("payload", ["<html>oops</html>", ["a"], None, {}])
    def test_unusable_payloads_raise(self, job, payload):
        with pytest.raises(ProtocolError):
            PayloadNormalizer().normalize(job, payload)
