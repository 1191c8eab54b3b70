"""Unit tests for image reference validation and job submission."""

import pytest

from meshjob.adapters.retry_tenacity import TenacityRetryAdapter
from meshjob.core.config import SubmissionConfig
from meshjob.core.exceptions import (
    ConnectTransportError,
    ProtocolError,
    ProviderError,
    SubmissionError,
    TransportError,
    ValidationError,
)
from meshjob.core.managers.provider_gateway import ProviderGateway
from meshjob.core.managers.submission_normalizer import (
    SubmissionNormalizer,
    build_submit_curl,
    validate_image_reference,
)
from meshjob.core.models.provider import ProviderEndpoint

SUBMIT_URL = "https://provider.test/submit"


class FakeHttpClient:
    """Returns queued POST results; exceptions in the queue are raised."""

    def __init__(self, results):
        self._results = list(results)
        self.posts = []

    async def post(self, url, json=None, headers=None, timeout=None):
        self.posts.append({"url": url, "json": json, "headers": headers})
        result = self._results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    async def get(self, url, params=None, headers=None, timeout=None):  # pragma: no cover
        raise AssertionError("submission must not GET")


def ok(body, status=200):
    return {"status": status, "reason": "OK", "headers": {}, "body": body}


@pytest.fixture
def endpoint():
    return ProviderEndpoint(
        submit_url=SUBMIT_URL,
        status_url="https://provider.test/status",
        api_key="secret-key",
    )


def make_normalizer(endpoint, results, retry=None):
    http = FakeHttpClient(results)
    config = SubmissionConfig(connect_retries=3, retry_base_wait=0.001, retry_max_wait=0.002)
    return SubmissionNormalizer(ProviderGateway(http, endpoint), config=config, retry_port=retry), http


class TestValidateImageReference:

    @pytest.mark.parametrize(
        "reference",
        ["https://x/a.png", "http://example.org/img?id=3", "  https://x/a.png  ", "data:image/png;base64,iVBORw0KGgo="],
    )
    def test_accepts_urls_and_inline_images(self, reference):
        assert validate_image_reference(reference) == reference.strip()

    @pytest.mark.parametrize(
        "reference",
        ["", "   ", None, "ftp://x/a.png", "not a url", "https:///nohost.png", "data:text/plain;base64,aGk=", "data:image/png"],
    )
    def test_rejects_invalid(self, reference):
        with pytest.raises(ValidationError):
            validate_image_reference(reference)


class TestSubmit:

    async def test_request_id_becomes_job_id(self, endpoint):
        normalizer, http = make_normalizer(endpoint, [ok({"request_id": "abc"})])

        job = await normalizer.submit("https://x/a.png")

        assert job.id == "abc"
        assert job.input_reference == "https://x/a.png"
        assert http.posts[0]["url"] == SUBMIT_URL
        assert http.posts[0]["json"] == {"input_image_url": "https://x/a.png"}
        assert http.posts[0]["headers"]["Authorization"] == "Bearer secret-key"

    @pytest.mark.parametrize(
        "body",
        [{"id": "j1"}, {"task_id": "j1"}, {"task": {"id": "j1"}}, {"id": "", "request_id": "j1"}],
    )
    async def test_id_aliases(self, endpoint, body):
        normalizer, _ = make_normalizer(endpoint, [ok(body)])
        job = await normalizer.submit("https://x/a.png")
        assert job.id == "j1"

    async def test_missing_id_is_protocol_error(self, endpoint):
        normalizer, _ = make_normalizer(endpoint, [ok({"status": "IN_QUEUE"})])
        with pytest.raises(ProtocolError):
            await normalizer.submit("https://x/a.png")

    async def test_non_json_body_is_protocol_error(self, endpoint):
        normalizer, _ = make_normalizer(endpoint, [ok("<html>gateway</html>")])
        with pytest.raises(ProtocolError):
            await normalizer.submit("https://x/a.png")

    async def test_invalid_reference_never_reaches_provider(self, endpoint):
        normalizer, http = make_normalizer(endpoint, [])
        with pytest.raises(ValidationError):
            await normalizer.submit("")
        assert http.posts == []

    @pytest.mark.parametrize(
        "body,expected",
        [
            ({"error": "quota exceeded"}, "quota exceeded"),
            ({"error": {"message": "invalid image", "err_code": 3}}, "invalid image"),
            ({}, "HTTP 402 Payment Required"),
            ("plain text", "HTTP 402 Payment Required"),
        ],
    )
    async def test_non_2xx_is_provider_error(self, endpoint, body, expected):
        result = {"status": 402, "reason": "Payment Required", "headers": {}, "body": body}
        normalizer, _ = make_normalizer(endpoint, [result])

        with pytest.raises(ProviderError) as excinfo:
            await normalizer.submit("https://x/a.png")

        assert excinfo.value.code == 402
        assert excinfo.value.message == expected

    async def test_error_in_2xx_body_is_provider_error(self, endpoint):
        normalizer, _ = make_normalizer(endpoint, [ok({"id": "j1", "error": "model offline"})])
        with pytest.raises(ProviderError) as excinfo:
            await normalizer.submit("https://x/a.png")
        assert excinfo.value.message == "model offline"

    async def test_transport_failure_is_submission_error(self, endpoint):
        normalizer, _ = make_normalizer(endpoint, [TransportError("timed out")])
        with pytest.raises(SubmissionError):
            await normalizer.submit("https://x/a.png")

    async def test_connect_failures_are_retried(self, endpoint):
        normalizer, http = make_normalizer(
            endpoint,
            [ConnectTransportError("refused"), ConnectTransportError("refused"), ok({"id": "j1"})],
            retry=TenacityRetryAdapter(),
        )
        job = await normalizer.submit("https://x/a.png")
        assert job.id == "j1"
        assert len(http.posts) == 3

    async def test_connect_retries_exhausted(self, endpoint):
        normalizer, http = make_normalizer(
            endpoint,
            [ConnectTransportError("refused")] * 3,
            retry=TenacityRetryAdapter(),
        )
        with pytest.raises(SubmissionError):
            await normalizer.submit("https://x/a.png")
        assert len(http.posts) == 3

    async def test_sent_request_is_not_retried(self, endpoint):
        normalizer, http = make_normalizer(
            endpoint,
            [TransportError("server disconnected"), ok({"id": "j1"})],
            retry=TenacityRetryAdapter(),
        )
        with pytest.raises(SubmissionError):
            await normalizer.submit("https://x/a.png")
        assert len(http.posts) == 1

    async def test_identical_references_are_not_deduplicated(self, endpoint):
        normalizer, http = make_normalizer(endpoint, [ok({"id": "j1"}), ok({"id": "j2"})])
        first = await normalizer.submit("https://x/a.png")
        second = await normalizer.submit("https://x/a.png")
        assert first.id != second.id
        assert len(http.posts) == 2


def test_build_submit_curl():
    command = build_submit_curl("https://x/a.png", "k", SUBMIT_URL)
    assert command.startswith(f"curl -X POST {SUBMIT_URL}")
    assert "'Authorization: Bearer k'" in command
    assert '{"input_image_url": "https://x/a.png"}' in command


def test_build_submit_curl_validates_reference():
    with pytest.raises(ValidationError):
        build_submit_curl("nope", "k", SUBMIT_URL)
