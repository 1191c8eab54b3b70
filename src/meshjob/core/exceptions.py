from typing import Optional


class MeshJobError(Exception):
    """Base exception for submission and polling failures.

    Attributes:
        message: Human-readable error description
        diagnostic: Technical diagnostic information for debugging
        job_id: Optional job identifier
    """
    def __init__(
        self,
        message: str,
        diagnostic: Optional[str] = None,
        job_id: Optional[str] = None
    ):
        self.message = message
        self.diagnostic = diagnostic
        self.job_id = job_id
        super().__init__(message)


class ValidationError(MeshJobError):
    """Raised when an image reference is empty or not a usable URL / data URL."""


class TransportError(MeshJobError):
    """Raised by HTTP adapters when no response was received.

    Attributes:
        url: Target URL of the failed request
    """
    def __init__(self, message: str, url: Optional[str] = None, diagnostic: Optional[str] = None):
        self.url = url
        super().__init__(message=message, diagnostic=diagnostic)


class ConnectTransportError(TransportError):
    """Connection could not be established; the request never left the client."""


class SubmissionError(MeshJobError):
    """Raised when the submission request got no response from the provider."""


class ProviderError(MeshJobError):
    """Raised when the provider answers with a non-2xx status.

    Attributes:
        code: HTTP status code returned by the provider
        upstream_body: Response body from provider (if available)
    """
    def __init__(
        self,
        code: int,
        message: str,
        upstream_body: Optional[object] = None,
        job_id: Optional[str] = None
    ):
        self.code = code
        self.upstream_body = upstream_body
        super().__init__(message=message, diagnostic=f"HTTP {code}", job_id=job_id)


class ProtocolError(MeshJobError):
    """Raised when a provider response violates its contract (missing id, unparseable body)."""


class TransientPollError(MeshJobError):
    """Retryable failure of a single status query (no response or unusable body).

    Attributes:
        cause: Underlying exception
    """
    def __init__(self, message: str, cause: Optional[Exception] = None, job_id: Optional[str] = None):
        self.cause = cause
        diagnostic = f"{type(cause).__name__}: {cause}" if cause else None
        super().__init__(message=message, diagnostic=diagnostic, job_id=job_id)


class TerminalJobError(MeshJobError):
    """The provider explicitly reported the job as failed. Never retried."""


class JobTimeoutError(MeshJobError):
    """Raised when a job exhausts its poll attempts without reaching a terminal status.

    Attributes:
        attempts: Number of status queries issued
        elapsed_seconds: Time elapsed before giving up
    """
    def __init__(self, job_id: str, attempts: int, elapsed_seconds: float):
        self.attempts = attempts
        self.elapsed_seconds = elapsed_seconds
        message = f"Job {job_id} did not finish after {attempts} status queries ({elapsed_seconds:.1f}s)"
        super().__init__(message=message, job_id=job_id)
