"""Configuration models for core domain components.

Pydantic-based configuration classes consolidate the settings of the managers
so that composition roots and tests can inject them explicitly.
"""

from pydantic import BaseModel, Field

from meshjob.core.models.provider import ProviderEndpoint


class PollerConfig(BaseModel):
    """Configuration for StatusPoller behavior.

    Attributes:
        poll_interval: Seconds to suspend between status queries (3.0 == 3000 ms)
        max_attempts: Ceiling on status queries per job before reporting a timeout
        failure_threshold: Consecutive transient failures tolerated before failing the job
    """

    poll_interval: float = Field(
        default=3.0,
        gt=0,
        description="Interval in seconds between status queries",
    )

    max_attempts: int = Field(
        default=600,
        ge=1,
        description="Maximum number of status queries issued for one job",
    )

    failure_threshold: int = Field(
        default=3,
        ge=1,
        description="Consecutive transient query failures that escalate to a failed job",
    )

    model_config = {
        "frozen": True,
        "extra": "forbid",
    }

    @classmethod
    def from_app_settings(cls, settings) -> "PollerConfig":
        return cls(
            poll_interval=settings.MESHJOB_POLL_INTERVAL,
            max_attempts=settings.MESHJOB_POLL_MAX_ATTEMPTS,
            failure_threshold=settings.MESHJOB_POLL_FAILURE_THRESHOLD,
        )


class SubmissionConfig(BaseModel):
    """Configuration for SubmissionNormalizer behavior.

    Only connection failures (request never sent) are retried, so a retry can
    never create a second job on the provider.
    """

    connect_retries: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts when the connection to the provider cannot be established",
    )

    retry_base_wait: float = Field(
        default=0.5,
        gt=0,
        description="Base wait time in seconds for exponential backoff between attempts",
    )

    retry_max_wait: float = Field(
        default=4.0,
        gt=0,
        description="Maximum wait time in seconds between attempts",
    )

    model_config = {
        "frozen": True,
        "extra": "forbid",
    }

    @classmethod
    def from_app_settings(cls, settings) -> "SubmissionConfig":
        return cls(connect_retries=settings.MESHJOB_SUBMIT_CONNECT_RETRIES)


def provider_from_app_settings(settings) -> ProviderEndpoint:
    return ProviderEndpoint(
        name=settings.MESHJOB_PROVIDER_NAME,
        submit_url=settings.MESHJOB_PROVIDER_SUBMIT_URL,
        status_url=settings.MESHJOB_PROVIDER_STATUS_URL,
        api_key=settings.MESHJOB_PROVIDER_API_KEY,
        timeout=settings.MESHJOB_PROVIDER_TIMEOUT,
    )
