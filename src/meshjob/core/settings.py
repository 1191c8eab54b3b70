# Logging adapter for application-wide logging
from meshjob.adapters.logging_adapter import LoggingAdapter

from pydantic import HttpUrl, SecretStr, field_validator
from pydantic_settings import BaseSettings
from rich import print

from meshjob.core.interfaces.logging import LoggingPort


# using pydantic_settings to manage environment variables
# and do automatic type casting in a central place
class MeshJobSettings(BaseSettings):
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
        "extra": "ignore",
    }
    MESHJOB_LOG_LEVEL: str = "INFO"
    # Raise uvicorn.access to WARNING
    MESHJOB_DISABLE_ACCESS_LOG: bool = False
    MESHJOB_PROVIDER_NAME: str = "hunyuan3d-v21"
    MESHJOB_PROVIDER_SUBMIT_URL: HttpUrl = HttpUrl("https://api.302.ai/302/submit/hunyuan3d-v21")
    MESHJOB_PROVIDER_STATUS_URL: HttpUrl = HttpUrl("https://api.302.ai/302/submit/hunyuan3d-v21")
    # Held on the server side only; never echoed to clients
    MESHJOB_PROVIDER_API_KEY: SecretStr = SecretStr("")
    MESHJOB_PROVIDER_TIMEOUT: float = 30.0  # seconds
    MESHJOB_POLL_INTERVAL: float = 3.0  # seconds
    MESHJOB_POLL_MAX_ATTEMPTS: int = 600
    MESHJOB_POLL_FAILURE_THRESHOLD: int = 3
    MESHJOB_SUBMIT_CONNECT_RETRIES: int = 3
    # Finished jobs kept for status lookups; the oldest are forgotten first
    MESHJOB_RETAINED_JOBS: int = 1000
    MESHJOB_SNAPSHOT_HISTORY: int = 50
    MESHJOB_API_HOST: str = "0.0.0.0"
    MESHJOB_API_PORT: int = 8000
    # Base URL the provider uses to fetch staged uploads, e.g. https://meshjob.example.org
    MESHJOB_PUBLIC_BASE_URL: str = "http://localhost:8000"

    def print_settings(self, logger: LoggingPort):
        """Prints the settings for debugging purposes"""
        logger.info("meshjob settings:")
        print(self)

    @field_validator("MESHJOB_PUBLIC_BASE_URL", mode="before")
    def strip_trailing_slash(cls, value: str) -> str:
        """Ensure MESHJOB_PUBLIC_BASE_URL has no trailing slash."""
        return str(value).rstrip("/")


app_settings = MeshJobSettings()

logger = LoggingAdapter("meshjob", app_settings.MESHJOB_LOG_LEVEL)
