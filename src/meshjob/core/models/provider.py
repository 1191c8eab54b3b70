from typing import Dict

from pydantic import BaseModel, Field, HttpUrl, SecretStr


class ProviderEndpoint(BaseModel):
    """Connection details for the remote generation provider"""

    name: str = Field(default="hunyuan3d-v21", description="Name of the provider model endpoint")
    submit_url: HttpUrl = Field(
        description="Endpoint accepting POST {input_image_url} to create a generation job"
    )
    status_url: HttpUrl = Field(
        description=(
            "Endpoint answering GET requests for a job's status. "
            "The job id is passed as the 'request_id' query parameter."
        )
    )
    api_key: SecretStr = Field(
        default=SecretStr(""),
        description="Bearer credential. Only ever sent to the provider, never to clients.",
    )
    timeout: float = Field(
        default=30.0,
        gt=0,
        description="Timeout in seconds for a single request to the provider",
    )

    def auth_headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        token = self.api_key.get_secret_value()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers
