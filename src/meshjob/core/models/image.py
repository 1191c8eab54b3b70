from pydantic import BaseModel


class StoredImage(BaseModel):
    payload: str  # base64 data URL
    mime_type: str


class StagedImage(BaseModel):
    """Result of staging an uploaded image so the provider can fetch it by URL."""

    id: str
    url: str
    data_url: str
    filename: str | None = None
    size: int
    mime_type: str
