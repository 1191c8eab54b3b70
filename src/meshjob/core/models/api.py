from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from meshjob.core.models.job import JobStatusSnapshot


class GenerateRequest(BaseModel):
    input_image_url: Optional[str] = None


class GenerateResponse(BaseModel):
    id: str
    request_id: str
    created_at: datetime


class JobStatusResponse(BaseModel):
    id: str
    request_id: str
    snapshot: JobStatusSnapshot
    polling: bool


class ErrorResponse(BaseModel):
    error: str
    detail: Optional[str] = None
