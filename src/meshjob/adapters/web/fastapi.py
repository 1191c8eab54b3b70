# meshjob/adapters/web/fastapi.py
from contextlib import asynccontextmanager
from typing import Callable
import uuid

from fastapi import FastAPI, File, Request, UploadFile
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, Response
from pydantic import ValidationError as PydanticValidationError

from meshjob.core.exceptions import (
    MeshJobError,
    ProtocolError,
    ProviderError,
    SubmissionError,
    ValidationError,
)
from meshjob.core.interfaces.http_client import HttpClientPort
from meshjob.core.logging_config import bind_correlation_id
from meshjob.core.managers.generation_manager import GenerationManager
from meshjob.core.managers.observers import SnapshotRecorder
from meshjob.core.managers.upload_staging import UploadStager
from meshjob.core.models.api import (
    ErrorResponse,
    GenerateRequest,
    GenerateResponse,
    JobStatusResponse,
)
from meshjob.core.settings import logger


# Driver adapter: depends on the core managers, the core never depends on it.
def create_app(
    http_client: HttpClientPort,
    generation_manager_factory: Callable[[HttpClientPort], GenerationManager],
    stager: UploadStager,
    recorder: SnapshotRecorder,
):
    """Create the FastAPI app.

    Concrete infrastructure is assembled by the composition root and passed
    in; the generation manager is built once the HTTP session is open.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        async with http_client as client:
            manager = generation_manager_factory(client)
            app.state.generation_manager = manager
            try:
                yield
            finally:
                await manager.shutdown()

    app = FastAPI(title="meshjob", lifespan=lifespan)

    def render_error(status_code: int, error: str, detail: str | None = None) -> JSONResponse:
        payload = ErrorResponse(error=error, detail=detail).model_dump(exclude_none=True)
        return JSONResponse(status_code=status_code, content=payload)

    @app.middleware("http")
    async def correlation_id_middleware(request: Request, call_next):
        incoming = request.headers.get("x-request-id")
        cid = incoming or uuid.uuid4().hex[:12]
        with bind_correlation_id(cid):
            response = await call_next(request)
        response.headers["X-Request-ID"] = cid
        return response

    @app.exception_handler(MeshJobError)
    async def meshjob_exception_handler(request: Request, exc: MeshJobError):
        if isinstance(exc, ValidationError):
            status_code = 400
        elif isinstance(exc, ProviderError):
            status_code = exc.code if 400 <= exc.code < 600 else 502
        elif isinstance(exc, (ProtocolError, SubmissionError)):
            status_code = 502
        else:
            status_code = 500
        if status_code >= 500:
            logger.error(f"[api] {request.method} {request.url.path} failed: {exc.message} diagnostic={exc.diagnostic}")
        return render_error(status_code, exc.message)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.post("/api/upload")
    async def upload_image(file: UploadFile = File(...)):
        data = await file.read()
        staged = await stager.stage(data, mime_type=file.content_type, filename=file.filename)
        return {
            "id": staged.id,
            "url": staged.url,
            "dataUrl": staged.data_url,
            "filename": staged.filename,
            "size": staged.size,
            "type": staged.mime_type,
        }

    @app.get("/api/image/{image_id}")
    async def get_image(image_id: str):
        try:
            content, mime_type = await stager.load(image_id)
        except KeyError:
            return render_error(404, "Image not found", image_id)
        return Response(
            content=content,
            media_type=mime_type,
            headers={"Cache-Control": "public, max-age=31536000"},
        )

    @app.post("/api/generate", response_model=GenerateResponse)
    async def generate(request: Request):
        try:
            raw = await request.json()
        except ValueError:
            return render_error(400, "Request body must be JSON")
        try:
            body = GenerateRequest.model_validate(raw if isinstance(raw, dict) else {})
        except PydanticValidationError:
            return render_error(400, "input_image_url must be a string")
        if not body.input_image_url:
            return render_error(400, "Missing input_image_url")

        manager: GenerationManager = request.app.state.generation_manager
        job = await manager.start(body.input_image_url, observer=recorder)
        return GenerateResponse(id=job.id, request_id=job.id, created_at=job.created_at)

    @app.get("/api/status", response_model=JobStatusResponse)
    async def job_status(request: Request, request_id: str | None = None):
        if not request_id:
            return render_error(400, "Missing request_id")
        snapshot = await recorder.latest(request_id)
        if snapshot is None:
            return render_error(404, "Job not found", request_id)
        manager: GenerationManager = request.app.state.generation_manager
        return JobStatusResponse(
            id=request_id,
            request_id=request_id,
            snapshot=snapshot,
            polling=manager.is_polling(request_id),
        )

    @app.post("/api/jobs/{job_id}/cancel", status_code=202)
    async def cancel_job(request: Request, job_id: str):
        manager: GenerationManager = request.app.state.generation_manager
        if not manager.cancel(job_id):
            return render_error(404, "No active job", job_id)
        return JSONResponse(status_code=202, content=jsonable_encoder({"id": job_id, "cancelled": True}))

    return app
