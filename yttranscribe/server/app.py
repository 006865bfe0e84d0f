"""FastAPI app exposing the transcription workflows over HTTP.

Run with:
uvicorn --factory yttranscribe.server.app:create_app --host 0.0.0.0 --port 10000

POST /transcribe            {"url": "...", "preferLanguage": "en", "forceOpenAi": false}
POST /transcribe/upload     multipart: file=<binary>, preferLanguage=<optional>
GET  /health
"""

import logging
from typing import Optional

from fastapi import FastAPI, File, Form, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from yttranscribe.core.config import ServiceConfig
from yttranscribe.core.constants import APP_TITLE, APP_VERSION, ErrorCode
from yttranscribe.core.diagnostics import get_diagnostics
from yttranscribe.core.error_codes import http_status_for, is_client_error, wire_name_for
from yttranscribe.core.models import TranscriptionRequest, TranscriptionResult
from yttranscribe.core.orchestrator import TranscriptionOrchestrator
from yttranscribe.server.schemas import (
    ErrorResponse, TranscribeRequest, TranscribeResponse, result_to_body,
)

logger = logging.getLogger(__name__)


def _respond(result: TranscriptionResult) -> JSONResponse:
    if result.ok:
        return JSONResponse(status_code=200, content=result_to_body(result))
    status = http_status_for(result.error_code)
    if is_client_error(result.error_code):
        logger.info("Rejected request: %s", result.details)
    return JSONResponse(status_code=status, content=result_to_body(result))


def _error(code: str, details: str) -> JSONResponse:
    body = ErrorResponse(error=wire_name_for(code), details=details)
    return JSONResponse(status_code=http_status_for(code), content=body.model_dump(exclude_none=True))


def create_app(config: ServiceConfig | None = None,
               orchestrator: TranscriptionOrchestrator | None = None) -> FastAPI:
    config = config or ServiceConfig.from_env()
    orchestrator = orchestrator or TranscriptionOrchestrator(config)

    app = FastAPI(title=APP_TITLE, version=APP_VERSION)
    app.state.config = config
    app.state.orchestrator = orchestrator

    @app.middleware("http")
    async def limit_body_size(request: Request, call_next):
        length = request.headers.get("content-length")
        if length is not None and length.isdigit() and int(length) > config.max_body_bytes:
            return _error(ErrorCode.PAYLOAD_TOO_LARGE,
                          f"Request body exceeds {config.max_body_bytes} bytes")
        return await call_next(request)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return _error(ErrorCode.VALIDATION, "Invalid request body")

    @app.get("/health")
    async def health():
        return get_diagnostics(config)

    @app.post("/transcribe", response_model=TranscribeResponse,
              responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse},
                         500: {"model": ErrorResponse}})
    async def transcribe(payload: TranscribeRequest):
        """
        Transcribe a video by URL.
        Tries platform captions first; falls back to the speech-to-text API
        unless the service runs in caption-only mode.
        """
        result = await orchestrator.transcribe_url(TranscriptionRequest(
            url=payload.url,
            prefer_language=payload.preferLanguage,
            force_speech_api=payload.forceOpenAi,
        ))
        return _respond(result)

    @app.post("/transcribe/upload", response_model=TranscribeResponse,
              responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}})
    async def transcribe_upload(file: Optional[UploadFile] = File(None),
                                preferLanguage: Optional[str] = Form(None)):
        """Transcribe an uploaded audio/video file with the speech-to-text API."""
        try:
            result = await orchestrator.transcribe_upload(TranscriptionRequest(
                upload=file,
                prefer_language=preferLanguage,
            ))
        finally:
            if file is not None:
                await file.close()
        return _respond(result)

    return app
