"""
Pydantic request/response models for the HTTP API.
"""

from typing import Optional

from pydantic import BaseModel, Field, field_validator

from yttranscribe.core.error_codes import wire_name_for
from yttranscribe.core.models import TranscriptionResult


class TranscribeRequest(BaseModel):
    url: Optional[str] = Field(None, description="Video URL or 11-character video id")
    preferLanguage: Optional[str] = Field(None, description="Preferred caption/speech language")
    forceOpenAi: bool = Field(False, description="Skip captions and use the speech-to-text API")

    @field_validator("url", "preferLanguage")
    def _strip(cls, v):
        if isinstance(v, str):
            return v.strip()
        return v


class TranscribeResponse(BaseModel):
    ok: bool = True
    source: str
    transcript: str
    note: Optional[str] = None


class ErrorResponse(BaseModel):
    ok: bool = False
    error: str
    details: Optional[str] = None
    hint: Optional[str] = None


def result_to_body(result: TranscriptionResult) -> dict:
    """Serialize a workflow result; optional fields are left out when empty."""
    if result.ok:
        body = TranscribeResponse(source=result.source, transcript=result.transcript,
                                  note=result.note)
    else:
        body = ErrorResponse(error=wire_name_for(result.error_code),
                             details=result.details, hint=result.hint)
    return body.model_dump(exclude_none=True)
