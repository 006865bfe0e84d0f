"""
Speech-to-text via the OpenAI audio transcription endpoint.
Single request, no retries: failures are reported to the caller.
"""

import json
import logging
from pathlib import Path

import requests

from yttranscribe.core.error_codes import TranscribeError
from yttranscribe.core.constants import (
    ErrorCode, SPEECH_API_BASE, SPEECH_MODEL, SPEECH_MIN_TIMEOUT_SEC,
)

logger = logging.getLogger(__name__)


def _timeout_for(file_path: Path) -> int:
    # ~1 min per 10MB, minimum 120s
    file_size = file_path.stat().st_size
    return max(SPEECH_MIN_TIMEOUT_SEC, int(file_size / (10 * 1024 * 1024) * 60) + 60)


def transcribe_file(api_key: str, file_path: Path, file_name: str,
                    language: str | None = None,
                    model: str = SPEECH_MODEL,
                    api_base: str = SPEECH_API_BASE) -> str:
    """
    Transcribe a local audio/video file. Returns trimmed transcript text.

    language=None lets the API auto-detect. Transport errors from requests
    propagate unchanged; a non-200 reply or blank text raises TranscribeError.
    """
    data = {"model": model, "response_format": "json"}
    if language:
        data["language"] = language

    with open(file_path, 'rb') as f:
        resp = requests.post(
            f"{api_base}/audio/transcriptions",
            headers={"Authorization": f"Bearer {api_key}"},
            files={"file": (file_name, f)},
            data=data,
            timeout=_timeout_for(file_path),
        )

    if resp.status_code != 200:
        # Never log the API key; body excerpt only
        error_body = resp.text[:300] if resp.text else "No response body"
        raise TranscribeError(ErrorCode.TRANSCRIBE_FAILED,
                              f"Speech API returned {resp.status_code}: {error_body}")

    try:
        text = resp.json().get("text") or ""
    except json.JSONDecodeError:
        raise TranscribeError(ErrorCode.TRANSCRIBE_FAILED, "Failed to parse speech API response JSON")

    text = text.strip()
    if not text:
        raise TranscribeError(ErrorCode.EMPTY_TRANSCRIPT, "Speech API returned an empty transcript")

    logger.info("Speech API transcript: %d chars (model=%s, language=%s)",
                len(text), model, language or "auto")
    return text
