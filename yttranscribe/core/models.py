"""
Data model shared by the transcription workflows.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Protocol

import requests


@dataclass(frozen=True)
class CaptionTrack:
    """One caption stream offered by the source video."""

    language_code: str
    is_auto_generated: bool
    name: str = ""
    # format ext → content URL, as listed by the platform
    urls: dict = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class CaptionManifest:
    """All caption tracks for a video."""

    video_url: str
    tracks: tuple = ()


@dataclass(frozen=True)
class AudioStreamDescriptor:
    """A selectable audio-only rendition of a video."""

    format_id: str
    container: str
    bitrate_kbps: float | None
    size_bytes: int | None
    url: str
    http_headers: dict = field(default_factory=dict, compare=False)
    # Byte-range size yt-dlp prescribes for this stream; None means one request
    http_chunk_size: int | None = None


@dataclass(frozen=True)
class CookieRecord:
    """One imported session cookie."""

    domain: str
    path: str
    secure: bool
    name: str
    value: str
    http_only: bool = False


@dataclass
class CookieImportReport:
    """Outcome of parsing a Netscape cookie file."""

    records: list = field(default_factory=list)
    skipped: int = 0
    rejected: int = 0

    @property
    def accepted(self) -> int:
        return len(self.records)


@dataclass
class Session:
    """Configured network client for caption and audio calls."""

    http: requests.Session
    cookies: tuple = ()
    user_agent: Optional[str] = None

    @property
    def authenticated(self) -> bool:
        return bool(self.cookies)

    def close(self):
        self.http.close()


@dataclass
class ScratchFile:
    """A transient local file holding downloaded or uploaded media."""

    path: Path
    size_bytes: int = 0
    descriptor: Optional[AudioStreamDescriptor] = None

    @property
    def name(self) -> str:
        return self.path.name


class UploadedMedia(Protocol):
    """What the upload workflow needs from an uploaded file (FastAPI UploadFile fits)."""

    filename: Optional[str]

    async def read(self, size: int = -1) -> bytes: ...


@dataclass
class TranscriptionRequest:
    """One caller request."""

    url: Optional[str] = None
    upload: Optional[UploadedMedia] = None
    prefer_language: Optional[str] = None
    force_speech_api: bool = False


@dataclass(frozen=True)
class TranscriptionResult:
    """Final outcome of a workflow."""

    ok: bool
    source: Optional[str] = None
    transcript: Optional[str] = None
    note: Optional[str] = None
    error_code: Optional[str] = None
    details: Optional[str] = None
    hint: Optional[str] = None

    def __post_init__(self):
        if self.ok and not (self.transcript and self.transcript.strip()):
            raise ValueError("successful result requires transcript text")

    @classmethod
    def success(cls, source: str, transcript: str, note: str | None = None) -> "TranscriptionResult":
        return cls(ok=True, source=source, transcript=transcript, note=note)

    @classmethod
    def failure(cls, error_code: str, details: str, hint: str | None = None) -> "TranscriptionResult":
        return cls(ok=False, error_code=error_code, details=details, hint=hint)
