"""
Shared constants for yttranscribe.
Single source of truth — imported by every other module.
"""

import pathlib
import tempfile

# ── Application identity ──────────────────────────────────────────────
APP_NAME = "yttranscribe"
APP_TITLE = "YouTube Transcribe API"
APP_VERSION = "1.0.0"

# ── Filesystem paths ─────────────────────────────────────────────────
DEFAULT_SCRATCH_DIR = pathlib.Path(tempfile.gettempdir()) / APP_NAME
SCRATCH_PREFIX = "yt_"
GENERIC_EXTENSION = ".bin"

# ── Result source tags (wire values) ──────────────────────────────────
class Source:
    CAPTIONS = "captions"
    SPEECH_API = "openai"

# ── Deployment variants of the URL workflow ───────────────────────────
class CaptionMode:
    FALLBACK = "fallback"
    CAPTION_ONLY = "caption_only"

class CaptionSession:
    COOKIES = "cookies"
    ANONYMOUS = "anonymous"

# ── Error codes ───────────────────────────────────────────────────────
class ErrorCode:
    # Caller problems
    VALIDATION = "ERR_VALIDATION"
    PAYLOAD_TOO_LARGE = "ERR_PAYLOAD_TOO_LARGE"

    # Expected outcome in caption-only deployments
    CAPTION_UNAVAILABLE = "ERR_CAPTION_UNAVAILABLE"

    # Upstream / speech API
    NO_AUDIO_STREAM = "ERR_NO_AUDIO_STREAM"
    DOWNLOAD_FAILED = "ERR_DOWNLOAD_FAILED"
    EMPTY_TRANSCRIPT = "ERR_EMPTY_TRANSCRIPT"
    TRANSCRIBE_FAILED = "ERR_TRANSCRIBE_FAILED"
    STORAGE_FAILED = "ERR_STORAGE_FAILED"

    # Deployment
    CONFIG_MISSING_API_KEY = "ERR_CONFIG_MISSING_API_KEY"

    # Not a failure: request was cancelled mid-stage
    CANCELLED = "ERR_CANCELLED"

# Short names used in the JSON "error" field
ERROR_WIRE_NAMES = {
    ErrorCode.VALIDATION: "validation_error",
    ErrorCode.PAYLOAD_TOO_LARGE: "payload_too_large",
    ErrorCode.CAPTION_UNAVAILABLE: "caption_unavailable",
    ErrorCode.NO_AUDIO_STREAM: "no_audio_stream",
    ErrorCode.DOWNLOAD_FAILED: "download_failed",
    ErrorCode.EMPTY_TRANSCRIPT: "empty_transcript",
    ErrorCode.TRANSCRIBE_FAILED: "transcription_failed",
    ErrorCode.STORAGE_FAILED: "storage_failed",
    ErrorCode.CONFIG_MISSING_API_KEY: "missing_api_key",
    ErrorCode.CANCELLED: "cancelled",
}

ERROR_HTTP_STATUS = {
    ErrorCode.VALIDATION: 400,
    ErrorCode.PAYLOAD_TOO_LARGE: 413,
    ErrorCode.CAPTION_UNAVAILABLE: 409,
    ErrorCode.NO_AUDIO_STREAM: 500,
    ErrorCode.DOWNLOAD_FAILED: 500,
    ErrorCode.EMPTY_TRANSCRIPT: 500,
    ErrorCode.TRANSCRIBE_FAILED: 500,
    ErrorCode.STORAGE_FAILED: 500,
    ErrorCode.CONFIG_MISSING_API_KEY: 500,
    ErrorCode.CANCELLED: 499,
}

# ── Hints and notes shown to callers ──────────────────────────────────
UPLOAD_HINT = ("The server could not fetch this video's media. "
               "Uploading the audio/video file via /transcribe/upload is the reliable fallback.")
CAPTION_MISSING_DETAILS = ("This video has no public caption track, "
                           "or the server cannot reach it.")
CAPTION_MISSING_HINT = ("If cookies did not help either, the server may be region/IP blocked. "
                        "Uploading the file is the most reliable option.")
CAPTION_ERROR_DETAILS = "Caption data could not be accessed (IP/region/age/cookie restrictions)."
CAPTION_ERROR_HINT = ("If cookies did not help, the server is most likely region/IP blocked. "
                      "Upload is required.")
SPEECH_API_NOTE = "No usable captions were found; the audio was transcribed with the speech-to-text API."
MISSING_API_KEY_MESSAGE = "Speech-to-text API key is not configured (OPENAI_API_KEY)."

# ── Session identity ─────────────────────────────────────────────────
BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
HTTPONLY_PREFIX = "#HttpOnly_"
NETSCAPE_FIELD_COUNT = 7

# ── Captions ──────────────────────────────────────────────────────────
# Formats we know how to turn into segment lists, best first
CAPTION_FORMAT_PREFERENCE = ("json3", "vtt")
CAPTION_TIMEOUT_SEC = 30

# ── Audio download ────────────────────────────────────────────────────
DOWNLOAD_CHUNK_BYTES = 256 * 1024
DOWNLOAD_CONNECT_TIMEOUT_SEC = 15
DOWNLOAD_READ_TIMEOUT_SEC = 120
UPLOAD_READ_CHUNK_BYTES = 1024 * 1024

# ── Speech-to-text API ────────────────────────────────────────────────
SPEECH_API_BASE = "https://api.openai.com/v1"
SPEECH_MODEL = "whisper-1"
SPEECH_MIN_TIMEOUT_SEC = 120

# ── Server ────────────────────────────────────────────────────────────
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 10000
DEFAULT_MAX_BODY_BYTES = 1024 * 1024 * 1024  # 1GB

# ── Languages ─────────────────────────────────────────────────────────
LANGUAGE_ALIASES = {
    "turkish": "tr",
    "türkçe": "tr",
    "tr": "tr",
    "english": "en",
    "ingilizce": "en",
    "en": "en",
}

# ── Misc ──────────────────────────────────────────────────────────────
YOUTUBE_URL_PATTERNS = [
    r'(?:https?://)?(?:www\.)?youtube\.com/watch\?v=([a-zA-Z0-9_-]{11})',
    r'(?:https?://)?youtu\.be/([a-zA-Z0-9_-]{11})',
    r'(?:https?://)?(?:www\.)?youtube\.com/embed/([a-zA-Z0-9_-]{11})',
    r'(?:https?://)?(?:www\.)?youtube\.com/v/([a-zA-Z0-9_-]{11})',
    r'(?:https?://)?(?:www\.)?youtube\.com/shorts/([a-zA-Z0-9_-]{11})',
    r'(?:https?://)?m\.youtube\.com/watch\?v=([a-zA-Z0-9_-]{11})',
]
VIDEO_ID_RE = r'^[a-zA-Z0-9_-]{11}$'
WATCH_URL_TEMPLATE = "https://www.youtube.com/watch?v={video_id}"

# Characters allowed in a preserved upload extension
SAFE_EXTENSION_RE = r'^\.[A-Za-z0-9]{1,10}$'
