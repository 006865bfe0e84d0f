"""
Transcription orchestrator.

URL workflow:    START → CAPTION_ATTEMPT → SUCCESS(captions)
                                         → AUDIO_DOWNLOAD → TRANSCRIBE → SUCCESS(speech API) | FAILURE
Upload workflow: START → SAVE_TEMP → TRANSCRIBE → SUCCESS | FAILURE

No loops and no retries: a failed stage either escalates to the next
stage (captions only) or ends the request. Each stage returns an Outcome
and the workflow branches on its kind. Blocking library calls run in the
default executor; scratch files live inside scratch_file() blocks.
"""

import asyncio
import functools
import logging
import threading
from dataclasses import dataclass
from typing import Any, Optional

from yttranscribe.core.captions_fetch import fetch_captions
from yttranscribe.core.config import ServiceConfig
from yttranscribe.core.constants import (
    CaptionSession, ErrorCode, Source, UPLOAD_HINT, SPEECH_API_NOTE,
    CAPTION_MISSING_DETAILS, CAPTION_MISSING_HINT, CAPTION_ERROR_DETAILS, CAPTION_ERROR_HINT,
    MISSING_API_KEY_MESSAGE,
)
from yttranscribe.core.cookies import anonymous_session, build_session
from yttranscribe.core.download_audio import resolve_audio_stream, stream_to_file
from yttranscribe.core.error_codes import TranscribeError
from yttranscribe.core.models import TranscriptionRequest, TranscriptionResult
from yttranscribe.core.scratch import save_upload, scratch_file
from yttranscribe.core.security_utils import safe_extension, upload_basename
from yttranscribe.core.transcribe_openai import transcribe_file
from yttranscribe.core.url_parse import normalize_language, resolve_video_url

logger = logging.getLogger(__name__)


class OutcomeKind:
    OK = "ok"
    ABSENT = "absent"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class Outcome:
    """Result of one workflow stage."""

    kind: str
    value: Any = None
    error_code: Optional[str] = None
    message: Optional[str] = None

    @classmethod
    def ok(cls, value) -> "Outcome":
        return cls(OutcomeKind.OK, value=value)

    @classmethod
    def absent(cls) -> "Outcome":
        return cls(OutcomeKind.ABSENT)

    @classmethod
    def skipped(cls) -> "Outcome":
        return cls(OutcomeKind.SKIPPED)

    @classmethod
    def failed(cls, error_code: str, message: str) -> "Outcome":
        return cls(OutcomeKind.FAILED, error_code=error_code, message=message)


class TranscriptionOrchestrator:
    """
    Runs the URL and upload workflows.
    Collaborators are injectable so tests can replace the network-facing ones.
    """

    def __init__(self, config: ServiceConfig, *,
                 session_factory=build_session,
                 caption_fetcher=fetch_captions,
                 stream_resolver=resolve_audio_stream,
                 stream_downloader=stream_to_file,
                 transcriber=transcribe_file):
        self.config = config
        self._session_factory = session_factory
        self._caption_fetcher = caption_fetcher
        self._stream_resolver = stream_resolver
        self._stream_downloader = stream_downloader
        self._transcriber = transcriber

    # ── Stage runner ─────────────────────────────────────────────────

    async def _run_blocking(self, fn, *args, cancel: threading.Event | None = None):
        """Run a blocking call in the executor; flag the worker if we get cancelled."""
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, functools.partial(fn, *args))
        except asyncio.CancelledError:
            if cancel is not None:
                cancel.set()
            raise

    async def _stage(self, default_code: str, fn, *args,
                     cancel: threading.Event | None = None) -> Outcome:
        try:
            return Outcome.ok(await self._run_blocking(fn, *args, cancel=cancel))
        except TranscribeError as e:
            return Outcome.failed(e.code, e.message)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning("%s stage error: %s", default_code, e, exc_info=True)
            return Outcome.failed(default_code, str(e) or type(e).__name__)

    # ── Stages ───────────────────────────────────────────────────────

    async def _attempt_captions(self, session, video_url: str, lang: str | None) -> Outcome:
        """CAPTION_ATTEMPT. Never fails the request: errors become a FAILED outcome."""
        try:
            text = await self._run_blocking(self._caption_fetcher, session, video_url, lang)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning("Caption fetch failed for %s: %s", video_url, e)
            return Outcome.failed(ErrorCode.CAPTION_UNAVAILABLE, str(e) or type(e).__name__)

        if text and text.strip():
            logger.info("Captions FOUND len=%d", len(text))
            return Outcome.ok(text)
        logger.info("No captions available for %s", video_url)
        return Outcome.absent()

    async def _transcribe_stage(self, path, file_name: str, lang: str | None) -> Outcome:
        """TRANSCRIBE. The caller's scratch_file() block deletes path afterwards."""
        return await self._stage(
            ErrorCode.TRANSCRIBE_FAILED, self._transcriber,
            self.config.openai_api_key, path, file_name, lang,
            self.config.speech_model, self.config.speech_api_base,
        )

    async def _speech_fallback(self, session, video_url: str, lang: str | None) -> TranscriptionResult:
        """AUDIO_DOWNLOAD → TRANSCRIBE."""
        cancel = threading.Event()

        resolved = await self._stage(ErrorCode.DOWNLOAD_FAILED, self._stream_resolver,
                                     session, video_url, cancel=cancel)
        if resolved.kind != OutcomeKind.OK:
            logger.warning("Audio stream lookup failed: %s", resolved.message)
            return TranscriptionResult.failure(resolved.error_code, resolved.message, UPLOAD_HINT)
        stream = resolved.value

        try:
            async with scratch_file(self.config.scratch_dir, f".{stream.container}") as path:
                downloaded = await self._stage(ErrorCode.DOWNLOAD_FAILED, self._stream_downloader,
                                               session, stream, path, cancel, cancel=cancel)
                if downloaded.kind != OutcomeKind.OK:
                    logger.warning("Audio download failed: %s", downloaded.message)
                    return TranscriptionResult.failure(downloaded.error_code, downloaded.message,
                                                       UPLOAD_HINT)

                spoken = await self._transcribe_stage(path, path.name, lang)
        except OSError as e:
            logger.error("Scratch storage failed: %s", e)
            return TranscriptionResult.failure(ErrorCode.STORAGE_FAILED,
                                               f"Could not store downloaded audio: {e}", UPLOAD_HINT)

        if spoken.kind != OutcomeKind.OK:
            logger.warning("Transcription failed: %s", spoken.message)
            return TranscriptionResult.failure(spoken.error_code, spoken.message, UPLOAD_HINT)

        logger.info("Speech API transcript len=%d", len(spoken.value))
        return TranscriptionResult.success(Source.SPEECH_API, spoken.value, SPEECH_API_NOTE)

    # ── Helpers ──────────────────────────────────────────────────────

    def _caption_unavailable(self, caption: Outcome) -> TranscriptionResult:
        if caption.kind == OutcomeKind.FAILED:
            return TranscriptionResult.failure(ErrorCode.CAPTION_UNAVAILABLE,
                                               CAPTION_ERROR_DETAILS, CAPTION_ERROR_HINT)
        return TranscriptionResult.failure(ErrorCode.CAPTION_UNAVAILABLE,
                                           CAPTION_MISSING_DETAILS, CAPTION_MISSING_HINT)

    def _missing_api_key(self) -> TranscriptionResult | None:
        if self.config.openai_api_key:
            return None
        logger.error("OPENAI_API_KEY is not configured")
        return TranscriptionResult.failure(ErrorCode.CONFIG_MISSING_API_KEY, MISSING_API_KEY_MESSAGE)

    # ── Workflows ────────────────────────────────────────────────────

    async def transcribe_url(self, request: TranscriptionRequest) -> TranscriptionResult:
        """URL workflow, in fallback or caption-only mode depending on config."""
        logger.info("START transcribe url=%s mode=%s", request.url, self.config.caption_mode)
        try:
            try:
                video_url = resolve_video_url(request.url)
            except TranscribeError as e:
                return TranscriptionResult.failure(e.code, e.message)

            lang = normalize_language(request.prefer_language)
            media_session = self._session_factory(self.config.cookies_b64)
            if self.config.caption_session == CaptionSession.ANONYMOUS:
                caption_session = anonymous_session()
            else:
                caption_session = media_session

            try:
                if request.force_speech_api and not self.config.caption_only:
                    logger.info("Caption attempt skipped (force speech API)")
                    caption = Outcome.skipped()
                else:
                    logger.info("Trying captions... lang=%s", lang)
                    caption = await self._attempt_captions(caption_session, video_url, lang)

                if caption.kind == OutcomeKind.OK:
                    return TranscriptionResult.success(Source.CAPTIONS, caption.value)

                if self.config.caption_only:
                    return self._caption_unavailable(caption)

                missing_key = self._missing_api_key()
                if missing_key is not None:
                    return missing_key

                return await self._speech_fallback(media_session, video_url, lang)
            finally:
                if caption_session is not media_session:
                    caption_session.close()
                media_session.close()
        finally:
            logger.info("END transcribe")

    async def transcribe_upload(self, request: TranscriptionRequest) -> TranscriptionResult:
        """Upload workflow. Always uses the speech API."""
        upload = request.upload
        logger.info("START transcribe/upload file=%s",
                    upload_basename(getattr(upload, 'filename', None)) or "-")
        try:
            if upload is None:
                return TranscriptionResult.failure(ErrorCode.VALIDATION, "file required")
            if getattr(upload, 'size', None) == 0:
                return TranscriptionResult.failure(ErrorCode.VALIDATION, "file is empty")

            missing_key = self._missing_api_key()
            if missing_key is not None:
                return missing_key

            lang = normalize_language(request.prefer_language)
            suffix = safe_extension(upload.filename)
            file_name = upload_basename(upload.filename) or f"upload{suffix}"

            try:
                async with scratch_file(self.config.scratch_dir, suffix) as path:
                    try:
                        saved = await save_upload(upload, path, self.config.max_body_bytes)
                    except TranscribeError as e:
                        return TranscriptionResult.failure(e.code, e.message)
                    if saved.size_bytes == 0:
                        return TranscriptionResult.failure(ErrorCode.VALIDATION, "file is empty")

                    spoken = await self._transcribe_stage(path, file_name, lang)
            except OSError as e:
                logger.error("Scratch storage failed: %s", e)
                return TranscriptionResult.failure(ErrorCode.STORAGE_FAILED,
                                                   f"Could not store upload: {e}")

            if spoken.kind != OutcomeKind.OK:
                logger.warning("Upload transcription failed: %s", spoken.message)
                return TranscriptionResult.failure(spoken.error_code, spoken.message)

            logger.info("Upload transcript len=%d", len(spoken.value))
            return TranscriptionResult.success(Source.SPEECH_API, spoken.value)
        finally:
            logger.info("END transcribe/upload")
