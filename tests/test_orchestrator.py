#!/usr/bin/env python3
"""
Workflow tests for TranscriptionOrchestrator.
Network-facing collaborators are replaced with in-process fakes.
"""

import sys
import asyncio
import io
import tempfile
import threading
import unittest
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from yttranscribe.core.config import ServiceConfig
from yttranscribe.core.constants import (
    ErrorCode, Source, UPLOAD_HINT, SPEECH_API_NOTE,
    CAPTION_MISSING_DETAILS, CAPTION_MISSING_HINT, CAPTION_ERROR_DETAILS, CAPTION_ERROR_HINT,
)
from yttranscribe.core.error_codes import TranscribeError
from yttranscribe.core.models import (
    AudioStreamDescriptor, ScratchFile, Session, TranscriptionRequest,
)
from yttranscribe.core.orchestrator import TranscriptionOrchestrator

VIDEO_URL = "https://www.youtube.com/watch?v=dQw4w9WgXcQ"
STREAM = AudioStreamDescriptor(format_id='251', container='webm', bitrate_kbps=160,
                               size_bytes=None, url='https://media/251')


class FakeHTTP:
    def __init__(self):
        self.closed = False

    def close(self):
        self.closed = True


class FakeUpload:
    """Stands in for an uploaded file: async chunked reads."""

    def __init__(self, filename, data: bytes, size=None):
        self.filename = filename
        self.size = size
        self._buf = io.BytesIO(data)

    async def read(self, size: int = -1) -> bytes:
        return self._buf.read(size)


class Fakes:
    """Records calls made by the orchestrator."""

    def __init__(self, captions=None, caption_error=None, transcript="transcribed text",
                 transcribe_error=None, resolve_error=None, audio=b"\x1a\x45\xdf\xa3audio"):
        self.captions = captions
        self.caption_error = caption_error
        self.transcript = transcript
        self.transcribe_error = transcribe_error
        self.resolve_error = resolve_error
        self.audio = audio
        self.sessions = []
        self.caption_calls = []
        self.resolve_calls = []
        self.download_paths = []
        self.transcribe_calls = []

    def session_factory(self, cookies_b64):
        session = Session(http=FakeHTTP())
        self.sessions.append(session)
        return session

    def caption_fetcher(self, session, video_url, lang):
        self.caption_calls.append((video_url, lang))
        if self.caption_error is not None:
            raise self.caption_error
        return self.captions

    def stream_resolver(self, session, video_url):
        self.resolve_calls.append(video_url)
        if self.resolve_error is not None:
            raise self.resolve_error
        return STREAM

    def stream_downloader(self, session, stream, path, cancel=None):
        self.download_paths.append(path)
        with open(path, 'r+b') as f:
            f.write(self.audio)
        return ScratchFile(path=path, size_bytes=len(self.audio), descriptor=stream)

    def transcriber(self, api_key, path, file_name, language, model, api_base):
        self.transcribe_calls.append({
            'api_key': api_key, 'path': path, 'file_name': file_name, 'language': language,
            'exists': path.exists(), 'data': path.read_bytes(),
        })
        if self.transcribe_error is not None:
            raise self.transcribe_error
        return self.transcript


class OrchestratorTestCase(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.scratch_dir = Path(self.tmpdir.name)

    def tearDown(self):
        self.tmpdir.cleanup()

    def make(self, fakes: Fakes, **overrides) -> TranscriptionOrchestrator:
        values = {'openai_api_key': 'sk-test', 'scratch_dir': str(self.scratch_dir)}
        values.update(overrides)
        return TranscriptionOrchestrator(
            ServiceConfig(values),
            session_factory=fakes.session_factory,
            caption_fetcher=fakes.caption_fetcher,
            stream_resolver=fakes.stream_resolver,
            stream_downloader=fakes.stream_downloader,
            transcriber=fakes.transcriber,
        )

    def assertScratchEmpty(self):
        self.assertEqual(list(self.scratch_dir.iterdir()), [])


class TestURLWorkflow(OrchestratorTestCase):

    async def test_captions_found(self):
        fakes = Fakes(captions="this is a test")
        result = await self.make(fakes).transcribe_url(TranscriptionRequest(url=VIDEO_URL))

        self.assertTrue(result.ok)
        self.assertEqual(result.source, Source.CAPTIONS)
        self.assertEqual(result.transcript, "this is a test")
        self.assertIsNone(result.note)
        self.assertEqual(fakes.resolve_calls, [])
        self.assertEqual(fakes.transcribe_calls, [])

    async def test_language_normalized_and_id_resolved(self):
        fakes = Fakes(captions="merhaba")
        await self.make(fakes).transcribe_url(
            TranscriptionRequest(url="dQw4w9WgXcQ", prefer_language="Türkçe"))
        self.assertEqual(fakes.caption_calls, [(VIDEO_URL, "tr")])

    async def test_missing_url(self):
        fakes = Fakes()
        result = await self.make(fakes).transcribe_url(TranscriptionRequest(url="  "))
        self.assertFalse(result.ok)
        self.assertEqual(result.error_code, ErrorCode.VALIDATION)
        self.assertEqual(fakes.caption_calls, [])

    async def test_fallback_to_speech_api(self):
        fakes = Fakes(captions=None)
        result = await self.make(fakes).transcribe_url(TranscriptionRequest(url=VIDEO_URL))

        self.assertTrue(result.ok)
        self.assertEqual(result.source, Source.SPEECH_API)
        self.assertEqual(result.transcript, "transcribed text")
        self.assertEqual(result.note, SPEECH_API_NOTE)

        call = fakes.transcribe_calls[0]
        self.assertTrue(call['exists'])
        self.assertEqual(call['data'], fakes.audio)
        self.assertEqual(call['api_key'], 'sk-test')
        self.assertTrue(call['file_name'].endswith(".webm"))
        self.assertFalse(fakes.download_paths[0].exists())
        self.assertScratchEmpty()

    async def test_caption_error_falls_back(self):
        fakes = Fakes(caption_error=RuntimeError("HTTP 429"))
        result = await self.make(fakes).transcribe_url(TranscriptionRequest(url=VIDEO_URL))
        self.assertTrue(result.ok)
        self.assertEqual(result.source, Source.SPEECH_API)

    async def test_force_flag_skips_captions(self):
        fakes = Fakes(captions="should not be used")
        result = await self.make(fakes).transcribe_url(
            TranscriptionRequest(url=VIDEO_URL, force_speech_api=True))

        self.assertEqual(fakes.caption_calls, [])
        self.assertEqual(result.source, Source.SPEECH_API)

    async def test_transcriber_failure_deletes_scratch(self):
        fakes = Fakes(captions=None,
                      transcribe_error=TranscribeError(ErrorCode.TRANSCRIBE_FAILED, "Speech API returned 401"))
        result = await self.make(fakes).transcribe_url(TranscriptionRequest(url=VIDEO_URL))

        self.assertFalse(result.ok)
        self.assertEqual(result.error_code, ErrorCode.TRANSCRIBE_FAILED)
        self.assertEqual(result.hint, UPLOAD_HINT)
        self.assertScratchEmpty()

    async def test_unexpected_transcriber_error(self):
        fakes = Fakes(captions=None, transcribe_error=ConnectionError("reset"))
        result = await self.make(fakes).transcribe_url(TranscriptionRequest(url=VIDEO_URL))
        self.assertEqual(result.error_code, ErrorCode.TRANSCRIBE_FAILED)
        self.assertIn("reset", result.details)
        self.assertScratchEmpty()

    async def test_empty_transcript(self):
        fakes = Fakes(captions=None,
                      transcribe_error=TranscribeError(ErrorCode.EMPTY_TRANSCRIPT, "empty"))
        result = await self.make(fakes).transcribe_url(TranscriptionRequest(url=VIDEO_URL))
        self.assertEqual(result.error_code, ErrorCode.EMPTY_TRANSCRIPT)

    async def test_no_audio_stream(self):
        fakes = Fakes(captions=None,
                      resolve_error=TranscribeError(ErrorCode.NO_AUDIO_STREAM, "No audio-only stream"))
        result = await self.make(fakes).transcribe_url(TranscriptionRequest(url=VIDEO_URL))

        self.assertFalse(result.ok)
        self.assertEqual(result.error_code, ErrorCode.NO_AUDIO_STREAM)
        self.assertEqual(result.hint, UPLOAD_HINT)
        self.assertEqual(fakes.download_paths, [])
        self.assertScratchEmpty()

    async def test_missing_api_key(self):
        fakes = Fakes(captions=None)
        result = await self.make(fakes, openai_api_key=None).transcribe_url(
            TranscriptionRequest(url=VIDEO_URL))

        self.assertEqual(result.error_code, ErrorCode.CONFIG_MISSING_API_KEY)
        self.assertEqual(fakes.resolve_calls, [])

    async def test_missing_api_key_not_needed_for_captions(self):
        fakes = Fakes(captions="caption text")
        result = await self.make(fakes, openai_api_key=None).transcribe_url(
            TranscriptionRequest(url=VIDEO_URL))
        self.assertTrue(result.ok)

    async def test_sessions_closed(self):
        fakes = Fakes(captions=None)
        await self.make(fakes).transcribe_url(TranscriptionRequest(url=VIDEO_URL))
        self.assertTrue(fakes.sessions)
        self.assertTrue(all(s.http.closed for s in fakes.sessions))


class TestCaptionOnlyMode(OrchestratorTestCase):

    async def test_no_captions(self):
        fakes = Fakes(captions=None)
        result = await self.make(fakes, caption_mode="caption_only").transcribe_url(
            TranscriptionRequest(url=VIDEO_URL))

        self.assertFalse(result.ok)
        self.assertEqual(result.error_code, ErrorCode.CAPTION_UNAVAILABLE)
        self.assertEqual(result.details, CAPTION_MISSING_DETAILS)
        self.assertEqual(result.hint, CAPTION_MISSING_HINT)
        self.assertEqual(fakes.resolve_calls, [])

    async def test_caption_error(self):
        fakes = Fakes(caption_error=RuntimeError("sign in to confirm"))
        result = await self.make(fakes, caption_mode="caption_only").transcribe_url(
            TranscriptionRequest(url=VIDEO_URL))

        self.assertEqual(result.error_code, ErrorCode.CAPTION_UNAVAILABLE)
        self.assertEqual(result.details, CAPTION_ERROR_DETAILS)
        self.assertEqual(result.hint, CAPTION_ERROR_HINT)

    async def test_force_flag_ignored(self):
        fakes = Fakes(captions="caption text")
        result = await self.make(fakes, caption_mode="caption_only").transcribe_url(
            TranscriptionRequest(url=VIDEO_URL, force_speech_api=True))

        self.assertEqual(len(fakes.caption_calls), 1)
        self.assertEqual(result.source, Source.CAPTIONS)

    async def test_does_not_need_api_key(self):
        fakes = Fakes(captions=None)
        result = await self.make(fakes, caption_mode="caption_only",
                                 openai_api_key=None).transcribe_url(TranscriptionRequest(url=VIDEO_URL))
        self.assertEqual(result.error_code, ErrorCode.CAPTION_UNAVAILABLE)


class TestUploadWorkflow(OrchestratorTestCase):

    async def test_upload_success(self):
        fakes = Fakes(transcript="upload text")
        upload = FakeUpload("talk.MP3", b"ID3" + b"\x00" * 2048)
        result = await self.make(fakes).transcribe_upload(
            TranscriptionRequest(upload=upload, prefer_language="english"))

        self.assertTrue(result.ok)
        self.assertEqual(result.source, Source.SPEECH_API)
        self.assertEqual(result.transcript, "upload text")

        call = fakes.transcribe_calls[0]
        self.assertEqual(call['file_name'], "talk.MP3")
        self.assertEqual(call['path'].suffix, ".mp3")
        self.assertEqual(call['language'], "en")
        self.assertEqual(len(call['data']), 2051)
        self.assertScratchEmpty()

    async def test_upload_failure_deletes_scratch(self):
        fakes = Fakes(transcribe_error=TranscribeError(ErrorCode.TRANSCRIBE_FAILED, "Speech API returned 500"))
        result = await self.make(fakes).transcribe_upload(
            TranscriptionRequest(upload=FakeUpload("a.wav", b"RIFF")))

        self.assertFalse(result.ok)
        self.assertEqual(result.error_code, ErrorCode.TRANSCRIBE_FAILED)
        self.assertScratchEmpty()

    async def test_missing_file(self):
        result = await self.make(Fakes()).transcribe_upload(TranscriptionRequest(upload=None))
        self.assertEqual(result.error_code, ErrorCode.VALIDATION)

    async def test_empty_file(self):
        fakes = Fakes()
        result = await self.make(fakes).transcribe_upload(
            TranscriptionRequest(upload=FakeUpload("a.mp3", b"")))
        self.assertEqual(result.error_code, ErrorCode.VALIDATION)
        self.assertEqual(fakes.transcribe_calls, [])
        self.assertScratchEmpty()

    async def test_upload_over_limit(self):
        fakes = Fakes()
        result = await self.make(fakes, max_body_bytes=10).transcribe_upload(
            TranscriptionRequest(upload=FakeUpload("a.mp3", b"x" * 64)))
        self.assertEqual(result.error_code, ErrorCode.PAYLOAD_TOO_LARGE)
        self.assertScratchEmpty()

    async def test_missing_api_key(self):
        result = await self.make(Fakes(), openai_api_key=None).transcribe_upload(
            TranscriptionRequest(upload=FakeUpload("a.mp3", b"data")))
        self.assertEqual(result.error_code, ErrorCode.CONFIG_MISSING_API_KEY)


class TestCancellation(OrchestratorTestCase):

    async def test_cancel_during_download_releases_scratch(self):
        started = threading.Event()
        seen_cancel = []
        fakes = Fakes(captions=None)

        def blocking_download(session, stream, path, cancel=None):
            fakes.download_paths.append(path)
            started.set()
            seen_cancel.append(cancel.wait(5))
            raise TranscribeError(ErrorCode.CANCELLED, "Audio download cancelled")

        fakes.stream_downloader = blocking_download
        orchestrator = self.make(fakes)
        task = asyncio.create_task(orchestrator.transcribe_url(TranscriptionRequest(url=VIDEO_URL)))

        for _ in range(500):
            if started.is_set():
                break
            await asyncio.sleep(0.01)
        self.assertTrue(started.is_set())

        task.cancel()
        with self.assertRaises(asyncio.CancelledError):
            await task

        self.assertScratchEmpty()
        self.assertEqual(fakes.transcribe_calls, [])
        self.assertTrue(all(s.http.closed for s in fakes.sessions))

        # Let the worker thread observe the cancel flag before teardown
        for _ in range(500):
            if seen_cancel:
                break
            await asyncio.sleep(0.01)
        self.assertEqual(seen_cancel, [True])

    async def test_cancel_during_upload_transcription_releases_scratch(self):
        started = threading.Event()
        release = threading.Event()
        fakes = Fakes()

        def blocking_transcriber(api_key, path, file_name, language, model, api_base):
            fakes.transcribe_calls.append({'path': path, 'data': path.read_bytes()})
            started.set()
            release.wait(5)
            return "too late"

        fakes.transcriber = blocking_transcriber
        orchestrator = self.make(fakes)
        task = asyncio.create_task(orchestrator.transcribe_upload(
            TranscriptionRequest(upload=FakeUpload("talk.mp3", b"ID3" + b"\x00" * 512))))

        try:
            for _ in range(500):
                if started.is_set():
                    break
                await asyncio.sleep(0.01)
            self.assertTrue(started.is_set())
            self.assertEqual(len(fakes.transcribe_calls[0]['data']), 515)

            task.cancel()
            with self.assertRaises(asyncio.CancelledError):
                await task

            self.assertScratchEmpty()
            self.assertFalse(fakes.transcribe_calls[0]['path'].exists())
        finally:
            release.set()


if __name__ == "__main__":
    unittest.main()
