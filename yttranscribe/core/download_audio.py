"""
Audio download: resolve the best audio-only stream and stream it to disk.
"""

import logging
import threading
from pathlib import Path

import requests

from yttranscribe.core.audio_select import select_audio_stream
from yttranscribe.core.error_codes import TranscribeError
from yttranscribe.core.constants import (
    ErrorCode, DOWNLOAD_CHUNK_BYTES, DOWNLOAD_CONNECT_TIMEOUT_SEC, DOWNLOAD_READ_TIMEOUT_SEC,
)
from yttranscribe.core.models import AudioStreamDescriptor, ScratchFile, Session
from yttranscribe.core.yt_metadata import fetch_metadata

logger = logging.getLogger(__name__)


def resolve_audio_stream(session: Session, video_url: str,
                         metadata_fetcher=fetch_metadata) -> AudioStreamDescriptor:
    """Fetch the stream manifest and pick the highest-bitrate audio-only stream."""
    metadata = metadata_fetcher(session, video_url)
    return select_audio_stream(metadata)


def _check_cancel(cancel: threading.Event | None):
    if cancel is not None and cancel.is_set():
        raise TranscribeError(ErrorCode.CANCELLED, "Audio download cancelled")


def _open_stream(session: Session, stream: AudioStreamDescriptor, headers: dict):
    return session.http.get(stream.url, headers=headers, stream=True,
                            timeout=(DOWNLOAD_CONNECT_TIMEOUT_SEC, DOWNLOAD_READ_TIMEOUT_SEC))


def _copy_body(resp, f, cancel: threading.Event | None) -> int:
    written = 0
    for chunk in resp.iter_content(chunk_size=DOWNLOAD_CHUNK_BYTES):
        _check_cancel(cancel)
        if chunk:
            f.write(chunk)
            written += len(chunk)
    return written


def _download_ranges(session: Session, stream: AudioStreamDescriptor, f,
                     cancel: threading.Event | None) -> int:
    """Fetch the stream as sequential byte ranges of stream.http_chunk_size."""
    chunk_size = stream.http_chunk_size
    written = 0
    while True:
        _check_cancel(cancel)
        headers = dict(stream.http_headers)
        headers['Range'] = f"bytes={written}-{written + chunk_size - 1}"
        with _open_stream(session, stream, headers) as resp:
            # Range starts past the end: previous chunk was the last one
            if resp.status_code == 416:
                break
            resp.raise_for_status()
            received = _copy_body(resp, f, cancel)
            ranged = resp.status_code == 206
        written += received
        logger.debug("Fetched %s (%d bytes)", headers['Range'], received)

        if not ranged or received < chunk_size:
            break
        if stream.size_bytes and written >= stream.size_bytes:
            break
    return written


def stream_to_file(session: Session, stream: AudioStreamDescriptor, dest: Path,
                   cancel: threading.Event | None = None) -> ScratchFile:
    """
    Stream the remote audio into an existing scratch file.

    dest must already exist: it is opened with r+b so a worker that runs
    after the caller released the scratch file cannot recreate it.
    The caller owns dest and deletes it on every path, partial writes included.
    """
    try:
        with open(dest, 'r+b') as f:
            f.truncate(0)
            if stream.http_chunk_size:
                written = _download_ranges(session, stream, f, cancel)
            else:
                with _open_stream(session, stream, stream.http_headers) as resp:
                    resp.raise_for_status()
                    written = _copy_body(resp, f, cancel)
    except requests.RequestException as e:
        raise TranscribeError(ErrorCode.DOWNLOAD_FAILED, f"Audio download failed: {e}")
    except FileNotFoundError:
        raise TranscribeError(ErrorCode.CANCELLED, "Scratch file released before download started")

    if written == 0:
        raise TranscribeError(ErrorCode.DOWNLOAD_FAILED, "Audio download returned no data")

    logger.info("Downloaded audio: %s (%d bytes, format_id=%s)", dest, written, stream.format_id)
    return ScratchFile(path=dest, size_bytes=written, descriptor=stream)
