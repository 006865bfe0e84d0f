"""
Audio stream selection policy.
Picks the highest-bitrate audio-only rendition from yt-dlp metadata.
"""

import logging

from yttranscribe.core.constants import ErrorCode
from yttranscribe.core.error_codes import TranscribeError
from yttranscribe.core.models import AudioStreamDescriptor

logger = logging.getLogger(__name__)


def _as_float(value) -> float | None:
    if value is None:
        return None
    try:
        value = float(value)
    except (ValueError, TypeError):
        return None
    return value if value > 0 else None


def list_audio_streams(metadata: dict) -> list[AudioStreamDescriptor]:
    """Audio-only formats (vcodec == "none") that carry a direct URL."""
    streams = []
    for fmt in metadata.get('formats') or []:
        vcodec = fmt.get('vcodec')
        acodec = fmt.get('acodec')
        if vcodec not in ('none', None, '') or acodec in ('none', None, ''):
            continue
        if not fmt.get('url'):
            continue
        # m3u8/dash manifests are not byte streams
        if fmt.get('protocol', 'https') not in ('http', 'https'):
            continue
        streams.append(AudioStreamDescriptor(
            format_id=str(fmt.get('format_id', '')),
            container=fmt.get('ext') or 'bin',
            bitrate_kbps=_as_float(fmt.get('abr')) or _as_float(fmt.get('tbr')),
            size_bytes=fmt.get('filesize') or fmt.get('filesize_approx'),
            url=fmt['url'],
            http_headers=dict(fmt.get('http_headers') or {}),
            http_chunk_size=(fmt.get('downloader_options') or {}).get('http_chunk_size'),
        ))
    return streams


def select_audio_stream(metadata: dict) -> AudioStreamDescriptor:
    """
    Select the audio-only stream with the highest bitrate.
    Streams without bitrate info rank below any stream that has it;
    ties keep the platform's listing order.
    Raises TranscribeError(NO_AUDIO_STREAM) if there is none.
    """
    streams = list_audio_streams(metadata)
    if not streams:
        raise TranscribeError(ErrorCode.NO_AUDIO_STREAM, "No audio-only stream found for this video")

    selected = streams[0]
    for stream in streams[1:]:
        if (stream.bitrate_kbps or 0) > (selected.bitrate_kbps or 0):
            selected = stream

    logger.info("Selected audio stream: format_id=%s abr=%s ext=%s (of %d)",
                selected.format_id, selected.bitrate_kbps, selected.container, len(streams))
    return selected
