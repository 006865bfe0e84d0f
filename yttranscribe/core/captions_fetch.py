"""
Captions fetching: platform-provided caption tracks, manual or auto-generated.
The manifest comes from yt-dlp metadata; track content is fetched with the
request's Session so cookies and user agent apply.
"""

import logging
from urllib.parse import parse_qs, urlparse

from yttranscribe.core.captions_parse import parse_caption_segments, join_segments
from yttranscribe.core.constants import CAPTION_FORMAT_PREFERENCE, CAPTION_TIMEOUT_SEC
from yttranscribe.core.models import CaptionManifest, CaptionTrack, Session
from yttranscribe.core.yt_metadata import fetch_metadata

logger = logging.getLogger(__name__)

# yt-dlp lists live chat replay under subtitles; it is not a caption track
_NON_CAPTION_KEYS = {'live_chat'}
# yt-dlp marks the spoken-language auto track as "<code>-orig"
_ORIG_SUFFIX = '-orig'


def _is_translation(formats) -> bool:
    """Machine translations of another track carry a tlang query parameter."""
    return any('tlang' in parse_qs(urlparse(f.get('url') or '').query) for f in formats)


def _tracks_from(entries: dict, auto: bool) -> list[CaptionTrack]:
    """
    Tracks the video actually has, in listing order.
    Translated variants are dropped and "<code>-orig" is reported as "<code>",
    replacing a plain "<code>" entry if both are listed.
    """
    tracks: dict[str, CaptionTrack] = {}
    for lang_code, formats in (entries or {}).items():
        if lang_code in _NON_CAPTION_KEYS or not formats or _is_translation(formats):
            continue
        urls = {f['ext']: f['url'] for f in formats if f.get('ext') and f.get('url')}
        if not urls:
            continue
        if lang_code.endswith(_ORIG_SUFFIX):
            lang_code = lang_code[:-len(_ORIG_SUFFIX)]
        elif lang_code in tracks:
            continue
        name = next((f.get('name') for f in formats if f.get('name')), "")
        tracks[lang_code] = CaptionTrack(language_code=lang_code, is_auto_generated=auto,
                                         name=name, urls=urls)
    return list(tracks.values())


def build_caption_manifest(metadata: dict, video_url: str) -> CaptionManifest:
    """Collect manual and automatic caption tracks from yt-dlp metadata."""
    tracks = (_tracks_from(metadata.get('subtitles'), auto=False)
              + _tracks_from(metadata.get('automatic_captions'), auto=True))
    return CaptionManifest(video_url=video_url, tracks=tuple(tracks))


def _manual_first(tracks) -> list[CaptionTrack]:
    # sorted() is stable: source order is kept within each group
    return sorted(tracks, key=lambda t: t.is_auto_generated)


def select_caption_track(tracks, preferred_language: str | None = None) -> CaptionTrack | None:
    """
    Pick the caption track to use.

    Policy:
    1. If preferred_language is set: tracks whose code matches it
       (case-insensitive), manual before auto-generated, first wins.
    2. Otherwise, or when nothing matched: all tracks, manual before
       auto-generated, first wins.
    3. No tracks → None.
    """
    if preferred_language:
        wanted = preferred_language.lower()
        matches = [t for t in tracks if t.language_code.lower() == wanted]
        if matches:
            return _manual_first(matches)[0]

    ordered = _manual_first(tracks)
    return ordered[0] if ordered else None


def fetch_track_text(session: Session, track: CaptionTrack) -> str | None:
    """Download one track and join its segments. None when the text is blank."""
    fmt = next((f for f in CAPTION_FORMAT_PREFERENCE if f in track.urls), None)
    if fmt is None:
        logger.info("Track %s offers no parseable format (%s)",
                    track.language_code, ", ".join(track.urls))
        return None

    resp = session.http.get(track.urls[fmt], timeout=CAPTION_TIMEOUT_SEC)
    resp.raise_for_status()
    segments = parse_caption_segments(resp.text, fmt)
    return join_segments(segments)


def fetch_captions(session: Session, video_url: str, preferred_language: str | None = None,
                   metadata_fetcher=fetch_metadata) -> str | None:
    """
    Return caption text for a video, or None if it has no usable captions.
    Network, auth and parse errors propagate; the orchestrator treats them
    as "captions unavailable".
    """
    metadata = metadata_fetcher(session, video_url)
    manifest = build_caption_manifest(metadata, video_url)
    if not manifest.tracks:
        logger.info("No caption tracks for %s", video_url)
        return None

    track = select_caption_track(manifest.tracks, preferred_language)
    if track is None:
        return None

    logger.info("Selected caption track lang=%s auto=%s (of %d)",
                track.language_code, track.is_auto_generated, len(manifest.tracks))
    return fetch_track_text(session, track)
