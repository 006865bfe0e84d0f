"""
Scratch files: transient local copies of downloaded or uploaded media.
Every scratch file is acquired through scratch_file() and deleted when the
block exits, whether it returns, raises or is cancelled.
"""

import asyncio
import logging
import os
import tempfile
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

from yttranscribe.core.constants import (
    ErrorCode, SCRATCH_PREFIX, GENERIC_EXTENSION, UPLOAD_READ_CHUNK_BYTES,
)
from yttranscribe.core.error_codes import TranscribeError
from yttranscribe.core.models import ScratchFile, UploadedMedia

logger = logging.getLogger(__name__)


def create_scratch_path(scratch_dir: Path, suffix: str = GENERIC_EXTENSION) -> Path:
    """Create an empty, uniquely named file and return its path."""
    scratch_dir.mkdir(parents=True, exist_ok=True)
    fd, name = tempfile.mkstemp(prefix=SCRATCH_PREFIX, suffix=suffix, dir=scratch_dir)
    os.close(fd)
    return Path(name)


def release_scratch_path(path: Path):
    """Delete a scratch file; a missing file is fine."""
    try:
        path.unlink(missing_ok=True)
        logger.debug("Deleted scratch file: %s", path)
    except OSError as e:
        logger.warning("Failed to delete scratch file %s: %s", path, e)


@asynccontextmanager
async def scratch_file(scratch_dir: Path, suffix: str = GENERIC_EXTENSION) -> AsyncIterator[Path]:
    path = create_scratch_path(scratch_dir, suffix)
    try:
        yield path
    finally:
        release_scratch_path(path)


def _append(path: Path, chunk: bytes):
    with open(path, 'ab') as f:
        f.write(chunk)


async def save_upload(upload: UploadedMedia, dest: Path, max_bytes: int | None = None) -> ScratchFile:
    """
    Copy an uploaded file into dest in bounded chunks.
    Raises TranscribeError(PAYLOAD_TOO_LARGE) past max_bytes.
    """
    loop = asyncio.get_running_loop()
    written = 0
    while True:
        chunk = await upload.read(UPLOAD_READ_CHUNK_BYTES)
        if not chunk:
            break
        written += len(chunk)
        if max_bytes is not None and written > max_bytes:
            raise TranscribeError(ErrorCode.PAYLOAD_TOO_LARGE,
                                  f"Upload exceeds the {max_bytes}-byte limit")
        await loop.run_in_executor(None, _append, dest, chunk)

    logger.info("Saved upload to %s (%d bytes)", dest, written)
    return ScratchFile(path=dest, size_bytes=written)
