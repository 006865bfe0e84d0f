"""
Security utilities for yttranscribe.
- Upload filename/extension sanitization
- Secret masking for logs and diagnostics
"""

import re
import logging
from pathlib import PurePosixPath, PureWindowsPath

from yttranscribe.core.constants import SAFE_EXTENSION_RE, GENERIC_EXTENSION

logger = logging.getLogger(__name__)


def upload_basename(filename: str | None) -> str:
    """Strip any client-supplied directory part (either separator style)."""
    if not filename:
        return ""
    return PurePosixPath(PureWindowsPath(filename).name).name.strip()


def safe_extension(filename: str | None) -> str:
    """
    Extension to give a scratch copy of an upload, e.g. ".mp3".
    Anything missing or odd-looking becomes GENERIC_EXTENSION.
    """
    suffix = PurePosixPath(upload_basename(filename)).suffix.lower()
    if suffix and re.match(SAFE_EXTENSION_RE, suffix):
        return suffix
    return GENERIC_EXTENSION


def mask_secret(value: str | None) -> str | None:
    """Show only that a secret is set, never its content."""
    if not value:
        return None
    if len(value) <= 8:
        return "****"
    return f"{value[:3]}…{value[-2:]}"
