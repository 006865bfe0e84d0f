"""
Standardised error handling for yttranscribe.
"""

from yttranscribe.core.constants import ErrorCode, ERROR_HTTP_STATUS, ERROR_WIRE_NAMES


class TranscribeError(Exception):
    """Raised when a workflow step hits a known error condition."""

    def __init__(self, code: str, message: str, hint: str | None = None):
        self.code = code
        self.message = message
        self.hint = hint
        super().__init__(f"[{code}] {message}")


def http_status_for(code: str) -> int:
    return ERROR_HTTP_STATUS.get(code, 500)


def wire_name_for(code: str) -> str:
    return ERROR_WIRE_NAMES.get(code, "internal_error")


def is_client_error(code: str) -> bool:
    """Caller mistakes are not logged as server faults."""
    return code in (ErrorCode.VALIDATION, ErrorCode.PAYLOAD_TOO_LARGE)
