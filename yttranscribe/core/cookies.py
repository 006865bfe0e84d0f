"""
Cookie jar import and session construction.

YT_COOKIES_B64 holds a base64-encoded Netscape cookies.txt export:
    domain \t includeSubdomains \t path \t secure \t expiry \t name \t value
Some exporters write HttpOnly cookies with a "#HttpOnly_" domain prefix.
Import is best-effort: bad lines are counted and skipped, and any failure
to decode the blob degrades to an anonymous session.
"""

import base64
import binascii
import logging
import re

import requests
from requests.cookies import create_cookie

from yttranscribe.core.constants import (
    BROWSER_USER_AGENT, HTTPONLY_PREFIX, NETSCAPE_FIELD_COUNT,
)
from yttranscribe.core.models import CookieImportReport, CookieRecord, Session

logger = logging.getLogger(__name__)

# RFC 6265 token: no separators, whitespace or control characters
_COOKIE_NAME_RE = re.compile(r'^[!#$%&\'*+\-.^_`|~0-9A-Za-z]+$')
_BAD_VALUE_RE = re.compile(r'[;\x00-\x1f\x7f]')


def _record_is_valid(record: CookieRecord) -> bool:
    if not _COOKIE_NAME_RE.match(record.name):
        return False
    if _BAD_VALUE_RE.search(record.value):
        return False
    if record.domain.strip('.') == "":
        return False
    return record.path.startswith('/')


def parse_netscape_cookies(text: str) -> CookieImportReport:
    """
    Parse Netscape cookies.txt content into CookieRecords.
    Never raises on bad lines; they are reported via skipped/rejected counts.
    """
    report = CookieImportReport()

    for raw_line in text.splitlines():
        # Keep tabs: an empty trailing value is still a field
        line = raw_line.strip(' \r\n')
        if not line.strip():
            continue

        http_only = False
        if line[:len(HTTPONLY_PREFIX)].lower() == HTTPONLY_PREFIX.lower():
            http_only = True
            line = line[len(HTTPONLY_PREFIX):]
        elif line.startswith('#'):
            continue

        parts = line.split('\t')
        if len(parts) < NETSCAPE_FIELD_COUNT:
            report.skipped += 1
            continue

        domain = parts[0].strip()
        path = parts[2].strip() or '/'
        secure = parts[3].strip().upper() == 'TRUE'
        name = parts[5].strip()
        value = parts[6].strip()

        if not domain.startswith('.'):
            domain = '.' + domain

        record = CookieRecord(domain=domain, path=path, secure=secure,
                              name=name, value=value, http_only=http_only)
        if not _record_is_valid(record):
            report.rejected += 1
            continue

        report.records.append(record)

    return report


def decode_cookie_blob(cookies_b64: str) -> str:
    """Decode the base64 env blob to text. Raises ValueError on bad input."""
    compact = ''.join(cookies_b64.split())
    try:
        raw = base64.b64decode(compact, validate=True)
    except binascii.Error as e:
        raise ValueError(f"cookie blob is not valid base64: {e}") from e
    return raw.decode('utf-8-sig')


def anonymous_session() -> Session:
    """A cookie-less session."""
    return Session(http=requests.Session())


def session_from_records(records: list[CookieRecord]) -> Session:
    """Build a cookie-bearing session with the browser user agent attached."""
    http = requests.Session()
    http.headers['User-Agent'] = BROWSER_USER_AGENT
    for record in records:
        rest = {'HttpOnly': None} if record.http_only else {}
        http.cookies.set_cookie(create_cookie(
            record.name, record.value,
            domain=record.domain,
            path=record.path,
            secure=record.secure,
            rest=rest,
        ))
    return Session(http=http, cookies=tuple(records), user_agent=BROWSER_USER_AGENT)


def build_session(cookies_b64: str | None) -> Session:
    """
    Build the session used for caption and audio fetches.
    Missing blob → anonymous session. Any decode/parse failure → anonymous session.
    """
    if not cookies_b64 or not cookies_b64.strip():
        logger.info("YT_COOKIES_B64 not set -> using anonymous session")
        return anonymous_session()

    try:
        text = decode_cookie_blob(cookies_b64)
        report = parse_netscape_cookies(text)
        session = session_from_records(report.records)
    except Exception as e:
        logger.warning("Failed to load cookies -> using anonymous session: %s", e)
        return anonymous_session()

    if report.skipped or report.rejected:
        logger.info("Cookie import: %d accepted, %d malformed lines skipped, %d rejected",
                    report.accepted, report.skipped, report.rejected)
    if not report.records:
        logger.warning("Cookie blob contained no usable cookies")
    else:
        logger.info("YT_COOKIES_B64 loaded (%d cookies) -> using cookie-enabled session",
                    report.accepted)
    return session
