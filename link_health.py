"""
link_health.py - Checks whether a media URL is still reachable.

A URL is probed with a HEAD request first. When HEAD fails at the transport
level or comes back without a status, a single GET is sent with the same
parameters; there is no other retry. The status code is then compared with
the configured set of broken codes.
"""

import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse

import requests
import urllib3

from config import Config
from errors import TransportError, ValidationError
from models import ScanSettings
from scan_log import RunLog

logger = logging.getLogger(__name__)

config = Config()

MAX_REDIRECTS = 3
DEFAULT_HEADERS = {
    "Accept": "*/*",
    "User-Agent": config.USER_AGENT,
}

# Probes run with verify=False; silence the per-request warning.
urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)


@dataclass
class LinkCheck:
    url: str
    broken: bool
    status_code: Optional[int] = None
    error: Optional[str] = None


def validate_url(url: Optional[str]) -> str:
    """Returns ``url`` unchanged or raises ValidationError when it cannot be probed."""
    if not url or any(ch.isspace() for ch in url):
        raise ValidationError(f"Invalid URL: {url}")
    try:
        parsed = urlparse(url)
    except ValueError as exc:
        raise ValidationError(f"Invalid URL: {url}") from exc
    if not parsed.scheme or not parsed.netloc:
        raise ValidationError(f"Invalid URL: {url}")
    return url


def build_session() -> requests.Session:
    """A session carrying the probe headers, redirect cap and relaxed TLS policy."""
    session = requests.Session()
    session.headers.update(DEFAULT_HEADERS)
    session.max_redirects = MAX_REDIRECTS
    session.verify = False
    return session


def _probe(session, method: str, url: str, timeout: int):
    try:
        if method == "HEAD":
            return session.head(url, timeout=timeout, allow_redirects=True, verify=False)
        # stream=True: only the status line and headers are needed, never the video itself.
        response = session.get(url, timeout=timeout, allow_redirects=True, verify=False, stream=True)
        response.close()
        return response
    except (requests.RequestException, urllib3.exceptions.HTTPError, ValueError, UnicodeError) as exc:
        # urllib3 rejects some hosts that pass validate_url, e.g. "a..b".
        raise TransportError(f"HTTP error for {url}: {exc}") from exc


def check_link_status(
    url: Optional[str],
    settings: ScanSettings,
    session: Optional[requests.Session] = None,
) -> LinkCheck:
    """
    Probes ``url`` and classifies it against ``settings.broken_status_codes``.

    Malformed URLs and transport failures are classified broken and carry the
    error text; they never raise.
    """
    try:
        validate_url(url)
    except ValidationError as exc:
        return LinkCheck(url=url or "", broken=True, error=str(exc))

    own_session = session is None
    if own_session:
        session = build_session()

    try:
        response = None
        try:
            response = _probe(session, "HEAD", url, settings.http_timeout)
        except TransportError as exc:
            logger.debug("HEAD failed, falling back to GET: %s", exc)

        if response is None or not getattr(response, "status_code", None):
            try:
                response = _probe(session, "GET", url, settings.http_timeout)
            except TransportError as exc:
                return LinkCheck(url=url, broken=True, error=str(exc))
    finally:
        if own_session:
            session.close()

    status_code = int(getattr(response, "status_code", None) or 0)
    broken = status_code in settings.broken_status_codes
    logger.debug("Checked %s -> %s (broken=%s)", url, status_code, broken)
    return LinkCheck(url=url, broken=broken, status_code=status_code)


def is_broken(
    url: Optional[str],
    settings: ScanSettings,
    run_log: RunLog,
    session: Optional[requests.Session] = None,
) -> bool:
    """Boolean form of check_link_status that records any error into ``run_log``."""
    result = check_link_status(url, settings, session=session)
    if result.error:
        run_log.error(result.error)
    return result.broken
