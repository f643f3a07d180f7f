"""Load ChordPro input from a local file or an ``http(s)://`` URL."""

import logging
from pathlib import Path

import httpx

from .exceptions import FetchError
from .parser import ParseOptions, ParseResult, parse

logger = logging.getLogger(__name__)


def is_url(location: str) -> bool:
    return location.startswith(("http://", "https://"))


def fetch(url: str) -> bytes:
    """Fetch *url* and return the raw response body.

    Raises FetchError on transport failures and non-200 responses.
    """
    logger.info("Fetching %s", url)
    try:
        resp = httpx.get(url, follow_redirects=True, timeout=15)
    except httpx.RequestError as exc:
        raise FetchError(url, 0) from exc
    if resp.status_code != 200:
        raise FetchError(url, resp.status_code)
    return resp.content


def load_source(location: str) -> bytes:
    """Return the bytes of a ChordPro source: a URL or a file path."""
    if is_url(location):
        return fetch(location)
    return Path(location).read_bytes()


def read_document(location: str, options: ParseOptions | None = None) -> ParseResult:
    """Load *location* and parse it."""
    return parse(load_source(location), options)
