from __future__ import annotations

import logging
from typing import Protocol

import requests
from ratelimit import limits, sleep_and_retry

from ..models.config_models import LookupConfig

"""HTTP fetch + charset decode for reference-site pages.

fetch(url) returns decoded text or raises:
- FetchError: connection problems, timeouts, non-2xx answers
- DecodeError: the configured encoding is unknown

Bytes that are invalid in the configured encoding become U+FFFD; the rest of
the page usually still carries the formula.

There is no retry here; a retry policy belongs in a caller wrapped around
resolve().
"""

logger = logging.getLogger(__name__)

__all__ = [
    "FetchError",
    "DecodeError",
    "PageFetcher",
    "HttpFetcher",
    "BROWSER_HEADERS",
]

BROWSER_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "zh-CN,zh;q=0.8,en-US;q=0.5,en;q=0.3",
    "Connection": "keep-alive",
}


class FetchError(Exception):
    """Network failure or non-2xx response."""

    def __init__(self, url: str, status_code: int | None = None, message: str = "") -> None:
        self.url = url
        self.status_code = status_code
        detail = message or (f"HTTP {status_code}" if status_code is not None else "request failed")
        super().__init__(f"{detail}: {url}")


class DecodeError(Exception):
    """Response body could not be decoded with the expected charset."""

    def __init__(self, url: str, encoding: str, message: str = "") -> None:
        self.url = url
        self.encoding = encoding
        super().__init__(f"cannot decode {url} as {encoding}: {message}")


class PageFetcher(Protocol):
    def fetch(self, url: str) -> str: ...


class HttpFetcher:
    """requests-based fetcher with a shared session and a client-side rate limit.

    The session is shared by resolver worker threads; requests.Session is used
    here only for connection pooling and fixed headers.
    """

    def __init__(self, config: LookupConfig | None = None, session: requests.Session | None = None) -> None:
        self.config = config or LookupConfig()
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": self.config.user_agent, **BROWSER_HEADERS})
        # limits() is configured per instance so the rate comes from config
        self._get = sleep_and_retry(
            limits(calls=self.config.requests_per_second, period=1)(self._send)
        )

    def _send(self, url: str) -> requests.Response:
        return self.session.get(url, timeout=self.config.timeout_seconds)

    def fetch(self, url: str) -> str:
        try:
            response = self._get(url)
        except requests.Timeout as e:
            raise FetchError(url, None, f"timed out after {self.config.timeout_seconds}s") from e
        except requests.RequestException as e:
            raise FetchError(url, None, str(e)) from e

        if not 200 <= response.status_code < 300:
            logger.debug(f"HTTP {response.status_code} for {url}")
            raise FetchError(url, response.status_code)

        try:
            return response.content.decode(self.config.encoding)
        except UnicodeDecodeError as e:
            logger.debug(f"{url}: invalid {self.config.encoding} bytes replaced ({e.reason} at {e.start})")
            return response.content.decode(self.config.encoding, errors="replace")
        except LookupError as e:
            raise DecodeError(url, self.config.encoding, str(e)) from e

    def close(self) -> None:
        self.session.close()
