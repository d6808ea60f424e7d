"""HTTP fetching with connection reuse and retry/backoff."""

import random
import time
from typing import Callable, Optional

import requests  # type: ignore[import-untyped]

from partscrape.config import (
    HEADERS,
    MAX_RETRIES,
    MAX_RETRY_BACKOFF,
    REQUEST_TIMEOUT,
    RETRY_BACKOFF_BASE,
    RETRY_STATUS_CODES,
)
from partscrape.errors import FetchError
from partscrape.logging_config import get_logger
from partscrape.url_validation import URLValidationError, validate_url

__all__ = [
    "FetchFunc",
    "create_session",
    "fetch_html",
    "make_fetcher",
]

logger = get_logger("fetcher")

# Signature shared by everything that turns a URL into a document body
FetchFunc = Callable[[str], str]


def create_session() -> requests.Session:
    """Create a requests Session with browser-like headers.

    The session keeps connections alive across the many listing and detail
    requests of a run.
    """
    session = requests.Session()
    session.headers.update(HEADERS)
    session.headers.setdefault("Accept-Encoding", "gzip, deflate")
    return session


def _backoff(attempt: int) -> float:
    return min(RETRY_BACKOFF_BASE ** attempt, MAX_RETRY_BACKOFF) + random.uniform(0, 1)


def fetch_html(
    url: str,
    session: Optional[requests.Session] = None,
    timeout: float = REQUEST_TIMEOUT,
    max_retries: int = MAX_RETRIES,
    sleep: Callable[[float], None] = time.sleep,
) -> str:
    """HTTP GET returning the document body.

    Timeouts, connection errors and 429/5xx responses are retried with
    exponential backoff. Anything else fails immediately.

    Args:
        url: URL to fetch
        session: Optional requests.Session for connection reuse
        timeout: Per-request timeout in seconds
        max_retries: Retry attempts for transient failures
        sleep: Sleep function used for backoff (injectable for tests)

    Returns:
        Response body as text

    Raises:
        FetchError: If the URL is invalid or the request fails. ``transient``
            is set when retries were exhausted on a retryable failure.
    """
    try:
        url = validate_url(url)
    except URLValidationError as e:
        logger.error(f"URL validation failed: {e}")
        raise FetchError(url, f"Invalid URL: {e}") from e

    sess = session or create_session()
    last_error: Optional[FetchError] = None

    for attempt in range(max_retries + 1):
        try:
            resp = sess.get(url, timeout=timeout)
        except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as e:
            kind = "Timeout" if isinstance(e, requests.exceptions.Timeout) else "Connection error"
            last_error = FetchError(url, f"{kind} fetching {url}: {e}", transient=True)
            if attempt < max_retries:
                backoff = _backoff(attempt)
                logger.warning(
                    f"{kind}, backing off {backoff:.1f}s "
                    f"(attempt {attempt + 1}/{max_retries})"
                )
                sleep(backoff)
                continue
            logger.error(str(last_error))
            raise last_error from e
        except requests.exceptions.RequestException as e:
            logger.error(f"Request error fetching {url}: {e}")
            raise FetchError(url, f"Failed to fetch {url}: {e}") from e

        if resp.status_code in RETRY_STATUS_CODES:
            last_error = FetchError(
                url,
                f"HTTP Error {resp.status_code}: {resp.reason} ({url})",
                status=resp.status_code,
                transient=True,
            )
            if attempt < max_retries:
                backoff = _backoff(attempt)
                logger.warning(
                    f"Received {resp.status_code}, backing off {backoff:.1f}s "
                    f"(attempt {attempt + 1}/{max_retries})"
                )
                sleep(backoff)
                continue
            logger.error(str(last_error))
            raise last_error

        if resp.status_code >= 400:
            logger.error(f"HTTP error fetching {url}: {resp.status_code} {resp.reason}")
            raise FetchError(
                url,
                f"HTTP Error {resp.status_code}: {resp.reason} ({url})",
                status=resp.status_code,
            )

        return str(resp.text)

    # Only reachable with a negative retry count
    raise last_error or FetchError(url, f"Failed to fetch {url}")


def make_fetcher(
    session: Optional[requests.Session] = None,
    timeout: float = REQUEST_TIMEOUT,
    max_retries: int = MAX_RETRIES,
) -> FetchFunc:
    """Bind a session and request settings into a single-argument fetch function."""
    sess = session or create_session()

    def fetch(url: str) -> str:
        return fetch_html(url, session=sess, timeout=timeout, max_retries=max_retries)

    return fetch
