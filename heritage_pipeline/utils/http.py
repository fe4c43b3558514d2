"""
HTTP utilities for the enrichment pipeline.

Provides HTTP fetching with retry logic, rate limiting awareness, one time
budget per call (retries included) and fixed pacing after every call.
"""

import time
from typing import Any, Callable, Optional

import httpx
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    stop_before_delay,
    wait_exponential,
)
from loguru import logger

from heritage_pipeline.config import settings


# Default headers for requests (Wikimedia requires a descriptive User-Agent)
DEFAULT_HEADERS = {
    "User-Agent": settings.enrichment.user_agent,
    "Accept": "application/json",
}


class HTTPError(Exception):
    """Custom HTTP error with status code."""

    def __init__(self, message: str, status_code: int = None, response: httpx.Response = None):
        super().__init__(message)
        self.status_code = status_code
        self.response = response


class RateLimitError(HTTPError):
    """Raised when rate limited by a data source."""
    pass


def fetch_with_retry(
    url: str,
    headers: Optional[dict] = None,
    params: Optional[dict] = None,
    timeout: Optional[float] = None,
    max_attempts: Optional[int] = None,
) -> httpx.Response:
    """
    GET a URL, retrying connection failures and 429 responses.

    `timeout` is the budget for the whole call, retries included: each
    attempt only gets the time left, and a retry whose backoff would end
    past the budget is not started. Timeouts themselves are not retried.

    Args:
        url: URL to fetch
        headers: Additional headers to include
        params: Query parameters
        timeout: Total time budget in seconds (default: ENRICHMENT_HTTP_TIMEOUT)
        max_attempts: Attempt limit (default: ENRICHMENT_HTTP_MAX_ATTEMPTS)

    Returns:
        httpx.Response object

    Raises:
        HTTPError: For HTTP errors (4xx, 5xx)
        RateLimitError: When rate limited (429) on the last attempt
        httpx.TimeoutException: On timeout or when the budget is spent
    """
    request_headers = {**DEFAULT_HEADERS, **(headers or {})}
    timeout = timeout or settings.enrichment.http_timeout
    max_attempts = max_attempts or settings.enrichment.http_max_attempts
    deadline = time.monotonic() + timeout

    retrying = Retrying(
        stop=stop_after_attempt(max_attempts) | stop_before_delay(timeout),
        wait=wait_exponential(multiplier=settings.enrichment.http_retry_delay, min=1, max=10),
        retry=retry_if_exception_type((httpx.ConnectError, RateLimitError)),
        reraise=True,
    )

    for attempt in retrying:
        with attempt:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise httpx.TimeoutException(f"Time budget of {timeout}s spent for {url}")
            return _get(url, request_headers, params, remaining)


def _get(url: str, headers: dict, params: Optional[dict], timeout: float) -> httpx.Response:
    logger.debug(f"Fetching GET {url}")

    with httpx.Client(timeout=timeout, follow_redirects=True) as client:
        response = client.get(url, headers=headers, params=params, timeout=timeout)

    # Handle rate limiting
    if response.status_code == 429:
        retry_after = response.headers.get("Retry-After", "60")
        raise RateLimitError(
            f"Rate limited by {url}. Retry after {retry_after}s",
            status_code=429,
            response=response,
        )

    # Handle other HTTP errors
    if response.status_code >= 400:
        raise HTTPError(
            f"HTTP {response.status_code} for {url}: {response.text[:200]}",
            status_code=response.status_code,
            response=response,
        )

    logger.debug(f"Fetched {url} ({response.status_code}, {len(response.content)} bytes)")
    return response


def fetch_json(
    url: str,
    params: Optional[dict] = None,
    timeout: Optional[float] = None,
    delay: Optional[float] = None,
    max_attempts: Optional[int] = None,
) -> Any | None:
    """
    GET a URL and return its parsed JSON body, or None on any failure.

    Transport errors, timeouts, HTTP errors and undecodable bodies all come
    back as None. Sleeps `delay` seconds after every call, successful or not.

    Args:
        url: URL to fetch
        params: Query parameters
        timeout: Total time budget in seconds (default: ENRICHMENT_HTTP_TIMEOUT)
        delay: Pacing sleep in seconds (default: ENRICHMENT_REQUEST_DELAY)
        max_attempts: Attempt limit; 1 disables retries

    Returns:
        Decoded JSON (dict or list) or None
    """
    delay = settings.enrichment.request_delay if delay is None else delay

    try:
        response = fetch_with_retry(url, params=params, timeout=timeout, max_attempts=max_attempts)
        return response.json()
    except httpx.TimeoutException:
        logger.debug(f"Timed out fetching {url}")
        return None
    except RateLimitError as e:
        logger.warning(f"Giving up on {url}: {e}")
        return None
    except (HTTPError, httpx.HTTPError) as e:
        logger.debug(f"Request failed for {url}: {e}")
        return None
    except ValueError as e:
        logger.debug(f"Invalid JSON from {url}: {e}")
        return None
    finally:
        if delay > 0:
            time.sleep(delay)


# Signature shared by fetch_json and the stubs injected in tests
Fetcher = Callable[..., Any]
