"""Bounded-timeout retry with exponential backoff for collaborator calls."""

from __future__ import annotations

import asyncio
import logging

import httpx

logger = logging.getLogger(__name__)

RETRYABLE_HTTP_CODES = {429, 500, 502, 503, 504}
RETRYABLE_EXCEPTIONS = (
    httpx.TimeoutException,
    httpx.ConnectError,
    httpx.RemoteProtocolError,
    ConnectionError,
    TimeoutError,
    asyncio.TimeoutError,
)
# Matched by name so the anthropic SDK stays an optional import here
RETRYABLE_SDK_ERRORS = {
    "RateLimitError",
    "OverloadedError",
    "InternalServerError",
    "APIConnectionError",
    "APITimeoutError",
}


def _backoff(attempt: int, base_delay: float, max_delay: float) -> float:
    return min(base_delay * (2**attempt), max_delay)


def _retry_after(exc: httpx.HTTPStatusError, default: float, max_delay: float) -> float:
    header = exc.response.headers.get("retry-after")
    if not header:
        return default
    try:
        return min(float(header), max_delay)
    except ValueError:
        return default


async def retry_async(
    fn,
    *args,
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    timeout: float | None = None,
    **kwargs,
):
    """Call an async function with exponential backoff on transient failures.

    Each attempt is bounded by ``timeout`` seconds when given. Retries on:
    - timeouts and httpx connection errors
    - HTTP 429 (rate limit) and 5xx (server errors)
    - anthropic rate limit / overloaded errors
    """
    last_exc = None
    for attempt in range(max_retries + 1):
        try:
            if timeout is None:
                return await fn(*args, **kwargs)
            return await asyncio.wait_for(fn(*args, **kwargs), timeout)
        except RETRYABLE_EXCEPTIONS as exc:
            last_exc = exc
            delay = _backoff(attempt, base_delay, max_delay)
            reason = type(exc).__name__
        except httpx.HTTPStatusError as exc:
            if exc.response.status_code not in RETRYABLE_HTTP_CODES:
                raise
            last_exc = exc
            delay = _retry_after(exc, _backoff(attempt, base_delay, max_delay), max_delay)
            reason = f"HTTP {exc.response.status_code}"
        except Exception as exc:
            if type(exc).__name__ not in RETRYABLE_SDK_ERRORS:
                raise
            last_exc = exc
            delay = _backoff(attempt, base_delay, max_delay)
            reason = type(exc).__name__

        if attempt == max_retries:
            break
        logger.warning(
            "Retry %d/%d after %s (waiting %.1fs)",
            attempt + 1, max_retries, reason, delay,
        )
        await asyncio.sleep(delay)

    raise last_exc  # type: ignore[misc]
