"""
Outbound HTTP with a hard per-attempt deadline and one bounded retry.

Only transport failures are retried: connection errors, httpx timeouts and
the overall attempt deadline expiring. A response with a non-2xx status is
returned to the caller untouched; callers check ``response.is_success``.
"""

import asyncio
import logging
from typing import Awaitable, Callable

import httpx

logger = logging.getLogger(__name__)

TIMEOUT_SECONDS = 8.0
RETRY_DELAY_SECONDS = 0.25
MAX_RETRIES = 1


async def send_with_retry(
    client: httpx.AsyncClient,
    url: str,
    method: str = "POST",
    *,
    timeout: float = TIMEOUT_SECONDS,
    retry_delay: float = RETRY_DELAY_SECONDS,
    max_retries: int = MAX_RETRIES,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    **request_kwargs,
) -> httpx.Response:
    """
    Issue ``method url`` and return the response.

    Each attempt is cancelled if it has not produced a response within
    ``timeout`` seconds. After a failed attempt the call sleeps
    ``retry_delay * (attempt + 1)`` seconds and tries again, up to
    ``max_retries`` extra attempts. When every attempt fails the last error
    is raised.

    Args:
        client: Shared httpx client used for every attempt.
        url: Target URL.
        method: HTTP method (default POST).
        timeout: Deadline in seconds for a single attempt.
        retry_delay: Base backoff in seconds (linear).
        max_retries: Extra attempts after the first.
        sleep: Awaitable sleep, replaceable in tests.
        **request_kwargs: Passed through to ``client.request`` (json, data,
                          headers, ...).

    Raises:
        httpx.RequestError or asyncio.TimeoutError from the final attempt.
    """
    attempt = 0
    while True:
        try:
            return await asyncio.wait_for(
                client.request(method, url, **request_kwargs),
                timeout=timeout,
            )
        except (httpx.RequestError, asyncio.TimeoutError) as exc:
            if attempt >= max_retries:
                raise
            delay = retry_delay * (attempt + 1)
            logger.warning(
                "%s %s failed on attempt %d (%s); retrying in %.2fs",
                method, url, attempt + 1, type(exc).__name__, delay,
            )
            await sleep(delay)
            attempt += 1
