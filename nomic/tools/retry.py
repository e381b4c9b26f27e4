"""Async backoff for outbound Slack calls.

Only failures that a second attempt can plausibly fix are retried: throttling
(429), gateway/server errors, refused connections and read timeouts. Anything
else (4xx, malformed URLs) propagates on the first attempt. A Retry-After
header overrides the computed delay, still capped at max_delay.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import random
from typing import Any, Awaitable, Callable

import httpx

logger = logging.getLogger(__name__)

TRANSIENT_STATUSES = frozenset({429, 500, 502, 503, 504})

TRANSIENT_ERRORS = (httpx.ConnectError, httpx.ReadTimeout, ConnectionError)


def async_retry_with_backoff(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    jitter: float = 0.3,
) -> Callable:
    """Wrap a coroutine function so transient failures are retried.

    ``max_retries=0`` makes a single attempt. The delay before retry ``n``
    (0-based) is ``base_delay * 2**n``, capped, then spread by +/- ``jitter``.
    """

    def decorator(fn: Callable[..., Awaitable[Any]]) -> Callable[..., Awaitable[Any]]:
        @functools.wraps(fn)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            attempt = 0
            while True:
                try:
                    return await fn(*args, **kwargs)
                except httpx.HTTPStatusError as e:
                    if e.response.status_code not in TRANSIENT_STATUSES or attempt >= max_retries:
                        raise
                    reason = f"HTTP {e.response.status_code}"
                    delay = compute_delay(attempt, base_delay, max_delay, jitter, e.response)
                except TRANSIENT_ERRORS as e:
                    if attempt >= max_retries:
                        raise
                    reason = type(e).__name__
                    delay = compute_delay(attempt, base_delay, max_delay, jitter)

                attempt += 1
                logger.warning(
                    "%s failed (%s); attempt %d of %d in %.2fs",
                    fn.__name__,
                    reason,
                    attempt + 1,
                    max_retries + 1,
                    delay,
                )
                await asyncio.sleep(delay)

        return wrapper

    return decorator


def compute_delay(
    attempt: int,
    base_delay: float,
    max_delay: float,
    jitter: float,
    response: httpx.Response | None = None,
) -> float:
    """Seconds to wait before the next attempt."""
    if response is not None:
        retry_after = response.headers.get("Retry-After")
        if retry_after:
            try:
                return min(float(retry_after), max_delay)
            except ValueError:
                pass  # HTTP-date form; fall back to backoff

    delay = min(base_delay * (2**attempt), max_delay)
    spread = delay * jitter
    return max(0.0, delay + random.uniform(-spread, spread))
