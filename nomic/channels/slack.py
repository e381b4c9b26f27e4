"""Slack response_url channel -- posts public broadcasts for slash commands.

Each slash command carries a response_url that accepts JSON messages for a
short time after the command. Delivery is awaited by the caller so the
broadcast is attempted before the acknowledgment ends the request.

Failure policy: transient errors are retried with backoff; a final failure is
logged and reported as SendResult(success=False), never raised to the caller.
The response_url is a bearer capability and is never logged in full.
"""

from __future__ import annotations

import logging
from urllib.parse import urlsplit

import httpx

from nomic.channels.protocol import OutboundMessage, SendResult
from nomic.errors import BroadcastDeliveryError
from nomic.tools.retry import async_retry_with_backoff

logger = logging.getLogger(__name__)


def _redact_url(url: str) -> str:
    """Keep scheme and host only."""
    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.netloc}/..." if parts.netloc else "<invalid>"


def _describe(exc: Exception) -> str:
    """Short failure reason without the URL (httpx messages embed it)."""
    if isinstance(exc, httpx.HTTPStatusError):
        return f"HTTP {exc.response.status_code}"
    return type(exc).__name__


class ResponseUrlChannel:
    """Delivers OutboundMessages to Slack response_url endpoints."""

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        timeout: float = 1.0,
        max_retries: int = 1,
        base_delay: float = 0.25,
    ):
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._max_retries = max_retries
        self._base_delay = base_delay

    async def post(self, response_url: str, message: OutboundMessage) -> SendResult:
        """POST a message to a response_url."""
        if not response_url:
            logger.warning("Broadcast skipped: request carried no response_url")
            return SendResult(success=False, error="response_url missing")

        attempts = 0

        @async_retry_with_backoff(
            max_retries=self._max_retries,
            base_delay=self._base_delay,
            max_delay=2.0,
        )
        async def _deliver() -> httpx.Response:
            nonlocal attempts
            attempts += 1
            resp = await self._client.post(response_url, json=message.to_payload())
            resp.raise_for_status()
            return resp

        try:
            await _deliver()
        except (httpx.HTTPError, httpx.InvalidURL, ConnectionError) as e:
            err = BroadcastDeliveryError(
                f"Broadcast delivery failed: {_describe(e)}",
                response_url=response_url,
            )
            logger.warning(
                "Broadcast to %s failed after %d attempt(s): %s",
                _redact_url(response_url),
                attempts,
                err.message,
            )
            return SendResult(
                success=False,
                response_url=response_url,
                error=err.message,
                attempts=attempts,
            )

        logger.debug("Broadcast delivered to %s", _redact_url(response_url))
        return SendResult(success=True, response_url=response_url, attempts=attempts)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
