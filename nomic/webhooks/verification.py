"""Slack request signature verification (v0 signing scheme).

Security contract:
- Comparison uses hmac.compare_digest() on bytes (constant-time, never raises
  on length mismatch or non-ASCII input)
- Missing signing secret -> verification always fails (fail-closed)
- Timestamps older than the tolerance (default 300s) are rejected to prevent
  replay; unparsable timestamps always count as stale
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import re
import time

logger = logging.getLogger(__name__)

SIGNATURE_VERSION = "v0"

# Slack replay window (seconds)
DEFAULT_TOLERANCE_SECONDS = 300

# Sentinel for timestamps that cannot be parsed; always older than the window.
_STALE_TIMESTAMP = 0

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def parse_timestamp(value: str | None) -> int:
    """Parse a request timestamp leniently.

    Leading digits are used ("1700000000abc" -> 1700000000). Anything else,
    including digit runs too long to convert, returns a sentinel that fails
    the freshness check.
    """
    if not value:
        return _STALE_TIMESTAMP
    match = _LEADING_INT.match(value)
    if not match:
        return _STALE_TIMESTAMP
    try:
        return int(match.group(1))
    except ValueError:
        # Digit run longer than the int conversion limit.
        return _STALE_TIMESTAMP


def compute_signature(secret: str, timestamp: str, body: bytes | str) -> str:
    """Compute the expected X-Slack-Signature for a request body."""
    if isinstance(body, str):
        body = body.encode("utf-8")
    basestring = f"{SIGNATURE_VERSION}:{timestamp}:".encode("utf-8") + body
    digest = hmac.new(
        secret.encode("utf-8"),
        basestring,
        hashlib.sha256,
    ).hexdigest()
    return f"{SIGNATURE_VERSION}={digest}"


def verify_slack_request(
    body: bytes | str,
    timestamp: str | None,
    signature: str | None,
    secret: str | None,
    *,
    now: float | None = None,
    tolerance: int = DEFAULT_TOLERANCE_SECONDS,
) -> bool:
    """Verify a Slack slash-command request.

    Args:
        body: Raw request body, exactly as received
        timestamp: Value of X-Slack-Request-Timestamp header
        signature: Value of X-Slack-Signature header
        secret: Slack app signing secret
        now: Current unix time (defaults to time.time())
        tolerance: Maximum request age in seconds

    Returns:
        True if the signature matches and the request is fresh
    """
    if not secret:
        logger.warning("SLACK_SIGNING_SECRET not set -- rejecting request")
        return False
    if not signature or timestamp is None:
        return False

    current = int(time.time() if now is None else now)
    if parse_timestamp(timestamp) < current - tolerance:
        logger.warning("Slack request timestamp too old: %r", timestamp)
        return False

    expected = compute_signature(secret, timestamp, body)
    return hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8"))
