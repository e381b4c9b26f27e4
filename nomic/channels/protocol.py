"""Broadcast channel protocol.

A broadcast is a public, in-channel message delivered out of band (via the
slash command's response_url), separate from the private acknowledgment
returned in the HTTP response.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable


@dataclass
class OutboundMessage:
    """A message ready for delivery to Slack."""
    text: str
    response_type: str = "in_channel"  # in_channel, ephemeral

    def to_payload(self) -> dict[str, Any]:
        return {"response_type": self.response_type, "text": self.text}


@dataclass
class SendResult:
    """Result of delivering a broadcast."""
    success: bool
    response_url: str = ""
    error: str = ""
    attempts: int = 0


@runtime_checkable
class Broadcaster(Protocol):
    """Protocol for public broadcast delivery."""

    async def post(self, response_url: str, message: OutboundMessage) -> SendResult:
        """Deliver a message. Never raises; failures are reported in SendResult."""
        ...

    async def aclose(self) -> None:
        """Release HTTP resources."""
        ...
