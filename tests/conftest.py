"""Shared fixtures for the Nomic test suite."""

from __future__ import annotations

import time
from typing import Callable
from urllib.parse import urlencode

import pytest

from nomic.channels.protocol import OutboundMessage, SendResult
from nomic.commands.parser import SlashCommand
from nomic.state.store import MemoryStateStore
from nomic.webhooks.verification import compute_signature

SIGNING_SECRET = "test-signing-secret"
RESPONSE_URL = "https://hooks.slack.com/commands/T000/1234/abcdef"


class FakeBroadcaster:
    """Records broadcasts instead of posting them."""

    def __init__(self, fail: bool = False):
        self.sent: list[tuple[str, OutboundMessage]] = []
        self.fail = fail
        self.closed = False

    async def post(self, response_url: str, message: OutboundMessage) -> SendResult:
        self.sent.append((response_url, message))
        if self.fail:
            return SendResult(success=False, response_url=response_url, error="HTTP 500", attempts=1)
        return SendResult(success=True, response_url=response_url, attempts=1)

    async def aclose(self) -> None:
        self.closed = True

    @property
    def texts(self) -> list[str]:
        return [message.text for _, message in self.sent]


@pytest.fixture
def signing_secret() -> str:
    return SIGNING_SECRET


@pytest.fixture
def store() -> MemoryStateStore:
    return MemoryStateStore()


@pytest.fixture
def broadcaster() -> FakeBroadcaster:
    return FakeBroadcaster()


@pytest.fixture
def make_command() -> Callable[..., SlashCommand]:
    """Factory for slash commands in channel C1."""

    def _make(text: str, user_id: str = "U1", user_name: str = "alice", channel_id: str = "C1") -> SlashCommand:
        return SlashCommand(
            channel_id=channel_id,
            user_id=user_id,
            user_name=user_name,
            text=text,
            response_url=RESPONSE_URL,
        )

    return _make


@pytest.fixture
def slack_form() -> Callable[..., bytes]:
    """Factory for URL-encoded slash-command bodies."""

    def _form(text: str, user_id: str = "U1", user_name: str = "alice", channel_id: str = "C1") -> bytes:
        return urlencode(
            {
                "token": "legacy-token",
                "team_id": "T000",
                "channel_id": channel_id,
                "user_id": user_id,
                "user_name": user_name,
                "command": "/nomic",
                "text": text,
                "response_url": RESPONSE_URL,
            }
        ).encode()

    return _form


@pytest.fixture
def sign_headers() -> Callable[..., dict[str, str]]:
    """Factory for valid Slack signature headers over a body."""

    def _sign(body: bytes, secret: str = SIGNING_SECRET, timestamp: int | None = None) -> dict[str, str]:
        ts = str(int(time.time()) if timestamp is None else timestamp)
        return {
            "X-Slack-Request-Timestamp": ts,
            "X-Slack-Signature": compute_signature(secret, ts, body),
            "Content-Type": "application/x-www-form-urlencoded",
        }

    return _sign
