"""Slash-command parsing.

Slack posts slash commands as application/x-www-form-urlencoded bodies. The
body is parsed only after signature verification, from the same raw bytes.
"""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import parse_qs


@dataclass
class SlashCommand:
    """The fields of an inbound /nomic invocation."""
    channel_id: str
    user_id: str
    user_name: str
    text: str = ""
    response_url: str = ""

    @classmethod
    def from_form(cls, body: bytes | str) -> SlashCommand:
        """Parse a URL-encoded slash-command body. Missing fields are empty."""
        if isinstance(body, bytes):
            body = body.decode("utf-8", errors="replace")
        parsed = parse_qs(body, keep_blank_values=True)
        # Flatten: {'text': ['yes']} -> {'text': 'yes'}
        data = {k: v[0] for k, v in parsed.items() if v}
        return cls(
            channel_id=data.get("channel_id", ""),
            user_id=data.get("user_id", ""),
            user_name=data.get("user_name", ""),
            text=data.get("text", ""),
            response_url=data.get("response_url", ""),
        )


def split_command(text: str | None) -> tuple[str, str]:
    """Split command text into (command, argument).

    The command is the first whitespace-separated token, lower-cased. The
    argument is the remaining tokens joined by single spaces.
    """
    tokens = (text or "").split()
    if not tokens:
        return "", ""
    return tokens[0].lower(), " ".join(tokens[1:])
