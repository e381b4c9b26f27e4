"""Proposal state data models.

One ProposalState per channel. The JSON form keeps the field names the bot
has always persisted ("vote"/"name"), so existing records stay readable.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class VoteChoice(str, Enum):
    """A voter's choice on the active proposal."""
    YES = "yes"
    NO = "no"

    @property
    def label(self) -> str:
        """Upper-case token used in user-facing text."""
        return self.value.upper()


@dataclass
class VoteRecord:
    """A single voter's latest vote."""
    choice: VoteChoice
    display_name: str  # Captured at vote time, never re-resolved

    def to_dict(self) -> dict[str, str]:
        return {"vote": self.choice.value, "name": self.display_name}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> VoteRecord:
        return cls(choice=VoteChoice(data["vote"]), display_name=str(data.get("name", "")))


@dataclass
class ProposalState:
    """Channel voting state.

    Either empty (proposal is None, no votes) or active (proposal set).
    ``votes`` is keyed by user id and keeps insertion order; a re-vote keeps
    the voter's original position.
    """
    proposal: str | None = None
    votes: dict[str, VoteRecord] = field(default_factory=dict)

    @property
    def is_active(self) -> bool:
        return bool(self.proposal)

    @property
    def vote_count(self) -> int:
        return len(self.votes)

    def cast(self, user_id: str, choice: VoteChoice, display_name: str) -> None:
        """Record (or overwrite) a vote. Last write wins."""
        self.votes[user_id] = VoteRecord(choice=choice, display_name=display_name)

    def tally(self) -> dict[VoteChoice, int]:
        counts = {VoteChoice.YES: 0, VoteChoice.NO: 0}
        for record in self.votes.values():
            counts[record.choice] += 1
        return counts

    def to_dict(self) -> dict[str, Any]:
        return {
            "proposal": self.proposal,
            "votes": {uid: record.to_dict() for uid, record in self.votes.items()},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProposalState:
        """Rebuild state from its stored form, skipping malformed votes."""
        votes: dict[str, VoteRecord] = {}
        for uid, raw in (data.get("votes") or {}).items():
            try:
                votes[uid] = VoteRecord.from_dict(raw)
            except (KeyError, TypeError, ValueError):
                logger.warning("Skipping malformed vote record for user %s", uid)
        return cls(proposal=data.get("proposal") or None, votes=votes)


def empty_state() -> ProposalState:
    """The state of a channel with no record."""
    return ProposalState()
