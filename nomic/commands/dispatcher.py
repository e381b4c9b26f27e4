"""Command dispatcher -- the per-channel proposal/voting state machine.

Commands:
- new <text>  replace the channel's proposal, discarding all votes
- yes / no    cast or overwrite the caller's vote
- status      broadcast the proposal and vote count
- reveal      publish every vote and the tally
- anything else returns the help text

Ordering contract: when a command broadcasts, the broadcast is posted and
awaited before the acknowledgment is returned, because the request ends as
soon as the acknowledgment is sent.

Concurrency: no locking. Two concurrent writers on one channel both read the
prior state and the last write wins.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from nomic.channels.protocol import Broadcaster, OutboundMessage
from nomic.commands.parser import SlashCommand, split_command
from nomic.state.models import ProposalState, VoteChoice
from nomic.state.store import StateStore

logger = logging.getLogger(__name__)

EPHEMERAL = "ephemeral"
IN_CHANNEL = "in_channel"

USAGE_NEW = "Usage: /nomic new <proposal text>"
NO_PROPOSAL_VOTE = "No active proposal. Use `/nomic new <text>` to start one."
NO_PROPOSAL_STATUS = "No active proposal."
NO_PROPOSAL_REVEAL = "No active proposal to reveal."
VOTE_CAST_BROADCAST = "a vote has been cast"

HELP_COMMANDS = (
    ("new <proposal>", "Start a new vote"),
    ("yes", "Vote yes"),
    ("no", "Vote no"),
    ("status", "Show current proposal and vote count"),
    ("reveal", "Show all votes"),
)

HELP_TEXT = "Commands:\n" + "\n".join(
    f"• `/nomic {usage}` - {summary}" for usage, summary in HELP_COMMANDS
)


@dataclass
class CommandResponse:
    """The synchronous HTTP reply to a slash command."""
    text: str
    response_type: str = EPHEMERAL

    def to_payload(self) -> dict[str, str]:
        return {"response_type": self.response_type, "text": self.text}


def pluralize_votes(count: int) -> str:
    return f"{count} vote" if count == 1 else f"{count} votes"


def render_reveal(state: ProposalState) -> str:
    """Reveal text for an active proposal; votes listed in insertion order."""
    if not state.votes:
        return f"*Proposal:* {state.proposal}\n\nNo votes cast yet."

    vote_list = "\n".join(
        f"{record.display_name}: {record.choice.label}" for record in state.votes.values()
    )
    tally = state.tally()
    return (
        f"*Proposal:* {state.proposal}\n\n"
        f"*Votes:*\n{vote_list}\n\n"
        f"*Result:* {tally[VoteChoice.YES]} YES / {tally[VoteChoice.NO]} NO"
    )


class CommandDispatcher:
    """Routes slash commands to state transitions and responses."""

    def __init__(self, store: StateStore, broadcaster: Broadcaster):
        self._store = store
        self._broadcaster = broadcaster

    async def dispatch(self, cmd: SlashCommand) -> CommandResponse:
        command, argument = split_command(cmd.text)

        if command == "new":
            response = await self._new(cmd, argument)
        elif command in ("yes", "no"):
            response = await self._vote(cmd, VoteChoice(command))
        elif command == "status":
            response = await self._status(cmd)
        elif command == "reveal":
            response = await self._reveal(cmd)
        else:
            response = CommandResponse(HELP_TEXT)

        logger.info(
            "COMMAND_AUDIT channel=%s user=%s command=%s response_type=%s",
            cmd.channel_id,
            cmd.user_id,
            command or "<empty>",
            response.response_type,
        )
        return response

    async def _broadcast(self, cmd: SlashCommand, text: str) -> None:
        result = await self._broadcaster.post(cmd.response_url, OutboundMessage(text=text))
        if not result.success:
            logger.warning(
                "Broadcast not delivered for channel %s: %s", cmd.channel_id, result.error
            )

    async def _new(self, cmd: SlashCommand, proposal: str) -> CommandResponse:
        if not proposal:
            return CommandResponse(USAGE_NEW)

        await self._store.delete(cmd.channel_id)
        await self._store.put(cmd.channel_id, ProposalState(proposal=proposal))

        await self._broadcast(cmd, f"*New Proposal from {cmd.user_name}:*\n{proposal}")
        return CommandResponse(f"Your proposal has been submitted:\n{proposal}")

    async def _vote(self, cmd: SlashCommand, choice: VoteChoice) -> CommandResponse:
        state = await self._store.get(cmd.channel_id)
        if not state.is_active:
            return CommandResponse(NO_PROPOSAL_VOTE)

        state.cast(cmd.user_id, choice, cmd.user_name)
        await self._store.put(cmd.channel_id, state)

        # Public notice discloses neither the voter nor the tally.
        await self._broadcast(cmd, VOTE_CAST_BROADCAST)
        return CommandResponse(
            f"You voted *{choice.label}* on:\n{state.proposal}\n\n"
            f"{pluralize_votes(state.vote_count)} so far"
        )

    async def _status(self, cmd: SlashCommand) -> CommandResponse:
        state = await self._store.get(cmd.channel_id)
        if not state.is_active:
            return CommandResponse(NO_PROPOSAL_STATUS)

        await self._broadcast(
            cmd,
            f"*Current Proposal:* {state.proposal}\n\n"
            f"{pluralize_votes(state.vote_count)} cast so far.",
        )
        return CommandResponse("")

    async def _reveal(self, cmd: SlashCommand) -> CommandResponse:
        state = await self._store.get(cmd.channel_id)
        if not state.is_active:
            return CommandResponse(NO_PROPOSAL_REVEAL)
        # The whole reply is the public message; no separate broadcast.
        return CommandResponse(render_reveal(state), response_type=IN_CHANNEL)
