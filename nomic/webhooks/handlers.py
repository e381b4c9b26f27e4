"""Slash-command HTTP handler -- FastAPI route for /nomic.

The handler:
1. Answers GET with a static health payload (no verification)
2. Other verbs never reach it; the router answers 405 and the app renders
   it as a MethodError
3. Reads the raw body (needed for HMAC verification)
4. Verifies the Slack signature (401 on failure)
5. Parses the form body and dispatches the command
6. Returns the command's acknowledgment as JSON (always 200)

Errors raised as NomicError are rendered by the app's exception handler as
{"error": ...} with the error's status code.
"""

from __future__ import annotations

import logging
import time

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from nomic.commands.dispatcher import CommandDispatcher
from nomic.commands.parser import SlashCommand
from nomic.config import Settings
from nomic.errors import AuthError
from nomic.webhooks.verification import verify_slack_request

logger = logging.getLogger(__name__)

SLACK_PATH = "/api/slack"

HEALTH_PAYLOAD = {"status": "ok", "message": "Nomic Slack bot is running"}

_ROUTE_METHODS = ["GET", "POST"]


async def handle_slash_command(request: Request) -> JSONResponse:
    """Verify, parse and dispatch one slash-command request."""
    if request.method == "GET":
        return JSONResponse(HEALTH_PAYLOAD)

    settings: Settings = request.app.state.settings
    dispatcher: CommandDispatcher = request.app.state.dispatcher

    start = time.time()
    body = await request.body()

    if not verify_slack_request(
        body,
        request.headers.get("x-slack-request-timestamp"),
        request.headers.get("x-slack-signature"),
        settings.slack_signing_secret,
        tolerance=settings.signature_tolerance_seconds,
    ):
        logger.info("Rejected slash command: invalid signature")
        raise AuthError()

    command = SlashCommand.from_form(body)
    response = await dispatcher.dispatch(command)

    elapsed_ms = (time.time() - start) * 1000
    logger.debug("Slash command handled in %.1fms (channel=%s)", elapsed_ms, command.channel_id)

    return JSONResponse(response.to_payload())


def register_slack_routes(app: FastAPI) -> None:
    """Register the slash-command endpoint on the FastAPI app."""
    app.add_api_route(SLACK_PATH, handle_slash_command, methods=_ROUTE_METHODS)
    logger.info("Slash command route registered: %s", SLACK_PATH)
