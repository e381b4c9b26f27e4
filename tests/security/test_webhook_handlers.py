"""Slash-command endpoint integration tests.

Verifies the full HTTP request flow:
- GET health probe needs no signature
- 405 for other verbs, 401 for bad signatures, 500 for storage failures
- Valid commands return 200 with the acknowledgment JSON
- Broadcasts go to the request's response_url
"""

from __future__ import annotations

import time

import pytest
from fastapi.testclient import TestClient

from nomic.config import Settings
from nomic.errors import StoreError
from nomic.serve import create_app
from nomic.state.store import MemoryStateStore

SLACK_PATH = "/api/slack"


def _post(client, slack_form, sign_headers, text: str, **form_kwargs):
    body = slack_form(text, **form_kwargs)
    return client.post(SLACK_PATH, content=body, headers=sign_headers(body))


class TestHealthAndMethods:

    def test_get_returns_health_without_signature(self, client):
        resp = client.get(SLACK_PATH)
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok", "message": "Nomic Slack bot is running"}

    @pytest.mark.parametrize("method", ["PUT", "PATCH", "DELETE", "OPTIONS", "TRACE", "FOO"])
    def test_other_methods_return_405(self, client, method):
        resp = client.request(method, SLACK_PATH)
        assert resp.status_code == 405
        assert resp.json() == {"error": "Method not allowed"}

    def test_head_returns_405(self, client):
        resp = client.head(SLACK_PATH)
        assert resp.status_code == 405

    def test_unknown_path_keeps_default_404(self, client):
        resp = client.get("/api/other")
        assert resp.status_code == 404
        assert resp.json() == {"detail": "Not Found"}


class TestSignatureEnforcement:

    def test_missing_signature_returns_401(self, client, slack_form):
        resp = client.post(SLACK_PATH, content=slack_form("yes"))
        assert resp.status_code == 401
        assert resp.json() == {"error": "Invalid signature"}

    def test_bad_signature_returns_401(self, client, slack_form):
        body = slack_form("yes")
        resp = client.post(
            SLACK_PATH,
            content=body,
            headers={
                "X-Slack-Request-Timestamp": str(int(time.time())),
                "X-Slack-Signature": "v0=deadbeef",
            },
        )
        assert resp.status_code == 401

    def test_stale_timestamp_returns_401(self, client, slack_form, sign_headers, store):
        body = slack_form("new Replayed")
        headers = sign_headers(body, timestamp=int(time.time()) - 600)

        resp = client.post(SLACK_PATH, content=body, headers=headers)

        assert resp.status_code == 401
        assert store.keys() == []

    def test_oversized_timestamp_returns_401(self, client, slack_form):
        resp = client.post(
            SLACK_PATH,
            content=slack_form("status"),
            headers={
                "X-Slack-Request-Timestamp": "1" * 5000,
                "X-Slack-Signature": "v0=deadbeef",
            },
        )
        assert resp.status_code == 401
        assert resp.json() == {"error": "Invalid signature"}

    def test_wrong_secret_returns_401(self, client, slack_form, sign_headers):
        body = slack_form("status")
        resp = client.post(SLACK_PATH, content=body, headers=sign_headers(body, secret="nope"))
        assert resp.status_code == 401

    def test_unset_secret_rejects_all_posts(self, store, broadcaster, slack_form, sign_headers):
        app = create_app(
            settings=Settings(slack_signing_secret="", store_backend="memory"),
            store=store,
            broadcaster=broadcaster,
        )
        body = slack_form("status")
        with TestClient(app) as c:
            resp = c.post(SLACK_PATH, content=body, headers=sign_headers(body))
        assert resp.status_code == 401
        assert broadcaster.sent == []


class TestCommandFlow:

    def test_new_proposal(self, client, slack_form, sign_headers, broadcaster):
        resp = _post(client, slack_form, sign_headers, "new Rules may be amended by majority")

        assert resp.status_code == 200
        assert resp.json() == {
            "response_type": "ephemeral",
            "text": "Your proposal has been submitted:\nRules may be amended by majority",
        }
        url, message = broadcaster.sent[0]
        assert url == "https://hooks.slack.com/commands/T000/1234/abcdef"
        assert message.text == "*New Proposal from alice:*\nRules may be amended by majority"

    def test_full_vote_and_reveal(self, client, slack_form, sign_headers):
        _post(client, slack_form, sign_headers, "new P")
        _post(client, slack_form, sign_headers, "yes", user_id="UA", user_name="alice")
        _post(client, slack_form, sign_headers, "yes", user_id="UB", user_name="bob")
        vote = _post(client, slack_form, sign_headers, "no", user_id="UA", user_name="alice")
        assert vote.json()["text"] == "You voted *NO* on:\nP\n\n2 votes so far"

        resp = _post(client, slack_form, sign_headers, "reveal")

        assert resp.status_code == 200
        assert resp.json()["response_type"] == "in_channel"
        assert resp.json()["text"].endswith("*Result:* 1 YES / 1 NO")
        assert "alice: NO\nbob: YES" in resp.json()["text"]

    def test_status_on_empty_channel(self, client, slack_form, sign_headers, broadcaster):
        resp = _post(client, slack_form, sign_headers, "status")

        assert resp.status_code == 200
        assert resp.json() == {"response_type": "ephemeral", "text": "No active proposal."}
        assert broadcaster.sent == []

    def test_unknown_command_returns_help(self, client, slack_form, sign_headers):
        resp = _post(client, slack_form, sign_headers, "banana")
        assert resp.status_code == 200
        assert resp.json()["text"].startswith("Commands:\n")

    def test_channels_are_isolated(self, client, slack_form, sign_headers):
        _post(client, slack_form, sign_headers, "new Only in C1", channel_id="C1")
        resp = _post(client, slack_form, sign_headers, "reveal", channel_id="C2")
        assert resp.json()["text"] == "No active proposal to reveal."

    def test_broadcast_failure_still_returns_ack(self, client, slack_form, sign_headers, broadcaster):
        broadcaster.fail = True
        resp = _post(client, slack_form, sign_headers, "new P")
        assert resp.status_code == 200
        assert resp.json()["text"] == "Your proposal has been submitted:\nP"


class TestStorageFailure:

    def test_store_error_returns_500(self, settings, broadcaster, slack_form, sign_headers):
        class DownStore(MemoryStateStore):
            async def get(self, channel_id):
                raise StoreError("connection refused")

        app = create_app(settings=settings, store=DownStore(), broadcaster=broadcaster)
        body = slack_form("yes")
        with TestClient(app, raise_server_exceptions=False) as c:
            resp = c.post(SLACK_PATH, content=body, headers=sign_headers(body))

        assert resp.status_code == 500
        assert resp.json() == {"error": "Storage unavailable"}


class TestLifespan:

    def test_shutdown_closes_broadcaster(self, app, broadcaster):
        with TestClient(app):
            pass
        assert broadcaster.closed is True

    def test_dispatcher_owns_the_store(self, app, store):
        assert app.state.dispatcher._store is store
        assert not hasattr(app.state, "store")
