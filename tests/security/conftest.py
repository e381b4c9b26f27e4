"""HTTP-level fixtures.

Builds the FastAPI app with a MemoryStateStore and the recording broadcaster,
so the full request flow runs without Redis or network access.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from nomic.config import Settings
from nomic.serve import create_app


@pytest.fixture
def settings(signing_secret) -> Settings:
    return Settings(slack_signing_secret=signing_secret, store_backend="memory")


@pytest.fixture
def app(settings, store, broadcaster):
    return create_app(settings=settings, store=store, broadcaster=broadcaster)


@pytest.fixture
def client(app):
    """TestClient with lifespan (store connect/close) active."""
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c
