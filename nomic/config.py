"""Nomic service configuration."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Environment-driven settings for the Nomic bot."""

    # Slack request signing. Empty secret rejects every POST (fail-closed).
    slack_signing_secret: str = ""
    signature_tolerance_seconds: int = 300

    # State storage
    store_backend: str = "redis"  # redis, memory
    redis_url: str = "redis://localhost:6379/0"
    state_key_prefix: str = "nomic"

    # Outbound broadcasts to Slack response_url. The broadcast is awaited
    # before the ack and Slack drops acks after 3s, so (retries + 1) *
    # timeout plus backoff must stay under that.
    broadcast_timeout_seconds: float = 1.0
    broadcast_max_retries: int = 1

    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000

    model_config = {"env_file": ".env", "extra": "ignore"}


def get_settings() -> Settings:
    """Build settings from the current environment."""
    return Settings()
