"""Proposal state store: per-channel JSON records in Redis.

Storage contract:
- get() never returns None; a missing key reads as the empty state
- put() is a full overwrite (no merge)
- delete() is idempotent
- Key pattern: {prefix}:{channel_id} (default prefix "nomic")
- No locking or compare-and-swap: concurrent writers are last-write-wins
- Backend failures surface as StoreError
"""

from __future__ import annotations

import json
import logging
from typing import Protocol, runtime_checkable

import redis
import redis.asyncio as aioredis

from nomic.errors import StoreError
from nomic.state.models import ProposalState, empty_state

logger = logging.getLogger(__name__)

DEFAULT_KEY_PREFIX = "nomic"


def state_key(channel_id: str, prefix: str = DEFAULT_KEY_PREFIX) -> str:
    """Namespaced storage key for a channel."""
    return f"{prefix}:{channel_id}"


def serialize_state(state: ProposalState) -> str:
    return json.dumps(state.to_dict())


def deserialize_state(raw: str | None) -> ProposalState:
    """Decode a stored record. None means no record."""
    if raw is None:
        return empty_state()
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise StoreError(f"Corrupt state record: {e}") from e
    if not isinstance(data, dict):
        raise StoreError("Corrupt state record: not an object")
    return ProposalState.from_dict(data)


@runtime_checkable
class StateStore(Protocol):
    """Async per-channel state persistence."""

    async def connect(self) -> None:
        """Open backend connections. Called once at startup."""
        ...

    async def close(self) -> None:
        """Release backend connections. Called once at shutdown."""
        ...

    async def get(self, channel_id: str) -> ProposalState:
        ...

    async def put(self, channel_id: str, state: ProposalState) -> None:
        ...

    async def delete(self, channel_id: str) -> None:
        ...


class RedisStateStore:
    """Redis-backed state store (redis.asyncio)."""

    def __init__(
        self,
        redis_url: str,
        key_prefix: str = DEFAULT_KEY_PREFIX,
        client: aioredis.Redis | None = None,
    ):
        self._redis_url = redis_url
        self._prefix = key_prefix
        self._redis = client

    @property
    def is_connected(self) -> bool:
        return self._redis is not None

    async def connect(self) -> None:
        if self._redis is not None:
            return
        self._redis = aioredis.from_url(self._redis_url, decode_responses=True)
        try:
            await self._redis.ping()
        except (redis.RedisError, OSError):
            # Keep the client; later calls retry the connection and raise StoreError.
            logger.warning("Redis not reachable at startup", exc_info=True)
        else:
            logger.info("Redis state store connected")

    async def close(self) -> None:
        if self._redis is None:
            return
        try:
            await self._redis.aclose()
        finally:
            self._redis = None

    def _client(self) -> aioredis.Redis:
        if self._redis is None:
            raise StoreError("State store is not connected")
        return self._redis

    async def get(self, channel_id: str) -> ProposalState:
        key = state_key(channel_id, self._prefix)
        try:
            raw = await self._client().get(key)
        except (redis.RedisError, OSError) as e:
            logger.error("State read failed for %s: %s", key, e)
            raise StoreError(f"State read failed for {key}") from e
        return deserialize_state(raw)

    async def put(self, channel_id: str, state: ProposalState) -> None:
        key = state_key(channel_id, self._prefix)
        try:
            await self._client().set(key, serialize_state(state))
        except (redis.RedisError, OSError) as e:
            logger.error("State write failed for %s: %s", key, e)
            raise StoreError(f"State write failed for {key}") from e

    async def delete(self, channel_id: str) -> None:
        key = state_key(channel_id, self._prefix)
        try:
            await self._client().delete(key)
        except (redis.RedisError, OSError) as e:
            logger.error("State delete failed for %s: %s", key, e)
            raise StoreError(f"State delete failed for {key}") from e


class MemoryStateStore:
    """In-process state store with the same round-trip semantics as Redis.

    Records are kept serialized so callers never share mutable state with
    the store. For tests and single-process local runs.
    """

    def __init__(self, key_prefix: str = DEFAULT_KEY_PREFIX):
        self._prefix = key_prefix
        self._data: dict[str, str] = {}

    async def connect(self) -> None:
        return None

    async def close(self) -> None:
        return None

    async def get(self, channel_id: str) -> ProposalState:
        return deserialize_state(self._data.get(state_key(channel_id, self._prefix)))

    async def put(self, channel_id: str, state: ProposalState) -> None:
        self._data[state_key(channel_id, self._prefix)] = serialize_state(state)

    async def delete(self, channel_id: str) -> None:
        self._data.pop(state_key(channel_id, self._prefix), None)

    def keys(self) -> list[str]:
        return list(self._data)


def build_store(backend: str, redis_url: str, key_prefix: str = DEFAULT_KEY_PREFIX) -> StateStore:
    """Create the configured store backend."""
    if backend == "memory":
        logger.warning("Using in-memory state store -- state is lost on restart")
        return MemoryStateStore(key_prefix=key_prefix)
    if backend == "redis":
        return RedisStateStore(redis_url, key_prefix=key_prefix)
    raise ValueError(f"Unknown store backend: {backend}")
