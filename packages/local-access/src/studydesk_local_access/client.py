"""Redis client adapter for local key-value storage.

Local storage speaks the Redis protocol. Two backends sit behind the same
adapter:
  - LOCAL_REDIS_URL set → redis-py asyncio client against a local server
    (persists across restarts, so cold starts without connectivity still see
    the last known state)
  - Otherwise → fakeredis (in-process, no external dependency)

The RedisAdapter narrows the raw client to the handful of string operations
the persistence core needs, and normalizes bytes/str return types so callers
never touch raw clients.

Usage:
    from studydesk_local_access.client import get_client

    client = get_client()
    await client.set("dh_tasks", json_str)
    value = await client.get("dh_tasks")
"""

from __future__ import annotations

import os
from typing import Any


def _text(value: Any) -> str:
    return value if isinstance(value, str) else value.decode()


class RedisAdapter:
    """Unified async string-store interface over redis-py or fakeredis."""

    def __init__(self, raw_client: Any) -> None:
        self._client = raw_client

    async def get(self, key: str) -> str | None:
        value = await self._client.get(key)
        return None if value is None else _text(value)

    async def set(self, key: str, value: str) -> None:
        await self._client.set(key, value)

    async def delete(self, *keys: str) -> None:
        if keys:
            await self._client.delete(*keys)

    async def keys_with_prefix(self, prefix: str) -> list[str]:
        """All keys starting with ``prefix``, via SCAN so large stores don't block."""
        found: list[str] = []
        async for key in self._client.scan_iter(match=f"{prefix}*"):
            found.append(_text(key))
        return sorted(found)

    async def close(self) -> None:
        await self._client.aclose()


# ============================================================================
# Singleton management
# ============================================================================

_client: RedisAdapter | None = None


def get_client() -> RedisAdapter:
    """Return a lazily-initialized RedisAdapter singleton.

    Environment detection:
      - LOCAL_REDIS_URL set → redis-py against that server
      - Otherwise → fakeredis (in-memory, no external dependency)
    """
    global _client
    if _client is not None:
        return _client

    url = os.environ.get("LOCAL_REDIS_URL")
    if url:
        from redis.asyncio import Redis

        raw = Redis.from_url(url, decode_responses=True)
    else:
        from fakeredis.aioredis import FakeRedis

        raw = FakeRedis(decode_responses=True)

    _client = RedisAdapter(raw)
    return _client


def reset_client() -> None:
    """Reset the client singleton — used in tests to inject mocks."""
    global _client
    _client = None


def set_client(adapter: RedisAdapter) -> None:
    """Inject a client — used in tests."""
    global _client
    _client = adapter
