"""Test fixtures for local storage.

Provides a MockRedis adapter that mirrors the RedisAdapter interface, recording
all operations and keeping values in a plain dict. Setting ``fail_writes`` or
``fail_reads`` makes the matching operations raise, the way a full or
unreachable store would.
"""

from __future__ import annotations

import pytest
from studydesk_local_access.cache import LocalCache

# ============================================================================
# MockRedis — mirrors RedisAdapter interface
# ============================================================================


class MockRedis:
    """In-memory adapter that records calls and can simulate failures."""

    def __init__(self) -> None:
        self.store: dict[str, str] = {}
        self.calls: list[tuple[str, tuple]] = []
        self.fail_reads = False
        self.fail_writes = False

    async def get(self, key: str) -> str | None:
        self.calls.append(("get", (key,)))
        if self.fail_reads:
            raise ConnectionError("local store unavailable")
        return self.store.get(key)

    async def set(self, key: str, value: str) -> None:
        self.calls.append(("set", (key, value)))
        if self.fail_writes:
            raise OSError("quota exceeded")
        self.store[key] = value

    async def delete(self, *keys: str) -> None:
        self.calls.append(("delete", keys))
        if self.fail_writes:
            raise OSError("local store unavailable")
        for key in keys:
            self.store.pop(key, None)

    async def keys_with_prefix(self, prefix: str) -> list[str]:
        self.calls.append(("keys_with_prefix", (prefix,)))
        if self.fail_reads:
            raise ConnectionError("local store unavailable")
        return sorted(k for k in self.store if k.startswith(prefix))

    async def close(self) -> None:
        self.calls.append(("close", ()))


@pytest.fixture
def mock_redis() -> MockRedis:
    return MockRedis()


@pytest.fixture
def cache(mock_redis: MockRedis) -> LocalCache:
    return LocalCache(mock_redis)  # type: ignore[arg-type]
