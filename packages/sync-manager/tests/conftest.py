"""Test fixtures for the Sync Manager.

Provides:
  - RecordingStore: the in-memory document store with call recording and
    switchable failures for reads, writes and queries
  - MockRedis: mirrors the RedisAdapter interface over a plain dict
  - FakeProvider: an auth provider that signs in whoever the token names
  - A controllable clock, and wired-up gate/session/cache fixtures
"""

from __future__ import annotations

from typing import Any

import pytest
from studydesk_access_engine.gate import AuthorizationGate
from studydesk_auth.provider import ProviderSession
from studydesk_auth.session import AuthSession
from studydesk_document_access.memory_store import InMemoryDocumentStore
from studydesk_document_access.store import Document, DocumentQuery
from studydesk_local_access.cache import LocalCache
from studydesk_shared.errors import DocumentStoreError
from studydesk_shared.user_models import AuthIdentity

ADMIN_EMAIL = "admin@studydesk.dev"
NOW = 1_750_000_000_000

# ============================================================================
# Remote document store
# ============================================================================


class RecordingStore(InMemoryDocumentStore):
    """InMemoryDocumentStore that records calls and can fail on demand."""

    def __init__(self) -> None:
        super().__init__()
        self.calls: list[tuple[str, tuple]] = []
        self.fail_reads = False
        self.fail_writes = False
        self.fail_queries = False

    def _record(self, name: str, *args: Any) -> None:
        self.calls.append((name, args))

    def count(self, name: str) -> int:
        return sum(1 for call, _ in self.calls if call == name)

    def writes(self) -> list[tuple[str, tuple]]:
        return [c for c in self.calls if c[0] in ("set", "add", "delete")]

    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        self._record("get", collection, doc_id)
        if self.fail_reads:
            raise DocumentStoreError("remote read unavailable")
        return await super().get(collection, doc_id)

    async def set(
        self, collection: str, doc_id: str, data: dict[str, Any], *, merge: bool = False
    ) -> None:
        self._record("set", collection, doc_id, data, merge)
        if self.fail_writes:
            raise DocumentStoreError("remote write unavailable")
        await super().set(collection, doc_id, data, merge=merge)

    async def delete(self, collection: str, doc_id: str) -> None:
        self._record("delete", collection, doc_id)
        if self.fail_writes:
            raise DocumentStoreError("remote write unavailable")
        await super().delete(collection, doc_id)

    async def list(self, collection: str) -> list[Document]:
        self._record("list", collection)
        if self.fail_reads:
            raise DocumentStoreError("remote read unavailable")
        return await super().list(collection)

    async def query(self, collection: str, query: DocumentQuery) -> list[Document]:
        self._record("query", collection, query)
        if self.fail_queries:
            raise DocumentStoreError("remote query unavailable")
        return await super().query(collection, query)


# ============================================================================
# MockRedis — mirrors RedisAdapter interface
# ============================================================================


class MockRedis:
    """In-memory adapter that records calls and can simulate failures."""

    def __init__(self) -> None:
        self.store: dict[str, str] = {}
        self.calls: list[tuple[str, tuple]] = []
        self.fail_writes = False

    async def get(self, key: str) -> str | None:
        self.calls.append(("get", (key,)))
        return self.store.get(key)

    async def set(self, key: str, value: str) -> None:
        self.calls.append(("set", (key, value)))
        if self.fail_writes:
            raise OSError("quota exceeded")
        self.store[key] = value

    async def delete(self, *keys: str) -> None:
        self.calls.append(("delete", keys))
        for key in keys:
            self.store.pop(key, None)

    async def keys_with_prefix(self, prefix: str) -> list[str]:
        return sorted(k for k in self.store if k.startswith(prefix))

    async def close(self) -> None:
        pass


# ============================================================================
# Auth
# ============================================================================


class FakeProvider:
    """Signs in ``<name>`` for token ``<name>``; email ``<name>@example.com``."""

    def __init__(self) -> None:
        self.emails: dict[str, str] = {"admin": ADMIN_EMAIL}
        self.signed_out: list[str] = []

    async def sign_in_with_id_token(self, id_token: str) -> ProviderSession:
        return ProviderSession(
            identity=AuthIdentity(
                user_id=f"uid-{id_token}",
                email=self.emails.get(id_token, f"{id_token}@example.com"),
                display_name=id_token.title(),
                photo_url=f"https://img.example.com/{id_token}.png",
            ),
            access_token=f"access-{id_token}",
        )

    async def sign_out(self, access_token: str) -> None:
        self.signed_out.append(access_token)


class Clock:
    """Settable epoch-millisecond clock."""

    def __init__(self, now: int = NOW) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def clock() -> Clock:
    return Clock()


@pytest.fixture
def store() -> RecordingStore:
    return RecordingStore()


@pytest.fixture
def mock_redis() -> MockRedis:
    return MockRedis()


@pytest.fixture
def cache(mock_redis: MockRedis) -> LocalCache:
    return LocalCache(mock_redis)  # type: ignore[arg-type]


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def session(provider: FakeProvider) -> AuthSession:
    return AuthSession(provider)


@pytest.fixture
def gate(store: RecordingStore, clock: Clock) -> AuthorizationGate:
    return AuthorizationGate(store, admin_email=ADMIN_EMAIL, clock=clock)
