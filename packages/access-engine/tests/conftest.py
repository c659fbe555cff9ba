"""Test fixtures for the authorization gate.

RecordingStore wraps the in-memory document store, recording every call and
optionally failing reads, so tests can assert exactly how many remote reads
a check performed.
"""

from __future__ import annotations

from typing import Any

import pytest
from studydesk_access_engine.gate import AuthorizationGate
from studydesk_document_access.memory_store import InMemoryDocumentStore
from studydesk_shared.errors import DocumentStoreError
from studydesk_shared.user_models import AuthIdentity

ADMIN_EMAIL = "admin@studydesk.dev"
NOW = 1_750_000_000_000


class RecordingStore(InMemoryDocumentStore):
    """InMemoryDocumentStore that records calls and can fail on demand."""

    def __init__(self) -> None:
        super().__init__()
        self.calls: list[tuple[str, tuple]] = []
        self.fail_reads = False

    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        self.calls.append(("get", (collection, doc_id)))
        if self.fail_reads:
            raise DocumentStoreError("remote unavailable")
        return await super().get(collection, doc_id)

    def reads(self) -> int:
        return sum(1 for name, _ in self.calls if name == "get")


@pytest.fixture
def store() -> RecordingStore:
    return RecordingStore()


@pytest.fixture
def gate(store: RecordingStore) -> AuthorizationGate:
    return AuthorizationGate(store, admin_email=ADMIN_EMAIL, clock=lambda: NOW)


@pytest.fixture
def subject() -> AuthIdentity:
    return AuthIdentity(user_id="uid-1", email="learner@example.com", display_name="Learner")


@pytest.fixture
def admin() -> AuthIdentity:
    return AuthIdentity(user_id="uid-admin", email="Admin@StudyDesk.dev")
