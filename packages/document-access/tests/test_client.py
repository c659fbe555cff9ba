"""Tests for the engine and document store factories."""

from __future__ import annotations

import pytest
from studydesk_document_access.client import (
    _async_url,
    get_document_store,
    get_engine,
    reset_engine,
)
from studydesk_document_access.memory_store import InMemoryDocumentStore
from studydesk_document_access.sql_store import SqlDocumentStore


@pytest.fixture(autouse=True)
def _fresh(monkeypatch):
    monkeypatch.delenv("STUDYDESK_DB_URL", raising=False)
    reset_engine()
    yield
    reset_engine()


class TestAsyncUrl:
    def test_rewrites_postgres_schemes(self) -> None:
        assert _async_url("postgresql://u:p@h/db") == "postgresql+asyncpg://u:p@h/db"
        assert _async_url("postgres://u:p@h/db") == "postgresql+asyncpg://u:p@h/db"

    def test_leaves_async_urls_alone(self) -> None:
        assert _async_url("sqlite+aiosqlite:///x.db") == "sqlite+aiosqlite:///x.db"


class TestFactories:
    def test_engine_requires_url(self) -> None:
        with pytest.raises(RuntimeError, match="STUDYDESK_DB_URL"):
            get_engine()

    def test_in_memory_store_without_url(self) -> None:
        store = get_document_store()
        assert isinstance(store, InMemoryDocumentStore)
        assert get_document_store() is store

    def test_sql_store_with_url(self, monkeypatch) -> None:
        monkeypatch.setenv("STUDYDESK_DB_URL", "sqlite+aiosqlite:///:memory:")
        assert isinstance(get_document_store(), SqlDocumentStore)
        assert get_engine() is get_engine()
