"""Async database engine and document store factory.

Provides a lazy-initialized SQLAlchemy async engine backed by asyncpg, connected
to the PostgreSQL database that hosts the ``documents`` table. Session mode
pooling is required because asyncpg uses prepared statements, which are
incompatible with transaction-mode pooling.

Usage:
    from studydesk_document_access.client import get_document_store

    store = get_document_store()
    user = await store.get("users", uid)
"""

from __future__ import annotations

import os

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from studydesk_document_access.memory_store import InMemoryDocumentStore
from studydesk_document_access.sql_store import SqlDocumentStore
from studydesk_document_access.store import DocumentStore

_engine: AsyncEngine | None = None
_store: DocumentStore | None = None


def _async_url(db_url: str) -> str:
    """Ensure PostgreSQL URLs use the asyncpg driver."""
    if db_url.startswith("postgresql://"):
        return db_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if db_url.startswith("postgres://"):
        return db_url.replace("postgres://", "postgresql+asyncpg://", 1)
    return db_url


def get_engine() -> AsyncEngine:
    """Return a lazily-initialized async engine singleton.

    Reads STUDYDESK_DB_URL from the environment. A ``postgresql://`` URL is
    rewritten to ``postgresql+asyncpg://`` for the async driver; any other
    SQLAlchemy async URL is used as-is.
    """
    global _engine
    if _engine is not None:
        return _engine

    db_url = os.environ.get("STUDYDESK_DB_URL", "")
    if not db_url:
        raise RuntimeError(
            "STUDYDESK_DB_URL environment variable is not set. "
            "Set it to the document database connection string."
        )

    url = _async_url(db_url)
    if url.startswith("postgresql+asyncpg://"):
        _engine = create_async_engine(url, pool_size=10, max_overflow=0, pool_pre_ping=True)
    else:
        _engine = create_async_engine(url, pool_pre_ping=True)
    return _engine


def get_document_store() -> DocumentStore:
    """SQL-backed store when STUDYDESK_DB_URL is set, otherwise in-memory."""
    global _store
    if _store is not None:
        return _store
    if os.environ.get("STUDYDESK_DB_URL"):
        _store = SqlDocumentStore(get_engine())
    else:
        _store = InMemoryDocumentStore()
    return _store


def reset_engine() -> None:
    """Reset the engine and store singletons — used in tests to inject mocks."""
    global _engine, _store
    _engine = None
    _store = None
