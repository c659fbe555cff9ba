"""Test fixtures for the document store implementations.

SQL store tests run against an in-memory SQLite database through aiosqlite,
so the JSON accessors and merge transactions execute for real. The in-memory
store needs no setup beyond construction.
"""

from __future__ import annotations

import pytest
from sqlalchemy.ext.asyncio import create_async_engine
from studydesk_document_access.memory_store import InMemoryDocumentStore
from studydesk_document_access.sql_store import SqlDocumentStore
from studydesk_document_access.tables import metadata


@pytest.fixture
def memory_store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
async def sql_store():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
    yield SqlDocumentStore(engine)
    await engine.dispose()


@pytest.fixture(params=["memory", "sql"])
async def store(request, memory_store, sql_store):
    """Each contract test runs once per implementation."""
    return memory_store if request.param == "memory" else sql_store
