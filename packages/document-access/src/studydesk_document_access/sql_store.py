"""SQL-backed document store.

Documents live in one ``documents`` table keyed by (collection, doc_id) with a
JSON body. Queries filter and order on JSON fields using SQLAlchemy's typed
JSON accessors, so the same statements run on PostgreSQL (JSONB) in
production and SQLite in tests. Ordered queries expect a numeric order field,
which is what every caller uses (epoch-millisecond timestamps).

Error handling:
  - Transient connection errors (OperationalError, InterfaceError) are retried
    with exponential backoff via tenacity.
  - Anything SQLAlchemy still raises after that surfaces as DocumentStoreError,
    so callers only ever catch one exception type from the store.
"""

from __future__ import annotations

import uuid
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine
from studydesk_shared.errors import DocumentStoreError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from studydesk_document_access.store import (
    Document,
    DocumentQuery,
    apply_merge,
    strip_delete_markers,
)
from studydesk_document_access.tables import documents

T = TypeVar("T")

_transient = retry(
    retry=retry_if_exception_type((OperationalError, InterfaceError)),
    wait=wait_exponential(multiplier=0.5, min=0.5, max=5),
    stop=stop_after_attempt(3),
    reraise=True,
)


def _typed(expr: Any, value: Any) -> Any:
    """Cast a JSON field accessor to match the Python type it is compared with."""
    if isinstance(value, bool):
        return expr.as_boolean()
    if isinstance(value, int):
        return expr.as_integer()
    if isinstance(value, float):
        return expr.as_float()
    return expr.as_string()


class SqlDocumentStore:
    """DocumentStore over a SQLAlchemy async engine."""

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine

    async def _guard(self, label: str, operation: Callable[[], Awaitable[T]]) -> T:
        try:
            return await operation()
        except SQLAlchemyError as e:
            raise DocumentStoreError(f"{label} failed: {e}") from e

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        return await self._guard(
            f"get {collection}/{doc_id}", lambda: self._get(collection, doc_id)
        )

    @_transient
    async def _get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        async with self._engine.connect() as conn:
            result = await conn.execute(
                select(documents.c.data).where(
                    documents.c.collection == collection,
                    documents.c.doc_id == doc_id,
                )
            )
            row = result.fetchone()
        return dict(row.data) if row else None

    async def list(self, collection: str) -> list[Document]:
        return await self._guard(f"list {collection}", lambda: self._list(collection))

    @_transient
    async def _list(self, collection: str) -> list[Document]:
        async with self._engine.connect() as conn:
            result = await conn.execute(
                select(documents.c.doc_id, documents.c.data)
                .where(documents.c.collection == collection)
                .order_by(documents.c.doc_id)
            )
            rows = result.fetchall()
        return [Document(id=row.doc_id, data=dict(row.data)) for row in rows]

    async def query(self, collection: str, query: DocumentQuery) -> list[Document]:
        return await self._guard(f"query {collection}", lambda: self._query(collection, query))

    @_transient
    async def _query(self, collection: str, query: DocumentQuery) -> list[Document]:
        order_expr = documents.c.data[query.order_by].as_float()
        stmt = select(documents.c.doc_id, documents.c.data).where(
            documents.c.collection == collection,
            order_expr.is_not(None),
        )
        for f in query.where:
            stmt = stmt.where(_typed(documents.c.data[f.field], f.value) == f.value)
        if query.start_after is not None:
            if query.descending:
                stmt = stmt.where(order_expr < query.start_after)
            else:
                stmt = stmt.where(order_expr > query.start_after)
        stmt = stmt.order_by(order_expr.desc() if query.descending else order_expr.asc())
        if query.limit is not None:
            stmt = stmt.limit(query.limit)

        async with self._engine.connect() as conn:
            rows = (await conn.execute(stmt)).fetchall()
        return [Document(id=row.doc_id, data=dict(row.data)) for row in rows]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def set(
        self, collection: str, doc_id: str, data: dict[str, Any], *, merge: bool = False
    ) -> None:
        await self._guard(
            f"set {collection}/{doc_id}", lambda: self._set(collection, doc_id, data, merge)
        )

    @_transient
    async def _set(
        self, collection: str, doc_id: str, data: dict[str, Any], merge: bool
    ) -> None:
        async with self._engine.begin() as conn:
            result = await conn.execute(
                select(documents.c.data)
                .where(documents.c.collection == collection, documents.c.doc_id == doc_id)
                .with_for_update()
            )
            row = result.fetchone()
            existing = dict(row.data) if row else None
            body = apply_merge(existing, data) if merge else strip_delete_markers(data)

            if row is None:
                await conn.execute(
                    insert(documents).values(collection=collection, doc_id=doc_id, data=body)
                )
            else:
                await conn.execute(
                    update(documents)
                    .where(documents.c.collection == collection, documents.c.doc_id == doc_id)
                    .values(data=body)
                )

    async def add(self, collection: str, data: dict[str, Any]) -> str:
        doc_id = uuid.uuid4().hex
        await self.set(collection, doc_id, data)
        return doc_id

    async def delete(self, collection: str, doc_id: str) -> None:
        await self._guard(
            f"delete {collection}/{doc_id}", lambda: self._delete(collection, doc_id)
        )

    @_transient
    async def _delete(self, collection: str, doc_id: str) -> None:
        async with self._engine.begin() as conn:
            await conn.execute(
                delete(documents).where(
                    documents.c.collection == collection,
                    documents.c.doc_id == doc_id,
                )
            )
