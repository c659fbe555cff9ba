"""In-process document store for local development.

Used when no STUDYDESK_DB_URL is configured, the same way local storage falls
back to fakeredis. Documents are deep-copied on the way in and out so callers
can never mutate stored state by accident.
"""

from __future__ import annotations

import copy
import uuid
from typing import Any

from studydesk_document_access.store import (
    Document,
    DocumentQuery,
    apply_merge,
    run_query,
    strip_delete_markers,
)


class InMemoryDocumentStore:
    """Dict-backed DocumentStore."""

    def __init__(self) -> None:
        self.collections: dict[str, dict[str, dict[str, Any]]] = {}

    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        document = self.collections.get(collection, {}).get(doc_id)
        return copy.deepcopy(document) if document is not None else None

    async def set(
        self, collection: str, doc_id: str, data: dict[str, Any], *, merge: bool = False
    ) -> None:
        docs = self.collections.setdefault(collection, {})
        if merge:
            docs[doc_id] = apply_merge(docs.get(doc_id), data)
        else:
            docs[doc_id] = strip_delete_markers(data)

    async def add(self, collection: str, data: dict[str, Any]) -> str:
        doc_id = uuid.uuid4().hex
        await self.set(collection, doc_id, data)
        return doc_id

    async def delete(self, collection: str, doc_id: str) -> None:
        self.collections.get(collection, {}).pop(doc_id, None)

    async def list(self, collection: str) -> list[Document]:
        return [
            Document(id=doc_id, data=copy.deepcopy(data))
            for doc_id, data in self.collections.get(collection, {}).items()
        ]

    async def query(self, collection: str, query: DocumentQuery) -> list[Document]:
        return run_query(await self.list(collection), query)
