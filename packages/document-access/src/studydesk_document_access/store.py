"""Remote document store contract.

The persistence core treats the remote store as a black box exposing:

  get     — one document by collection + id
  set     — write a document, optionally merging into the existing one
  add     — write a document under a generated id
  delete  — hard delete one document
  list    — every document in a collection
  query   — equality filters, order by one field, "start after" cursor, limit

Collections are slash-separated paths (``users/<uid>/modules``). Documents are
JSON-compatible dicts. Merge-writes are deep for nested dicts, and the
DELETE_FIELD sentinel removes a field instead of writing it.

Business verbs pass the same test the other access packages use: if the
store moved from PostgreSQL to a hosted document database, none of these
names would need to change.
"""

from __future__ import annotations

import copy
from typing import Any, Protocol

from pydantic import BaseModel


class _DeleteField:
    """Sentinel value: remove this field on a merge-write."""

    _instance: _DeleteField | None = None

    def __new__(cls) -> _DeleteField:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "DELETE_FIELD"

    def __copy__(self) -> _DeleteField:
        return self

    def __deepcopy__(self, memo: dict[int, Any]) -> _DeleteField:
        return self


DELETE_FIELD = _DeleteField()


class FieldFilter(BaseModel):
    """Equality filter on a top-level document field."""

    field: str
    value: str | int | float | bool


class DocumentQuery(BaseModel):
    """Ordered, limited, cursor-paginated collection query."""

    order_by: str
    descending: bool = True
    limit: int | None = None
    start_after: int | float | str | None = None
    where: list[FieldFilter] = []


class Document(BaseModel):
    """A stored document with its id."""

    id: str
    data: dict[str, Any]


class DocumentStore(Protocol):
    """Async interface every remote store implementation satisfies."""

    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None: ...

    async def set(
        self, collection: str, doc_id: str, data: dict[str, Any], *, merge: bool = False
    ) -> None: ...

    async def add(self, collection: str, data: dict[str, Any]) -> str: ...

    async def delete(self, collection: str, doc_id: str) -> None: ...

    async def list(self, collection: str) -> list[Document]: ...

    async def query(self, collection: str, query: DocumentQuery) -> list[Document]: ...


# ============================================================================
# Write semantics shared by every implementation
# ============================================================================


def strip_delete_markers(data: dict[str, Any]) -> dict[str, Any]:
    """Copy of ``data`` without DELETE_FIELD values (used by non-merge writes)."""
    result: dict[str, Any] = {}
    for key, value in data.items():
        if value is DELETE_FIELD:
            continue
        if isinstance(value, dict):
            result[key] = strip_delete_markers(value)
        else:
            result[key] = copy.deepcopy(value)
    return result


def apply_merge(existing: dict[str, Any] | None, patch: dict[str, Any]) -> dict[str, Any]:
    """Deep-merge ``patch`` into a copy of ``existing``.

    Nested dicts merge field by field; any other value (lists included)
    replaces what was there. DELETE_FIELD removes the key.
    """
    merged = copy.deepcopy(existing) if existing else {}
    for key, value in patch.items():
        if value is DELETE_FIELD:
            merged.pop(key, None)
        elif isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = apply_merge(merged[key], value)
        elif isinstance(value, dict):
            merged[key] = strip_delete_markers(value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def _sort_key(value: Any) -> tuple[int, Any]:
    # Numbers sort before strings, matching how the SQL store casts.
    if isinstance(value, bool):
        return (0, int(value))
    if isinstance(value, (int, float)):
        return (0, value)
    return (1, str(value))


def run_query(documents: list[Document], query: DocumentQuery) -> list[Document]:
    """Apply a DocumentQuery to documents held in memory.

    Documents missing the order field are excluded, the same way an ordered
    query on a hosted document store skips them.
    """
    matched = [
        doc
        for doc in documents
        if query.order_by in doc.data
        and doc.data[query.order_by] is not None
        and all(doc.data.get(f.field) == f.value for f in query.where)
    ]
    matched.sort(key=lambda d: _sort_key(d.data[query.order_by]), reverse=query.descending)

    if query.start_after is not None:
        cursor = _sort_key(query.start_after)
        if query.descending:
            matched = [d for d in matched if _sort_key(d.data[query.order_by]) < cursor]
        else:
            matched = [d for d in matched if _sort_key(d.data[query.order_by]) > cursor]

    if query.limit is not None:
        matched = matched[: query.limit]
    return matched
