"""Contract tests shared by the in-memory and SQL document stores."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError
from studydesk_document_access.sql_store import SqlDocumentStore
from studydesk_document_access.store import (
    DELETE_FIELD,
    Document,
    DocumentQuery,
    FieldFilter,
    apply_merge,
    run_query,
    strip_delete_markers,
)
from studydesk_shared.errors import DocumentStoreError


def course(doc_id: str, created_at: int, type_: str = "file") -> dict:
    """Course-feed shaped document."""
    return {"title": f"Course {doc_id}", "type": type_, "createdAt": created_at}


# ============================================================================
# Pure merge / query helpers
# ============================================================================


class TestApplyMerge:
    def test_merges_nested_dicts_field_by_field(self) -> None:
        existing = {"profile": {"name": "Ada", "bio": "old"}, "tier": "pro"}
        merged = apply_merge(existing, {"profile": {"bio": "new"}})
        assert merged == {"profile": {"name": "Ada", "bio": "new"}, "tier": "pro"}

    def test_lists_replace_instead_of_merging(self) -> None:
        merged = apply_merge({"skills": ["a", "b"]}, {"skills": ["c"]})
        assert merged["skills"] == ["c"]

    def test_delete_field_removes_key(self) -> None:
        existing = {"geminiApiKey": "k", "isActiveAI": True}
        merged = apply_merge(existing, {"geminiApiKey": DELETE_FIELD})
        assert merged == {"isActiveAI": True}

    def test_does_not_mutate_existing(self) -> None:
        existing = {"a": {"b": 1}}
        apply_merge(existing, {"a": {"b": 2}})
        assert existing == {"a": {"b": 1}}

    def test_strip_delete_markers_nested(self) -> None:
        assert strip_delete_markers({"a": DELETE_FIELD, "b": {"c": DELETE_FIELD, "d": 1}}) == {
            "b": {"d": 1}
        }


class TestRunQuery:
    def _docs(self) -> list[Document]:
        return [
            Document(id="a", data=course("a", 100)),
            Document(id="b", data=course("b", 300)),
            Document(id="c", data=course("c", 200, type_="folder")),
            Document(id="d", data={"title": "no timestamp", "type": "file"}),
        ]

    def test_orders_descending_and_filters(self) -> None:
        result = run_query(
            self._docs(),
            DocumentQuery(order_by="createdAt", where=[FieldFilter(field="type", value="file")]),
        )
        assert [d.id for d in result] == ["b", "a"]

    def test_excludes_documents_missing_order_field(self) -> None:
        result = run_query(self._docs(), DocumentQuery(order_by="createdAt"))
        assert "d" not in [d.id for d in result]

    def test_start_after_cursor_and_limit(self) -> None:
        result = run_query(
            self._docs(), DocumentQuery(order_by="createdAt", start_after=300, limit=1)
        )
        assert [d.id for d in result] == ["c"]

    def test_ascending(self) -> None:
        result = run_query(self._docs(), DocumentQuery(order_by="createdAt", descending=False))
        assert [d.id for d in result] == ["a", "c", "b"]


# ============================================================================
# Store contract, parametrized over both implementations
# ============================================================================


class TestDocumentStoreContract:
    async def test_get_missing_returns_none(self, store) -> None:
        assert await store.get("users", "nobody") is None

    async def test_set_then_get(self, store) -> None:
        await store.set("users", "u1", {"email": "a@b.c", "isLocked": False})
        assert await store.get("users", "u1") == {"email": "a@b.c", "isLocked": False}

    async def test_set_without_merge_replaces(self, store) -> None:
        await store.set("users", "u1", {"email": "a@b.c", "bio": "x"})
        await store.set("users", "u1", {"email": "new@b.c"})
        assert await store.get("users", "u1") == {"email": "new@b.c"}

    async def test_merge_write_keeps_other_fields(self, store) -> None:
        await store.set("users", "u1", {"email": "a@b.c", "bio": "x"})
        await store.set("users", "u1", {"bio": "y"}, merge=True)
        assert await store.get("users", "u1") == {"email": "a@b.c", "bio": "y"}

    async def test_merge_write_creates_missing_document(self, store) -> None:
        await store.set("users", "u2", {"bio": "y"}, merge=True)
        assert await store.get("users", "u2") == {"bio": "y"}

    async def test_merge_delete_field(self, store) -> None:
        await store.set("users", "u1", {"geminiApiKey": "k", "isActiveAI": True})
        await store.set(
            "users", "u1", {"geminiApiKey": DELETE_FIELD, "isActiveAI": False}, merge=True
        )
        assert await store.get("users", "u1") == {"isActiveAI": False}

    async def test_add_generates_id(self, store) -> None:
        doc_id = await store.add("users/u1/speaking_history", {"timestamp": 5})
        assert doc_id
        assert await store.get("users/u1/speaking_history", doc_id) == {"timestamp": 5}

    async def test_delete(self, store) -> None:
        await store.set("users", "u1", {"email": "a@b.c"})
        await store.delete("users", "u1")
        assert await store.get("users", "u1") is None

    async def test_delete_missing_is_noop(self, store) -> None:
        await store.delete("users", "ghost")

    async def test_list_is_scoped_to_collection(self, store) -> None:
        await store.set("users", "u1", {"email": "a"})
        await store.set("users", "u2", {"email": "b"})
        await store.set("users/u1/modules", "finance", {"data": {}})
        listed = await store.list("users")
        assert sorted(d.id for d in listed) == ["u1", "u2"]

    async def test_query_pagination(self, store) -> None:
        for i, ts in enumerate([500, 400, 300, 200, 100]):
            await store.set("courses", f"c{i}", course(f"c{i}", ts))
        await store.set("courses", "folder", course("folder", 450, type_="folder"))

        where = [FieldFilter(field="type", value="file")]
        first = await store.query(
            "courses", DocumentQuery(order_by="createdAt", limit=2, where=where)
        )
        assert [d.id for d in first] == ["c0", "c1"]

        second = await store.query(
            "courses",
            DocumentQuery(
                order_by="createdAt",
                limit=2,
                where=where,
                start_after=first[-1].data["createdAt"],
            ),
        )
        assert [d.id for d in second] == ["c2", "c3"]

    async def test_query_boolean_filter(self, store) -> None:
        await store.set("courses", "p", {"createdAt": 1, "isPinned": True})
        await store.set("courses", "n", {"createdAt": 2, "isPinned": False})
        result = await store.query(
            "courses",
            DocumentQuery(order_by="createdAt", where=[FieldFilter(field="isPinned", value=True)]),
        )
        assert [d.id for d in result] == ["p"]


# ============================================================================
# SQL store error mapping
# ============================================================================


class _FailingEngine:
    """Engine whose connections always fail with a non-transient error."""

    def __init__(self, error: Exception) -> None:
        self.error = error
        self.attempts = 0

    def connect(self):
        self.attempts += 1
        ctx = MagicMock()
        ctx.__aenter__ = AsyncMock(side_effect=self.error)
        ctx.__aexit__ = AsyncMock(return_value=False)
        return ctx

    begin = connect


class TestSqlStoreErrors:
    async def test_operational_error_retried_then_wrapped(self, monkeypatch) -> None:
        # Skip real backoff sleeps.
        monkeypatch.setattr("asyncio.sleep", AsyncMock())
        engine = _FailingEngine(OperationalError("SELECT 1", {}, Exception("conn reset")))
        store = SqlDocumentStore(engine)  # type: ignore[arg-type]

        with pytest.raises(DocumentStoreError, match="get users/u1 failed"):
            await store.get("users", "u1")
        assert engine.attempts == 3

    async def test_write_error_wrapped(self, monkeypatch) -> None:
        monkeypatch.setattr("asyncio.sleep", AsyncMock())
        engine = _FailingEngine(OperationalError("UPDATE", {}, Exception("down")))
        store = SqlDocumentStore(engine)  # type: ignore[arg-type]

        with pytest.raises(DocumentStoreError):
            await store.set("users", "u1", {"a": 1})
