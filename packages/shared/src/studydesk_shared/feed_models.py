"""Course feed models — items, the cached snapshot envelope, and feed state.

The local snapshot keeps the ``{items, lastFetched}`` envelope shape and adds
an explicit ``hasMore`` flag. Envelopes written without the flag are still
readable; the feed cache then falls back to guessing exhaustion from the
item count.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class CourseItem(BaseModel):
    """A published course node. ``createdAt`` is the pagination cursor."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str
    title: str = ""
    type: str = "file"  # file, folder
    created_at: int | None = Field(default=None, alias="createdAt")
    updated_at: int | None = Field(default=None, alias="updatedAt")
    topic: str | None = None
    level: str | None = None
    is_pinned: bool | None = Field(default=None, alias="isPinned")
    data: dict[str, Any] | None = None

    @classmethod
    def from_document(cls, doc_id: str, document: dict[str, Any]) -> CourseItem:
        return cls.model_validate({**document, "id": doc_id})


class FeedCacheEntry(BaseModel):
    """Local snapshot of the feed pages fetched so far."""

    model_config = ConfigDict(populate_by_name=True)

    items: list[CourseItem] = []
    last_fetched: int = Field(alias="lastFetched")
    has_more: bool | None = Field(default=None, alias="hasMore")

    def age(self, now: int) -> int:
        return now - self.last_fetched


class FeedState(BaseModel):
    """What the feed currently holds, as shown to callers."""

    items: list[CourseItem] = []
    has_more: bool = True
    error: str | None = None
    restored_from_cache: bool = False
