"""FeedCache — the course feed, paged from the remote store and snapshotted locally.

States: cold cache check → (cache hit | miss or expired) → remote page fetch
→ merged. ``refresh()`` returns to the cold check with the snapshot removed.

Rules:
  - ``load()`` serves the local snapshot while its age is under the TTL and
    makes no remote call. Past the TTL (or when forced) it fetches the first
    page and replaces the held items.
  - ``load_more()`` ignores the TTL and fetches the page strictly after the
    ``createdAt`` of the last held item. Items whose id is already held are
    dropped, so a page boundary that lands on equal timestamps cannot
    duplicate an item.
  - A page shorter than the page size exhausts the feed; ``load_more()`` then
    returns nothing without a remote call until ``refresh()``.
  - Every successful fetch rewrites the snapshot with a fresh timestamp and
    the explicit exhaustion flag. Snapshots written without the flag fall
    back to "a multiple of the page size means there may be more".
  - A failed fetch leaves held items and the snapshot as they were and sets
    ``error`` on the state; the next successful fetch clears it. When nothing
    is held yet, ``load()`` falls back to the snapshot even if it has expired,
    keeping the error on the state.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from pydantic import ValidationError
from studydesk_document_access.paths import courses_collection
from studydesk_document_access.store import DocumentQuery, DocumentStore, FieldFilter
from studydesk_local_access.cache import LocalCache
from studydesk_local_access.keys import feed_cache_key
from studydesk_shared.feed_models import CourseItem, FeedCacheEntry, FeedState
from studydesk_shared.models import now_ms
from studydesk_shared.settings import Settings, load_settings

logger = logging.getLogger(__name__)

CURSOR_FIELD = "createdAt"
PUBLISHED_TYPE = "file"


class FeedCache:
    """Page-accumulating, TTL-bounded cache of the course feed."""

    def __init__(
        self,
        store: DocumentStore,
        cache: LocalCache,
        settings: Settings | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        settings = settings or load_settings()
        self._store = store
        self._cache = cache
        self.page_size = settings.feed_page_size
        self.ttl_ms = settings.feed_cache_ttl_ms
        self._clock = clock

        self._items: list[CourseItem] = []
        self._has_more = True
        self._error: str | None = None
        self._restored = False
        self._loading = False

    @property
    def state(self) -> FeedState:
        return FeedState(
            items=list(self._items),
            has_more=self._has_more,
            error=self._error,
            restored_from_cache=self._restored,
        )

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def load(self, force_refresh: bool = False) -> FeedState:
        """Serve a fresh snapshot, or fetch the first page."""
        entry = await self._read_entry()
        if not force_refresh and entry is not None and entry.age(self._clock()) < self.ttl_ms:
            self._restore(entry)
            self._error = None
            return self.state

        await self._fetch_first_page()
        if self._error and not self._items and entry is not None:
            logger.info(f"Serving {len(entry.items)} stale course feed items after fetch failure")
            self._restore(entry)
        return self.state

    async def load_more(self) -> list[CourseItem]:
        """Fetch the next page and return only the newly appended items."""
        if not self._has_more or self._loading:
            return []
        if not self._items:
            await self._fetch_first_page()
            return [] if self._error else list(self._items)

        cursor = self._items[-1].created_at
        if cursor is None:
            logger.warning("Last held feed item has no createdAt; cannot page further")
            self._has_more = False
            return []

        page = await self._fetch_page(cursor)
        if page is None:
            return []

        held = {item.id for item in self._items}
        appended = [item for item in page if item.id not in held]
        self._items.extend(appended)
        self._has_more = len(page) >= self.page_size
        self._restored = False
        await self._write_entry()
        return appended

    async def refresh(self) -> FeedState:
        """Drop the snapshot and held state, then load the first page from remote."""
        await self._cache.remove(feed_cache_key())
        self._items = []
        self._has_more = True
        self._error = None
        self._restored = False
        await self._fetch_first_page()
        return self.state

    # ------------------------------------------------------------------
    # Remote pages
    # ------------------------------------------------------------------

    def _query(self, cursor: int | None) -> DocumentQuery:
        return DocumentQuery(
            order_by=CURSOR_FIELD,
            descending=True,
            limit=self.page_size,
            start_after=cursor,
            where=[FieldFilter(field="type", value=PUBLISHED_TYPE)],
        )

    async def _fetch_page(self, cursor: int | None) -> list[CourseItem] | None:
        """One page of items, or None after recording the failure on the state."""
        self._loading = True
        try:
            documents = await self._store.query(courses_collection(), self._query(cursor))
            page = [CourseItem.from_document(d.id, d.data) for d in documents]
        except Exception as e:
            logger.error(f"Course feed fetch failed (cursor={cursor}): {e}")
            self._error = str(e) or type(e).__name__
            return None
        finally:
            self._loading = False
        self._error = None
        return page

    async def _fetch_first_page(self) -> None:
        page = await self._fetch_page(None)
        if page is None:
            return
        self._items = page
        self._has_more = len(page) >= self.page_size
        self._restored = False
        await self._write_entry()

    # ------------------------------------------------------------------
    # Local snapshot
    # ------------------------------------------------------------------

    def _restore(self, entry: FeedCacheEntry) -> None:
        self._items = list(entry.items)
        self._has_more = self._stored_has_more(entry)
        self._restored = True

    def _stored_has_more(self, entry: FeedCacheEntry) -> bool:
        if entry.has_more is not None:
            return entry.has_more
        return len(entry.items) % self.page_size == 0

    async def _read_entry(self) -> FeedCacheEntry | None:
        raw = await self._cache.get_json(feed_cache_key())
        if raw is None:
            return None
        try:
            return FeedCacheEntry.model_validate(raw)
        except ValidationError as e:
            logger.warning(f"Ignoring unreadable course feed snapshot: {e}")
            return None

    async def _write_entry(self) -> None:
        entry = FeedCacheEntry(
            items=self._items, last_fetched=self._clock(), has_more=self._has_more
        )
        await self._cache.set_json(feed_cache_key(), entry)
