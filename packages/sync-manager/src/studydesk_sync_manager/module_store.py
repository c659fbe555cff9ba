"""ModuleStore — local-first persistence for named per-user module buckets.

Reads prefer the remote document when the current subject holds write
privilege, mirroring it into local storage for the next cold start; anything
else (no subject, no privilege, remote failure, no remote data) falls back to
the local copy.

Writes are two-phase:
  1. local commit: the sanitized value is written to ``dh_<module>``
     unconditionally (an empty list is a real state, not "nothing to save")
  2. remote commit: attempted only with write privilege; replaces the
     remote envelope whole; failures are logged and reported, never raised

Each phase is published as a SyncEvent to subscribers, so a sync-status
indicator can follow along without the write waiting on it.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from pydantic import ValidationError
from studydesk_access_engine.gate import AuthorizationGate
from studydesk_auth.session import AuthSession
from studydesk_document_access.paths import modules_collection, speaking_history_collection
from studydesk_document_access.store import DocumentQuery, DocumentStore
from studydesk_local_access.cache import LocalCache
from studydesk_local_access.keys import course_tree_key, module_key, speaking_sessions_key
from studydesk_shared.models import now_ms
from studydesk_shared.sanitize import sanitize, sanitize_or
from studydesk_shared.sync_models import SpeakingSession, SyncEvent
from studydesk_shared.user_models import AuthIdentity

logger = logging.getLogger(__name__)

SyncListener = Callable[[SyncEvent], None]

COURSE_TREE_MODULE = "course_tree"
LOCAL_SESSION_LIMIT = 50
REMOTE_SESSION_LIMIT = 20


class ModuleStore:
    """Read-through / write-through persistence for module buckets."""

    def __init__(
        self,
        store: DocumentStore,
        cache: LocalCache,
        gate: AuthorizationGate,
        session: AuthSession,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._store = store
        self._cache = cache
        self._gate = gate
        self._session = session
        self._clock = clock
        self._listeners: list[SyncListener] = []

    # ------------------------------------------------------------------
    # Sync events
    # ------------------------------------------------------------------

    def subscribe(self, listener: SyncListener) -> Callable[[], None]:
        """Register for SyncEvents. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _publish(self, module: str, phase: str, status: str, error: str | None = None) -> None:
        event = SyncEvent(module=module, phase=phase, status=status, error=error, at=self._clock())
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.error(f"Sync listener failed on {module}/{phase}: {e}")

    async def _writer(self) -> AuthIdentity | None:
        """The current subject if it may sync remotely, else None."""
        subject = self._session.current
        if subject is None:
            return None
        if not await self._gate.has_write_privilege(subject):
            return None
        return subject

    # ------------------------------------------------------------------
    # Module buckets
    # ------------------------------------------------------------------

    async def read(self, module: str) -> Any | None:
        """Latest known value of a module: remote when privileged, else local."""
        return await self._read(module, module_key(module))

    async def write(self, module: str, data: Any) -> None:
        """Commit locally, then best-effort remotely.

        The remote document is replaced, not merged: the envelope is always
        written whole as ``{data, updatedAt, module}``.
        """
        await self._write(module, module_key(module), data)

    async def load_course_tree(self) -> list[Any] | None:
        return await self._read(COURSE_TREE_MODULE, course_tree_key())

    async def save_course_tree(self, tree: list[Any]) -> None:
        await self._write(COURSE_TREE_MODULE, course_tree_key(), tree)

    async def _read(self, module: str, local_key: str) -> Any | None:
        subject = await self._writer()
        if subject is not None:
            try:
                document = await self._store.get(modules_collection(subject.user_id), module)
            except Exception as e:
                logger.warning(f"Remote load failed for {module}, using local copy: {e}")
            else:
                if document is not None and document.get("data") is not None:
                    await self._cache.set_json(local_key, document["data"])
                    return document["data"]
        return await self._cache.get_json(local_key)

    async def _write(self, module: str, local_key: str, data: Any) -> None:
        cleaned = sanitize_or(data)

        if await self._cache.set_json(local_key, cleaned):
            self._publish(module, "local", "committed")
        else:
            self._publish(module, "local", "failed", "local storage write failed")

        subject = await self._writer()
        if subject is None:
            self._publish(module, "remote", "skipped")
            return

        # Replaces the whole envelope; keys from an older value do not survive.
        document = {"data": cleaned, "updatedAt": self._clock(), "module": module}
        try:
            await self._store.set(modules_collection(subject.user_id), module, document)
        except Exception as e:
            logger.error(f"Remote save failed for {module}: {e}")
            self._publish(module, "remote", "failed", str(e))
            return
        self._publish(module, "remote", "committed")

    # ------------------------------------------------------------------
    # Speaking history
    # ------------------------------------------------------------------

    async def _local_sessions(self) -> list[SpeakingSession]:
        raw = await self._cache.get_json(speaking_sessions_key())
        if not isinstance(raw, list):
            return []
        sessions: list[SpeakingSession] = []
        for entry in raw:
            try:
                sessions.append(SpeakingSession.model_validate(entry))
            except ValidationError as e:
                logger.warning(f"Skipping unreadable local speaking session: {e}")
        return sessions

    async def append_speaking_session(self, session: SpeakingSession) -> None:
        """Prepend to the capped local list, then copy to remote history if privileged."""
        sessions = [session, *await self._local_sessions()][:LOCAL_SESSION_LIMIT]
        await self._cache.set_json(
            speaking_sessions_key(), [s.model_dump(by_alias=True) for s in sessions]
        )

        subject = await self._writer()
        if subject is None:
            return
        try:
            await self._store.set(
                speaking_history_collection(subject.user_id),
                session.id,
                sanitize(session.model_dump(by_alias=True)),
            )
        except Exception as e:
            logger.error(f"Remote save failed for speaking session {session.id}: {e}")

    async def list_speaking_sessions(self) -> list[SpeakingSession]:
        """Newest remote sessions when privileged and non-empty, else the local list."""
        subject = await self._writer()
        if subject is not None:
            try:
                documents = await self._store.query(
                    speaking_history_collection(subject.user_id),
                    DocumentQuery(order_by="timestamp", limit=REMOTE_SESSION_LIMIT),
                )
                if documents:
                    return [
                        SpeakingSession.model_validate({**d.data, "id": d.id}) for d in documents
                    ]
            except Exception as e:
                logger.warning(f"Remote speaking history unavailable, using local copy: {e}")
        return await self._local_sessions()
