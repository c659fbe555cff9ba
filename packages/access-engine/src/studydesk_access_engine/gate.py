"""AuthorizationGate — remote persistence entitlement with an explicit memo.

Two questions are answered per subject:

  is_authorized        — may this subject use remote features at all?
                         (storageEnabled OR isActiveAI)
  has_write_privilege  — may this subject sync module data remotely?
                         (storageEnabled only)

Both apply the same rules to the subject's ``users/<uid>`` record: a locked
account is refused, and an account whose expiration timestamp has passed is
refused. The configured administrator email short-circuits to True without
a remote read.

Memoization:
  Results are kept in an AuthorizationCache keyed by subject id, one cache
  per question. One read of the record answers both questions, so a session
  that asks both reads the record once. A positive or negative answer
  derived from a real record is memoized; a missing record or a failed
  remote read is NOT, so a record created later (or a network that comes
  back) flips the answer on the next call. Callers invalidate explicitly on
  sign-in, sign-out and after mutating the subject's own record.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from studydesk_document_access.paths import users_collection
from studydesk_document_access.store import DocumentStore
from studydesk_shared.models import now_ms
from studydesk_shared.settings import Settings
from studydesk_shared.user_models import AuthIdentity, AuthorizationResult, UserRecord

logger = logging.getLogger(__name__)


class AuthorizationCache:
    """Per-subject memo of authorization results."""

    def __init__(self) -> None:
        self._results: dict[str, AuthorizationResult] = {}

    def get(self, subject_id: str) -> AuthorizationResult | None:
        return self._results.get(subject_id)

    def set(self, result: AuthorizationResult) -> None:
        self._results[result.subject_id] = result

    def invalidate(self, subject_id: str) -> None:
        self._results.pop(subject_id, None)

    def clear(self) -> None:
        self._results.clear()

    def __len__(self) -> int:
        return len(self._results)


class AuthorizationGate:
    """Memoized entitlement checks against the remote user collection."""

    def __init__(
        self,
        store: DocumentStore,
        admin_email: str = "",
        clock: Callable[[], int] = now_ms,
        feature_cache: AuthorizationCache | None = None,
        write_cache: AuthorizationCache | None = None,
    ) -> None:
        self._store = store
        self._admin_email = admin_email.strip().lower()
        self._clock = clock
        self.feature_cache = feature_cache if feature_cache is not None else AuthorizationCache()
        self.write_cache = write_cache if write_cache is not None else AuthorizationCache()

    @classmethod
    def from_settings(cls, store: DocumentStore, settings: Settings) -> AuthorizationGate:
        return cls(store, admin_email=settings.admin_email)

    def is_admin(self, subject: AuthIdentity | None) -> bool:
        """True when the subject's email is the configured administrator email."""
        if subject is None or not self._admin_email:
            return False
        return subject.email.strip().lower() == self._admin_email

    async def is_authorized(self, subject: AuthIdentity | None) -> bool:
        return await self._check(subject, self.feature_cache, write_only=False)

    async def has_write_privilege(self, subject: AuthIdentity | None) -> bool:
        return await self._check(subject, self.write_cache, write_only=True)

    def invalidate(self, subject_id: str) -> None:
        """Forget both memoized answers for one subject."""
        self.feature_cache.invalidate(subject_id)
        self.write_cache.invalidate(subject_id)

    def clear(self) -> None:
        self.feature_cache.clear()
        self.write_cache.clear()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _evaluate(self, record: UserRecord, write_only: bool) -> bool:
        if record.locked:
            return False
        if record.is_expired(self._clock()):
            return False
        if write_only:
            return record.storage_enabled
        return record.storage_enabled or record.active_feature_enabled

    def _remember(self, subject_id: str, feature: bool, write: bool) -> None:
        self.feature_cache.set(AuthorizationResult(subject_id=subject_id, allowed=feature))
        self.write_cache.set(AuthorizationResult(subject_id=subject_id, allowed=write))

    async def _check(
        self, subject: AuthIdentity | None, cache: AuthorizationCache, write_only: bool
    ) -> bool:
        if subject is None:
            return False

        if self.is_admin(subject):
            self._remember(subject.user_id, feature=True, write=True)
            return True

        memo = cache.get(subject.user_id)
        if memo is not None:
            return memo.allowed

        try:
            document = await self._store.get(users_collection(), subject.user_id)
            record = None
            if document is not None:
                record = UserRecord.from_document(subject.user_id, document)
        except Exception as e:
            logger.warning(f"Authorization check failed for {subject.user_id}: {e}")
            return False

        if record is None:
            return False

        feature = self._evaluate(record, write_only=False)
        write = self._evaluate(record, write_only=True)
        self._remember(subject.user_id, feature=feature, write=write)
        return write if write_only else feature
