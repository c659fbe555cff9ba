"""AccountService — sign-in flow and self-service account changes.

Sign-in:
  1. Clear the authorization memo (a new subject may be signing in).
  2. Sign in with the provider.
  3. Load the user record. A locked account is signed straight back out and
     AccountLockedError is raised with the recorded reason. An account whose
     assistant feature has expired is downgraded in place.
  4. Upsert ``{uid, email, lastLogin}``; the administrator email also gets
     the full set of admin flags. First sign-in creates the record.
  5. Mirror ``{uid, name, email, avatar}`` into local storage.

Record load and upsert failures are logged; they never block a sign-in.
Only the lock check can refuse one.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from pydantic import ValidationError
from studydesk_access_engine.gate import AuthorizationGate
from studydesk_auth.session import AuthSession
from studydesk_document_access.paths import users_collection
from studydesk_document_access.store import DELETE_FIELD, DocumentStore
from studydesk_local_access.cache import LocalCache
from studydesk_local_access.keys import api_key_key, user_profile_key
from studydesk_shared.errors import AccountLockedError, UnauthorizedError
from studydesk_shared.models import now_ms
from studydesk_shared.sanitize import sanitize
from studydesk_shared.user_models import AuthIdentity, CachedProfile, ProfileUpdate, UserRecord

logger = logging.getLogger(__name__)

EXPIRED_REASON = "Subscription Expired"

ADMIN_FLAGS: dict[str, Any] = {
    "isActiveAI": True,
    "aiTier": "vip",
    "storageEnabled": True,
    "role": "admin",
    "aiExpirationDate": None,
}


class AccountService:
    """The signed-in user's own account: session lifecycle, profile, API key."""

    def __init__(
        self,
        session: AuthSession,
        gate: AuthorizationGate,
        store: DocumentStore,
        cache: LocalCache,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._session = session
        self._gate = gate
        self._store = store
        self._cache = cache
        self._clock = clock

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    async def sign_in(self, id_token: str) -> AuthIdentity:
        self._gate.clear()
        identity = await self._session.sign_in(id_token)

        record = await self._load_record(identity.user_id)
        if record is not None and record.locked:
            logger.warning(f"Refusing sign-in for locked account {identity.user_id}")
            await self.sign_out()
            raise AccountLockedError(record.lock_reason)

        now = self._clock()
        if record is not None and record.active_feature_enabled and record.is_expired(now):
            await self._downgrade_expired(identity.user_id)

        await self._upsert_login(identity, record, now)
        profile = CachedProfile(
            uid=identity.user_id,
            name=identity.display_name or (record.name if record else ""),
            avatar=identity.photo_url or (record.avatar if record else ""),
            email=identity.email,
        )
        await self._cache.set_json(user_profile_key(), profile)
        return identity

    async def sign_out(self) -> None:
        await self._session.sign_out()
        self._gate.clear()

    async def _load_record(self, uid: str) -> UserRecord | None:
        try:
            document = await self._store.get(users_collection(), uid)
            if document is None:
                return None
            return UserRecord.from_document(uid, document)
        except Exception as e:
            logger.error(f"Could not load user record for {uid}: {e}")
            return None

    async def _downgrade_expired(self, uid: str) -> None:
        logger.info(f"Assistant access expired for {uid}, downgrading")
        try:
            await self._store.set(
                users_collection(),
                uid,
                {"isActiveAI": False, "aiTier": DELETE_FIELD, "violationReason": EXPIRED_REASON},
                merge=True,
            )
        except Exception as e:
            logger.error(f"Could not downgrade expired account {uid}: {e}")

    async def _upsert_login(
        self, identity: AuthIdentity, record: UserRecord | None, now: int
    ) -> None:
        payload: dict[str, Any] = {
            "uid": identity.user_id,
            "email": identity.email,
            "lastLogin": now,
        }
        if record is None:
            payload.update(
                name=identity.display_name or "",
                avatar=identity.photo_url or "",
                createdAt=now,
            )
        if self._gate.is_admin(identity):
            payload.update(ADMIN_FLAGS)
        try:
            await self._store.set(
                users_collection(), identity.user_id, sanitize(payload), merge=True
            )
        except Exception as e:
            logger.error(f"Could not sync user record for {identity.user_id}: {e}")

    # ------------------------------------------------------------------
    # Self-service
    # ------------------------------------------------------------------

    async def update_profile(self, uid: str, update: ProfileUpdate) -> None:
        """Merge the signed-in user's own profile fields. Store errors propagate."""
        subject = self._session.current
        if subject is None or subject.user_id != uid:
            raise UnauthorizedError("Users may only edit their own profile")

        payload = sanitize(update.to_fields())
        if not payload:
            return
        await self._store.set(users_collection(), uid, payload, merge=True)
        self._gate.invalidate(uid)

        mirror = await self.cached_profile()
        if mirror is not None and mirror.uid == uid:
            visible = {k: v or "" for k, v in payload.items() if k in ("name", "avatar")}
            changed = mirror.model_copy(update=visible)
            await self._cache.set_json(user_profile_key(), changed)

    async def assigned_key(self, uid: str) -> str | None:
        """The administrator-assigned key, unless the account is locked or expired."""
        record = await self._load_record(uid)
        if record is None or record.locked or record.is_expired(self._clock()):
            return None
        return record.secret_key

    async def save_own_key(self, key: str) -> None:
        await self._cache.set_json(api_key_key(), key)
        await self._sync_own_key({"geminiApiKey": key, "isActiveAI": bool(key)})

    async def remove_own_key(self) -> None:
        await self._cache.remove(api_key_key())
        await self._sync_own_key({"geminiApiKey": DELETE_FIELD, "isActiveAI": False})

    async def _sync_own_key(self, payload: dict[str, Any]) -> None:
        subject = self._session.current
        if subject is None:
            return
        try:
            await self._store.set(users_collection(), subject.user_id, payload, merge=True)
        except Exception as e:
            logger.error(f"Could not sync API key for {subject.user_id}: {e}")
        finally:
            self._gate.invalidate(subject.user_id)

    async def cached_profile(self) -> CachedProfile | None:
        raw = await self._cache.get_json(user_profile_key())
        if not isinstance(raw, dict):
            return None
        try:
            return CachedProfile.model_validate(raw)
        except ValidationError as e:
            logger.warning(f"Ignoring unreadable cached profile: {e}")
            return None
