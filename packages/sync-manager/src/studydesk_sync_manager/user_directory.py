"""UserDirectory — administrator operations over the user collection.

Every operation except reading the public system config checks the current
subject against the administrator email first and raises UnauthorizedError
before touching the remote store. Remote failures propagate as
DirectoryError: an operator must never believe an action succeeded when it
did not.

When the administrator mutates their own record, the gate's memo for that
subject is invalidated so the next check sees the change.
"""

from __future__ import annotations

import logging
import secrets
import string
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, TypeVar

from pydantic import BaseModel
from studydesk_access_engine.gate import AuthorizationGate
from studydesk_auth.session import AuthSession
from studydesk_document_access.paths import SYSTEM_PUBLIC_DOC, system_collection, users_collection
from studydesk_document_access.store import DELETE_FIELD, DocumentStore
from studydesk_shared.errors import DirectoryError, UnauthorizedError
from studydesk_shared.models import now_ms
from studydesk_shared.sanitize import sanitize_or
from studydesk_shared.user_models import PartialUpdate, UserRecord

logger = logging.getLogger(__name__)

T = TypeVar("T")

_ID_ALPHABET = string.digits + string.ascii_lowercase


def generate_user_id(now: int) -> str:
    """Synthetic id for profiles created by an administrator: ``user_<ms>_<5 base36>``."""
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(5))
    return f"user_{now}_{suffix}"


def _payload(fields: PartialUpdate | BaseModel | Mapping[str, Any]) -> dict[str, Any]:
    if isinstance(fields, PartialUpdate):
        fields = fields.to_fields()
    cleaned = sanitize_or(fields, {})
    return cleaned if isinstance(cleaned, dict) else {}


class UserDirectory:
    """Privileged reads and writes over ``users`` and ``system/public``."""

    def __init__(
        self,
        store: DocumentStore,
        gate: AuthorizationGate,
        session: AuthSession,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._store = store
        self._gate = gate
        self._session = session
        self._clock = clock

    def _require_admin(self, operation: str) -> None:
        subject = self._session.current
        if not self._gate.is_admin(subject):
            who = subject.user_id if subject else "anonymous"
            logger.warning(f"Rejected {operation} for non-administrator {who}")
            raise UnauthorizedError(f"{operation} requires administrator access")

    async def _remote(self, operation: str, call: Callable[[], Awaitable[T]]) -> T:
        try:
            return await call()
        except Exception as e:
            raise DirectoryError(f"{operation} failed: {e}") from e

    def _after_mutation(self, target_id: str) -> None:
        subject = self._session.current
        if subject is not None and subject.user_id == target_id:
            self._gate.invalidate(target_id)

    async def _merge(self, operation: str, target_id: str, payload: dict[str, Any]) -> None:
        await self._remote(
            operation,
            lambda: self._store.set(users_collection(), target_id, payload, merge=True),
        )
        self._after_mutation(target_id)
        logger.info(f"{operation} applied to {target_id}: {sorted(payload)}")

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    async def list_all(self) -> list[UserRecord]:
        """Every user record, most recent login first."""
        self._require_admin("list_all")
        records = await self._remote("list_all", self._load_records)
        records.sort(key=lambda r: r.last_login, reverse=True)
        return records

    async def _load_records(self) -> list[UserRecord]:
        documents = await self._store.list(users_collection())
        return [UserRecord.from_document(d.id, d.data) for d in documents]

    async def set_status(
        self, target_id: str, update: PartialUpdate | Mapping[str, Any]
    ) -> None:
        """Merge the fields the caller set. None clears a field (e.g. expiration)."""
        self._require_admin("set_status")
        payload = _payload(update)
        if not payload:
            return
        await self._merge("set_status", target_id, payload)

    async def assign_key(self, target_id: str, key: str) -> None:
        self._require_admin("assign_key")
        await self._merge("assign_key", target_id, {"geminiApiKey": key, "isActiveAI": bool(key)})

    async def revoke_key(self, target_id: str) -> None:
        self._require_admin("revoke_key")
        await self._merge(
            "revoke_key", target_id, {"geminiApiKey": DELETE_FIELD, "isActiveAI": False}
        )

    async def create_profile(self, fields: BaseModel | Mapping[str, Any]) -> str:
        """Write a complete new user record with default flags. Returns its id."""
        self._require_admin("create_profile")
        supplied = _payload(fields)
        now = self._clock()
        uid = supplied.pop("uid", None) or generate_user_id(now)

        record: dict[str, Any] = {
            "name": "",
            "email": "",
            "avatar": "",
            "lastLogin": 0,
            "isActiveAI": False,
            "storageEnabled": False,
            "aiTier": "standard",
            "isLocked": False,
            "role": "user",
        }
        record.update(supplied)
        record["uid"] = uid
        record["createdAt"] = now

        await self._remote(
            "create_profile", lambda: self._store.set(users_collection(), uid, record)
        )
        logger.info(f"Created user profile {uid}")
        return uid

    async def delete_user(self, target_id: str) -> None:
        """Hard delete. Irreversible; confirming intent is the caller's job."""
        self._require_admin("delete_user")
        await self._remote(
            "delete_user", lambda: self._store.delete(users_collection(), target_id)
        )
        self._after_mutation(target_id)
        logger.info(f"Deleted user {target_id}")

    # ------------------------------------------------------------------
    # System config
    # ------------------------------------------------------------------

    async def get_system_config(self) -> dict[str, Any] | None:
        """Public system settings; readable by anyone, None when unavailable."""
        try:
            return await self._store.get(system_collection(), SYSTEM_PUBLIC_DOC)
        except Exception as e:
            logger.warning(f"System config unavailable: {e}")
            return None

    async def update_system_config(self, data: Mapping[str, Any]) -> None:
        self._require_admin("update_system_config")
        payload = _payload(data)
        await self._remote(
            "update_system_config",
            lambda: self._store.set(system_collection(), SYSTEM_PUBLIC_DOC, payload, merge=True),
        )
