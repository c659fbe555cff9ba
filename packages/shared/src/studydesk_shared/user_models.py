"""User and authorization models — the contract for user documents and identities.

UserRecord mirrors the ``users/<uid>`` document in the remote store. The store
speaks camelCase (``isActiveAI``, ``aiExpirationDate``); Python code uses the
snake_case attribute names. Timestamps are epoch milliseconds.

Design choices:
  - Unknown document fields are kept (``extra="allow"``) so a round trip
    through this model never drops data another client wrote.
  - Partial updates are their own models. Only fields the caller actually
    set are written; a field set to None becomes an explicit null, which
    clears it on a merge-write.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from studydesk_shared.fields import UNSET, FieldValue, field_of

# ============================================================================
# Identities
# ============================================================================


class AuthIdentity(BaseModel):
    """The signed-in subject as reported by the authentication provider."""

    user_id: str
    email: str = ""
    display_name: str | None = None
    photo_url: str | None = None
    role: str = "authenticated"
    exp: int | None = None


class AuthorizationResult(BaseModel):
    """Outcome of one authorization check for a subject."""

    subject_id: str
    allowed: bool


# ============================================================================
# User documents
# ============================================================================


class UserRecord(BaseModel):
    """A ``users/<uid>`` document."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    uid: str
    name: str = ""
    email: str = ""
    avatar: str = ""
    last_login: int = Field(default=0, alias="lastLogin")
    active_feature_enabled: bool = Field(default=False, alias="isActiveAI")
    storage_enabled: bool = Field(default=False, alias="storageEnabled")
    locked: bool = Field(default=False, alias="isLocked")
    role: str = "user"  # admin, user
    secret_key: str | None = Field(default=None, alias="geminiApiKey")
    tier: str | None = Field(default=None, alias="aiTier")  # standard, vip
    created_at: int | None = Field(default=None, alias="createdAt")
    activation_date: int | None = Field(default=None, alias="aiActivationDate")
    expiration: int | None = Field(default=None, alias="aiExpirationDate")
    lock_reason: str | None = Field(default=None, alias="violationReason")

    job_title: str | None = Field(default=None, alias="jobTitle")
    phone_number: str | None = Field(default=None, alias="phoneNumber")
    location: str | None = None
    bio: str | None = None
    skills: list[str] = []
    website: str | None = None

    def is_expired(self, now: int) -> bool:
        """True once an expiration timestamp exists and has passed."""
        return self.expiration is not None and now > self.expiration

    @classmethod
    def from_document(cls, doc_id: str, document: dict[str, Any]) -> UserRecord:
        """Build a record from a stored document, trusting the document id for uid.

        A null stored in a field that is not nullable here was cleared by a
        partial update, so it reads back as the field default.
        """
        data = {
            key: value
            for key, value in document.items()
            if value is not None or key not in _NON_NULLABLE_KEYS
        }
        return cls.model_validate({**data, "uid": doc_id})


_NON_NULLABLE_KEYS = frozenset(
    key
    for name, info in UserRecord.model_fields.items()
    if info.default is not None
    for key in (name, info.alias or name)
)


# ============================================================================
# Partial updates
# ============================================================================


class PartialUpdate(BaseModel):
    """Base for partial updates: only explicitly set fields are written."""

    model_config = ConfigDict(populate_by_name=True)

    def to_fields(self) -> dict[str, FieldValue[Any]]:
        """Every field keyed by its store alias, as Present / CLEARED / UNSET."""
        fields: dict[str, FieldValue[Any]] = {}
        for name, info in type(self).model_fields.items():
            key = info.alias or name
            if name in self.model_fields_set:
                fields[key] = field_of(getattr(self, name))
            else:
                fields[key] = UNSET
        return fields


class UserStatusUpdate(PartialUpdate):
    """Administrative status change: feature flags, lock state, tier, expiry."""

    active_feature_enabled: bool | None = Field(default=None, alias="isActiveAI")
    storage_enabled: bool | None = Field(default=None, alias="storageEnabled")
    locked: bool | None = Field(default=None, alias="isLocked")
    role: str | None = None
    tier: str | None = Field(default=None, alias="aiTier")
    activation_date: int | None = Field(default=None, alias="aiActivationDate")
    expiration: int | None = Field(default=None, alias="aiExpirationDate")
    lock_reason: str | None = Field(default=None, alias="violationReason")


class ProfileUpdate(PartialUpdate):
    """Self-service profile fields a user may edit on their own record."""

    name: str | None = None
    avatar: str | None = None
    job_title: str | None = Field(default=None, alias="jobTitle")
    phone_number: str | None = Field(default=None, alias="phoneNumber")
    location: str | None = None
    bio: str | None = None
    skills: list[str] | None = None
    website: str | None = None


class CachedProfile(BaseModel):
    """The ``dh_user_profile`` mirror kept in local storage."""

    uid: str | None = None
    name: str
    avatar: str
    email: str = ""
