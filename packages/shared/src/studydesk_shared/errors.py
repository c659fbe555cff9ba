"""Exception hierarchy for the persistence core.

Only failures the caller must see are raised. Local-cache problems and
best-effort remote writes are logged and swallowed where they happen.
"""


class StudyDeskError(Exception):
    """Base class for every error raised by StudyDesk packages."""


class UnauthorizedError(StudyDeskError):
    """The signed-in subject may not perform the requested operation."""


class AccountLockedError(StudyDeskError):
    """Sign-in refused because an administrator locked the account."""

    def __init__(self, reason: str | None = None) -> None:
        self.reason = reason or "Violation detected"
        super().__init__(f"Account Locked: {self.reason}")


class DocumentStoreError(StudyDeskError):
    """The remote document store rejected or failed an operation."""


class DirectoryError(StudyDeskError):
    """An administrative user-directory operation failed remotely."""


class AuthProviderError(StudyDeskError):
    """The authentication provider rejected a sign-in or sign-out call."""
