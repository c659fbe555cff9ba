"""AuthSession — the current signed-in identity and its change stream.

The session owns the one piece of ambient auth state in the core: who is
signed in right now. Everything else (the authorization gate, module sync,
the account service) asks the session for the current identity instead of
reading a global.

Listeners registered with ``subscribe`` are called with the new identity, or
None after sign-out, every time the state changes. A listener that raises is
logged and does not stop the others.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

import httpx
import jwt as pyjwt
from studydesk_shared.errors import AuthProviderError
from studydesk_shared.settings import Settings
from studydesk_shared.user_models import AuthIdentity

from studydesk_auth.jwt import verify_token
from studydesk_auth.provider import AuthProvider, ProviderSession, SupabaseAuthProvider

logger = logging.getLogger(__name__)

AuthListener = Callable[[AuthIdentity | None], None]


class AuthSession:
    """Tracks the signed-in identity for one client."""

    def __init__(self, provider: AuthProvider, jwt_secret: str | None = None) -> None:
        self._provider = provider
        self._jwt_secret = jwt_secret
        self._session: ProviderSession | None = None
        self._listeners: list[AuthListener] = []

    @classmethod
    def from_settings(cls, settings: Settings) -> AuthSession:
        """Session over the hosted provider configured in the environment."""
        return cls(SupabaseAuthProvider.from_settings(settings), jwt_secret=settings.jwt_secret)

    @property
    def current(self) -> AuthIdentity | None:
        return self._session.identity if self._session else None

    @property
    def access_token(self) -> str | None:
        return self._session.access_token if self._session else None

    def subscribe(self, listener: AuthListener) -> Callable[[], None]:
        """Register for sign-in state changes. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self) -> None:
        identity = self.current
        for listener in list(self._listeners):
            try:
                listener(identity)
            except Exception as e:
                logger.error(f"Auth state listener failed: {e}")

    async def sign_in(self, id_token: str) -> AuthIdentity:
        """Sign in through the provider and make the result the current identity."""
        self._session = await self._provider.sign_in_with_id_token(id_token)
        self._emit()
        return self._session.identity

    def resume(self, access_token: str) -> AuthIdentity | None:
        """Restore a persisted session by verifying its access token locally.

        Returns None (and stays signed out) when no secret is configured or the
        token is expired or invalid.
        """
        if not self._jwt_secret:
            return None
        try:
            identity = verify_token(access_token, self._jwt_secret)
        except pyjwt.PyJWTError as e:
            logger.info(f"Stored session could not be resumed: {e}")
            return None
        self._session = ProviderSession(identity=identity, access_token=access_token)
        self._emit()
        return identity

    async def sign_out(self) -> None:
        """Sign out locally; a provider failure is logged, the local state still clears."""
        session = self._session
        self._session = None
        if session is not None:
            try:
                await self._provider.sign_out(session.access_token)
            except (AuthProviderError, httpx.HTTPError) as e:
                logger.warning(f"Provider sign-out failed for {session.identity.user_id}: {e}")
        self._emit()
