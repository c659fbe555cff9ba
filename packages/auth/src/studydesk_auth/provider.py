"""Hosted authentication provider over HTTP.

Sign-in exchanges an OAuth provider's ID token (Google, by default) for a
Supabase session via the GoTrue ``id_token`` grant. The response carries the
access token and the user object the identity is built from.

Error handling:
  - Transport errors and timeouts are retried with exponential backoff via
    tenacity, then re-raised.
  - HTTP error statuses (bad token, disabled provider) are not retried; they
    surface as AuthProviderError with the provider's message.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx
from pydantic import BaseModel
from studydesk_shared.errors import AuthProviderError
from studydesk_shared.settings import Settings
from studydesk_shared.user_models import AuthIdentity
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)


class ProviderSession(BaseModel):
    """A signed-in session as returned by the provider."""

    identity: AuthIdentity
    access_token: str
    refresh_token: str | None = None


class AuthProvider(Protocol):
    """What the session layer needs from an authentication provider."""

    async def sign_in_with_id_token(self, id_token: str) -> ProviderSession: ...

    async def sign_out(self, access_token: str) -> None: ...


def _identity_from_user(user: dict[str, Any]) -> AuthIdentity:
    metadata = user.get("user_metadata") or {}
    return AuthIdentity(
        user_id=user["id"],
        email=user.get("email") or "",
        display_name=metadata.get("full_name") or metadata.get("name"),
        photo_url=metadata.get("avatar_url") or metadata.get("picture"),
        role=user.get("role") or "authenticated",
    )


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    return body.get("error_description") or body.get("msg") or body.get("error") or str(body)


class SupabaseAuthProvider:
    """GoTrue client for ID-token sign-in and sign-out."""

    def __init__(
        self,
        base_url: str,
        anon_key: str,
        oauth_provider: str = "google",
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.anon_key = anon_key
        self.oauth_provider = oauth_provider
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> SupabaseAuthProvider:
        if not settings.supabase_url or not settings.supabase_anon_key:
            raise RuntimeError(
                "SUPABASE_URL and SUPABASE_ANON_KEY must be set to use hosted sign-in."
            )
        return cls(settings.supabase_url, settings.supabase_anon_key)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client with the project's API key header."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={"apikey": self.anon_key},
                timeout=30.0,
            )
        return self._client

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    @retry(
        retry=retry_if_exception_type((httpx.TransportError, httpx.TimeoutException)),
        wait=wait_exponential(multiplier=1, min=1, max=30),
        stop=stop_after_attempt(3),
        reraise=True,
    )
    async def _request_with_retry(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Make an HTTP request, retrying transient transport errors."""
        client = await self._get_client()
        response = await client.request(method, url, **kwargs)
        if response.is_error:
            raise AuthProviderError(_error_message(response))
        return response

    async def sign_in_with_id_token(self, id_token: str) -> ProviderSession:
        response = await self._request_with_retry(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "id_token"},
            json={"provider": self.oauth_provider, "id_token": id_token},
        )
        body = response.json()
        user = body.get("user")
        if not user or not body.get("access_token"):
            raise AuthProviderError("Sign-in response did not include a session")

        identity = _identity_from_user(user)
        logger.info(f"Signed in {identity.user_id} via {self.oauth_provider}")
        return ProviderSession(
            identity=identity,
            access_token=body["access_token"],
            refresh_token=body.get("refresh_token"),
        )

    async def sign_out(self, access_token: str) -> None:
        await self._request_with_retry(
            "POST",
            "/auth/v1/logout",
            headers={"Authorization": f"Bearer {access_token}"},
        )
