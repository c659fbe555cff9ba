"""Supabase JWT verification.

Used to resume a persisted session without a network round trip: the stored
access token is verified locally and its claims become the current identity.
"""

from __future__ import annotations

from typing import Any

import jwt as pyjwt
from studydesk_shared.user_models import AuthIdentity


def identity_from_claims(payload: dict[str, Any]) -> AuthIdentity:
    """Map Supabase-shaped claims (``sub``, ``email``, ``user_metadata``) to an identity."""
    metadata = payload.get("user_metadata") or {}
    return AuthIdentity(
        user_id=payload["sub"],
        email=payload.get("email", ""),
        display_name=metadata.get("full_name") or metadata.get("name"),
        photo_url=metadata.get("avatar_url") or metadata.get("picture"),
        role=payload.get("role", "authenticated"),
        exp=payload.get("exp"),
    )


def verify_token(token: str, jwt_secret: str) -> AuthIdentity:
    """Decode and validate a Supabase JWT.

    Args:
        token: The raw access token.
        jwt_secret: The Supabase JWT secret (Settings → API → JWT Secret).

    Returns:
        AuthIdentity with user_id, email, profile metadata, role and expiry.

    Raises:
        pyjwt.ExpiredSignatureError: Token has expired.
        pyjwt.InvalidSignatureError: Signature doesn't match the secret.
        pyjwt.DecodeError: Malformed token.
        pyjwt.MissingRequiredClaimError: ``exp`` or ``sub`` missing.
    """
    payload = pyjwt.decode(
        token,
        jwt_secret,
        algorithms=["HS256"],
        audience="authenticated",
        options={"require": ["exp", "sub"]},
    )
    return identity_from_claims(payload)


def get_user_id(token: str, jwt_secret: str) -> str:
    """Convenience wrapper — returns just the user_id string."""
    return verify_token(token, jwt_secret).user_id
