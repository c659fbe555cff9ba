"""Environment-driven settings for the persistence core.

Every knob has a default that matches production behavior, so a bare
environment gives: 10-item feed pages, a one-hour feed cache,
fakeredis for local storage and no remote database.

LOCAL_REDIS_URL and STUDYDESK_DB_URL are read by the client factories
(get_client, get_engine) at the outer edge, not carried here.

Variables:
  STUDYDESK_ADMIN_EMAIL            — the distinguished administrator identity
  STUDYDESK_FEED_PAGE_SIZE         — feed page size (default 10)
  STUDYDESK_FEED_CACHE_TTL_SECONDS — feed cache validity (default 3600)
  LOCAL_REDIS_URL                  — local redis server; unset → fakeredis
  STUDYDESK_DB_URL                 — remote document database URL
  SUPABASE_URL / SUPABASE_ANON_KEY — hosted auth endpoint and public key
  SUPABASE_JWT_SECRET              — secret used to verify access tokens
"""

from __future__ import annotations

import os
from functools import lru_cache

from pydantic import BaseModel

DEFAULT_PAGE_SIZE = 10
DEFAULT_CACHE_TTL_SECONDS = 60 * 60


class Settings(BaseModel):
    """Resolved runtime settings."""

    admin_email: str = ""
    feed_page_size: int = DEFAULT_PAGE_SIZE
    feed_cache_ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS
    supabase_url: str | None = None
    supabase_anon_key: str | None = None
    jwt_secret: str | None = None

    @property
    def feed_cache_ttl_ms(self) -> int:
        return int(self.feed_cache_ttl_seconds * 1000)


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_str(name: str) -> str | None:
    value = os.environ.get(name, "").strip()
    return value or None


@lru_cache
def load_settings() -> Settings:
    """Build Settings from the environment once per process."""
    page_size = _env_int("STUDYDESK_FEED_PAGE_SIZE", DEFAULT_PAGE_SIZE)
    if page_size < 1:
        page_size = DEFAULT_PAGE_SIZE

    return Settings(
        admin_email=(_env_str("STUDYDESK_ADMIN_EMAIL") or "").lower(),
        feed_page_size=page_size,
        feed_cache_ttl_seconds=_env_float(
            "STUDYDESK_FEED_CACHE_TTL_SECONDS", DEFAULT_CACHE_TTL_SECONDS
        ),
        supabase_url=_env_str("SUPABASE_URL"),
        supabase_anon_key=_env_str("SUPABASE_ANON_KEY"),
        jwt_secret=_env_str("SUPABASE_JWT_SECRET"),
    )


def reset_settings() -> None:
    """Drop the cached Settings — used in tests after patching the environment."""
    load_settings.cache_clear()
