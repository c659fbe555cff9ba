"""Tests for environment-driven settings."""

from __future__ import annotations

import pytest
from studydesk_shared.settings import load_settings, reset_settings


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in (
        "STUDYDESK_ADMIN_EMAIL",
        "STUDYDESK_FEED_PAGE_SIZE",
        "STUDYDESK_FEED_CACHE_TTL_SECONDS",
        "LOCAL_REDIS_URL",
        "STUDYDESK_DB_URL",
    ):
        monkeypatch.delenv(name, raising=False)
    reset_settings()
    yield
    reset_settings()


def test_defaults() -> None:
    settings = load_settings()
    assert settings.admin_email == ""
    assert settings.feed_page_size == 10
    assert settings.feed_cache_ttl_ms == 3_600_000
    assert settings.jwt_secret is None


def test_reads_environment(monkeypatch) -> None:
    monkeypatch.setenv("STUDYDESK_ADMIN_EMAIL", " Admin@Example.com ")
    monkeypatch.setenv("STUDYDESK_FEED_PAGE_SIZE", "25")
    monkeypatch.setenv("STUDYDESK_FEED_CACHE_TTL_SECONDS", "1.5")
    settings = load_settings()
    assert settings.admin_email == "admin@example.com"
    assert settings.feed_page_size == 25
    assert settings.feed_cache_ttl_ms == 1500


def test_invalid_values_fall_back(monkeypatch) -> None:
    monkeypatch.setenv("STUDYDESK_FEED_PAGE_SIZE", "zero")
    monkeypatch.setenv("STUDYDESK_FEED_CACHE_TTL_SECONDS", "soon")
    settings = load_settings()
    assert settings.feed_page_size == 10
    assert settings.feed_cache_ttl_seconds == 3600


def test_non_positive_page_size_falls_back(monkeypatch) -> None:
    monkeypatch.setenv("STUDYDESK_FEED_PAGE_SIZE", "0")
    assert load_settings().feed_page_size == 10


def test_cached_until_reset(monkeypatch) -> None:
    first = load_settings()
    monkeypatch.setenv("STUDYDESK_FEED_PAGE_SIZE", "3")
    assert load_settings() is first
    reset_settings()
    assert load_settings().feed_page_size == 3
