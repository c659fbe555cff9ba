"""Pydantic base models shared across components.

These serve as the contract types that flow between the sync manager and the
resource access packages. Using Pydantic gives us validation at component
boundaries — a malformed document coming back from the remote store fails
fast with a clear error instead of leaking half-parsed values into the cache.
"""

from __future__ import annotations

import time

from pydantic import BaseModel


def now_ms() -> int:
    """Current wall-clock time as epoch milliseconds — the store's timestamp unit."""
    return int(time.time() * 1000)


class StoreResult(BaseModel):
    """Standard result envelope returned by operations with expected failures.

    Operations whose failures are part of normal flow (feed loads, health
    checks) return this (or a subclass) so callers check ``success`` instead
    of catching exceptions for business outcomes.
    """

    success: bool
    message: str
    data: dict[str, str | int | float | bool | None] | None = None
