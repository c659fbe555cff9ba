"""Module sync models — module documents, sync events, history and stats.

A module bucket lives locally under ``dh_<module>`` and remotely under
``users/<uid>/modules/<module>`` as a ModuleDocument. Writes are two-phase:
the local commit always happens, the remote commit is attempted when the
subject holds write privilege. Each phase is reported as a SyncEvent so a
sync-status indicator can follow along without blocking the write.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from studydesk_shared.models import StoreResult


class ModuleDocument(BaseModel):
    """Remote envelope around a module bucket's data."""

    model_config = ConfigDict(populate_by_name=True)

    data: Any = None
    updated_at: int | None = Field(default=None, alias="updatedAt")
    module: str | None = None


class SyncEvent(BaseModel):
    """One phase outcome of a module write."""

    module: str
    phase: Literal["local", "remote"]
    status: Literal["committed", "skipped", "failed"]
    error: str | None = None
    at: int


class TranscriptLine(BaseModel):
    role: str  # user, model
    text: str


class SpeakingSession(BaseModel):
    """A recorded speaking-practice session."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str
    timestamp: int
    duration_seconds: int = Field(default=0, alias="durationSeconds")
    transcript: list[TranscriptLine] = []
    suggestions: list[Any] = []


class UserStats(BaseModel):
    """Dashboard totals aggregated from the remote module documents."""

    model_config = ConfigDict(populate_by_name=True)

    finance_balance: float = Field(default=0, alias="financeBalance")
    vocab_count: int = Field(default=0, alias="vocabCount")
    pending_tasks: int = Field(default=0, alias="pendingTasks")
    active_habits: int = Field(default=0, alias="activeHabits")
    habit_streak: int = Field(default=0, alias="habitStreak")


class HealthReport(StoreResult):
    """Remote store round-trip latency and a coarse status."""

    db_latency: int = 0
    status: Literal["ok", "degraded", "offline"] = "ok"


class StorageUsage(BaseModel):
    """Approximate bytes used by namespaced keys in local storage."""

    used: int
    total: int
    percent: float
