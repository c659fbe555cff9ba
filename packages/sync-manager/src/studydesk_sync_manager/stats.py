"""Dashboard totals and a remote round-trip health probe."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any

from studydesk_access_engine.gate import AuthorizationGate
from studydesk_auth.session import AuthSession
from studydesk_document_access.paths import (
    finance_transactions_collection,
    modules_collection,
    users_collection,
)
from studydesk_document_access.store import DocumentStore
from studydesk_shared.sync_models import HealthReport, UserStats

logger = logging.getLogger(__name__)

DEGRADED_LATENCY_MS = 1000


def _monotonic_ms() -> int:
    return int(time.monotonic() * 1000)


def _amount(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


class StatsService:
    """Aggregates module documents into UserStats and probes remote latency."""

    def __init__(
        self,
        store: DocumentStore,
        gate: AuthorizationGate,
        session: AuthSession,
        timer: Callable[[], int] = _monotonic_ms,
    ) -> None:
        self._store = store
        self._gate = gate
        self._session = session
        self._timer = timer

    async def _module_data(self, uid: str, module: str) -> list[Any]:
        document = await self._store.get(modules_collection(uid), module)
        data = (document or {}).get("data")
        return data if isinstance(data, list) else []

    async def collect_stats(self, uid: str) -> UserStats:
        """Totals for ``uid``; zeros without write privilege or on any remote error."""
        stats = UserStats()
        if not await self._gate.has_write_privilege(self._session.current):
            return stats

        try:
            for tx in await self._store.list(finance_transactions_collection(uid)):
                amount = _amount(tx.data.get("amount"))
                if tx.data.get("type") == "income":
                    stats.finance_balance += amount
                elif tx.data.get("type") == "expense":
                    stats.finance_balance -= amount

            stats.vocab_count = len(await self._module_data(uid, "vocab_terms"))

            tasks = await self._module_data(uid, "tasks")
            stats.pending_tasks = sum(
                1 for t in tasks if isinstance(t, dict) and not t.get("completed")
            )

            habits = await self._module_data(uid, "habits")
            stats.active_habits = len(habits)
            stats.habit_streak = max(
                (int(_amount(h.get("streak"))) for h in habits if isinstance(h, dict)),
                default=0,
            )
        except Exception as e:
            logger.error(f"Error aggregating stats for {uid}: {e}")
            return UserStats()
        return stats

    async def check_health(self) -> HealthReport:
        """Time one read of the current user's record."""
        subject = self._session.current
        if subject is None:
            return HealthReport(success=True, message="No signed-in user", db_latency=0)

        start = self._timer()
        try:
            await self._store.get(users_collection(), subject.user_id)
        except Exception as e:
            logger.warning(f"Health check failed: {e}")
            return HealthReport(
                success=False, message=f"Remote store unreachable: {e}", status="offline"
            )

        latency = self._timer() - start
        status = "degraded" if latency > DEGRADED_LATENCY_MS else "ok"
        return HealthReport(
            success=True,
            message=f"Remote store responded in {latency}ms",
            db_latency=latency,
            status=status,
        )
