"""LocalCache — JSON values in local key-value storage, never raising.

Local storage is the durability floor: module writes land here before any
remote call, and reads fall back here when the remote is unavailable. A
failure in local storage (server gone, quota, a value that won't serialize)
must not take the calling operation down with it, so every method catches,
logs and returns a neutral value. The in-memory state of the caller stays
authoritative for the session even if persistence silently degrades.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import BaseModel
from studydesk_shared.sync_models import StorageUsage

from studydesk_local_access.client import RedisAdapter
from studydesk_local_access.keys import BACKUP_KEYS, NAMESPACE, voice_settings_key

logger = logging.getLogger(__name__)

# Budget used for usage reporting, the same 5 MiB a browser grants an origin.
DEFAULT_QUOTA_BYTES = 5 * 1024 * 1024


def _dumps(value: Any) -> str:
    if isinstance(value, BaseModel):
        return value.model_dump_json(by_alias=True)
    return json.dumps(value, ensure_ascii=False, allow_nan=False)


class LocalCache:
    """JSON get/set/remove over a RedisAdapter, plus backup and reset tools."""

    def __init__(self, client: RedisAdapter, quota_bytes: int = DEFAULT_QUOTA_BYTES) -> None:
        self._client = client
        self.quota_bytes = quota_bytes

    async def get_json(self, key: str) -> Any | None:
        """Decoded value for ``key``; None when missing, unreadable or corrupt."""
        try:
            raw = await self._client.get(key)
        except Exception as e:
            logger.warning(f"Local cache read failed for '{key}': {e}")
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError as e:
            logger.warning(f"Local cache value for '{key}' is not valid JSON: {e}")
            return None

    async def set_json(self, key: str, value: Any) -> bool:
        """Serialize and store ``value``. Returns False instead of raising."""
        try:
            payload = _dumps(value)
        except (TypeError, ValueError) as e:
            logger.warning(f"Local cache could not serialize '{key}': {e}")
            return False
        try:
            await self._client.set(key, payload)
        except Exception as e:
            logger.warning(f"Local cache write failed for '{key}' (storage full?): {e}")
            return False
        return True

    async def remove(self, key: str) -> None:
        try:
            await self._client.delete(key)
        except Exception as e:
            logger.warning(f"Local cache delete failed for '{key}': {e}")

    # ------------------------------------------------------------------
    # Preferences
    # ------------------------------------------------------------------

    async def voice_settings(self) -> dict[str, Any] | None:
        value = await self.get_json(voice_settings_key())
        return value if isinstance(value, dict) else None

    async def save_voice_settings(self, settings: dict[str, Any]) -> bool:
        return await self.set_json(voice_settings_key(), settings)

    # ------------------------------------------------------------------
    # Maintenance: usage, backup/restore, factory reset
    # ------------------------------------------------------------------

    async def _namespaced_keys(self) -> list[str]:
        try:
            return await self._client.keys_with_prefix(NAMESPACE)
        except Exception as e:
            logger.warning(f"Local cache key scan failed: {e}")
            return []

    async def usage(self) -> StorageUsage:
        """Approximate footprint of namespaced keys (two bytes per character)."""
        total = 0
        for key in await self._namespaced_keys():
            try:
                raw = await self._client.get(key)
            except Exception as e:
                logger.warning(f"Local cache read failed for '{key}': {e}")
                continue
            if raw is not None:
                total += (len(raw) + len(key)) * 2
        percent = min(100.0, total / self.quota_bytes * 100)
        return StorageUsage(used=total, total=self.quota_bytes, percent=percent)

    async def export_backup(self) -> dict[str, Any]:
        """Decoded values of every backup key that currently holds data."""
        backup: dict[str, Any] = {}
        for key in BACKUP_KEYS:
            value = await self.get_json(key)
            if value is not None:
                backup[key] = value
        return backup

    async def import_backup(self, payload: dict[str, Any]) -> int:
        """Restore known backup keys from ``payload``; unknown keys are ignored."""
        restored = 0
        for key, value in payload.items():
            if key not in BACKUP_KEYS:
                continue
            if await self.set_json(key, value):
                restored += 1
        return restored

    async def factory_reset(self) -> int:
        """Remove every namespaced key. Returns how many were removed."""
        keys = await self._namespaced_keys()
        if not keys:
            return 0
        try:
            await self._client.delete(*keys)
        except Exception as e:
            logger.warning(f"Local cache factory reset failed: {e}")
            return 0
        return len(keys)
