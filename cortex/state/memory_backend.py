"""Dict-backed StateStore for tests and single-process use."""

from __future__ import annotations

import copy
import time
from typing import Any


class InMemoryStateStore:
    """Keeps values in a process-local dict with wall-clock expiry."""

    def __init__(self) -> None:
        self._data: dict[str, tuple[dict[str, Any], float | None]] = {}
        self._logs: dict[str, list[dict[str, Any]]] = {}

    def _live(self, key: str) -> dict[str, Any] | None:
        item = self._data.get(key)
        if item is None:
            return None
        value, expires_at = item
        if expires_at is not None and expires_at <= time.time():
            del self._data[key]
            return None
        return value

    async def get(self, key: str) -> dict[str, Any] | None:
        value = self._live(key)
        return copy.deepcopy(value) if value is not None else None

    async def set(
        self, key: str, value: dict[str, Any], ttl_seconds: float | None = None
    ) -> None:
        expires_at = time.time() + ttl_seconds if ttl_seconds is not None else None
        self._data[key] = (copy.deepcopy(value), expires_at)

    async def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    async def keys(self, prefix: str) -> list[str]:
        matches = [k for k in list(self._data) if k.startswith(prefix)]
        return sorted(k for k in matches if self._live(k) is not None)

    async def append(self, key: str, value: dict[str, Any]) -> None:
        self._logs.setdefault(key, []).append(copy.deepcopy(value))

    async def read_log(self, key: str, limit: int = 50) -> list[dict[str, Any]]:
        """Return the newest *limit* entries, most recent first."""
        entries = self._logs.get(key, [])
        return [copy.deepcopy(e) for e in reversed(entries[-limit:])] if limit > 0 else []
