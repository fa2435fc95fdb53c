"""Key-value state store contract shared by memory and autonomy."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable
from urllib.parse import quote, unquote

SESSION_PREFIX = "session:memory:"
PREFERENCE_PREFIX = "autonomy:pref:"
HISTORY_PREFIX = "autonomy:history:"


@runtime_checkable
class StateStore(Protocol):
    """Durable key-value storage with per-key expiry.

    Backends raise :class:`cortex.errors.StateStoreError` on I/O failure.
    A ``ttl_seconds`` of ``None`` stores the value without expiry.
    """

    async def get(self, key: str) -> dict[str, Any] | None: ...

    async def set(
        self, key: str, value: dict[str, Any], ttl_seconds: float | None = None
    ) -> None: ...

    async def delete(self, key: str) -> bool: ...

    async def keys(self, prefix: str) -> list[str]: ...

    async def append(self, key: str, value: dict[str, Any]) -> None: ...

    async def read_log(self, key: str, limit: int = 50) -> list[dict[str, Any]]: ...


def _segment(value: str) -> str:
    # Percent-encode so ":" inside an id can never be read as a separator.
    return quote(value, safe="")


def session_key(conversation_id: str) -> str:
    return f"{SESSION_PREFIX}{_segment(conversation_id)}"


def preference_prefix(workspace_id: str, user_id: str) -> str:
    return f"{PREFERENCE_PREFIX}{_segment(workspace_id)}:{_segment(user_id)}:"


def preference_key(workspace_id: str, user_id: str, tool_name: str) -> str:
    return f"{preference_prefix(workspace_id, user_id)}{_segment(tool_name)}"


def tool_from_preference_key(key: str, prefix: str) -> str:
    """Inverse of :func:`preference_key` for a key listed under *prefix*."""
    return unquote(key[len(prefix) :])


def history_key(workspace_id: str, user_id: str) -> str:
    return f"{HISTORY_PREFIX}{_segment(workspace_id)}:{_segment(user_id)}"
