"""State store backends and key helpers."""

from cortex.config import settings
from cortex.state.memory_backend import InMemoryStateStore
from cortex.state.sqlite import SqliteStateStore
from cortex.state.store import (
    StateStore,
    history_key,
    preference_key,
    preference_prefix,
    session_key,
    tool_from_preference_key,
)

__all__ = [
    "InMemoryStateStore",
    "SqliteStateStore",
    "StateStore",
    "create_state_store",
    "history_key",
    "preference_key",
    "preference_prefix",
    "session_key",
    "tool_from_preference_key",
]


def create_state_store() -> StateStore:
    """Build the backend selected by ``STATE_BACKEND``."""
    if settings.state_backend == "memory":
        return InMemoryStateStore()
    return SqliteStateStore()
