"""Shared test fixtures."""

from __future__ import annotations

from collections import defaultdict
from typing import Any

import pytest

from cortex.errors import ExtractionError, StateStoreError
from cortex.memory.models import ConversationFact, ExtractedEntity, Turn
from cortex.state.memory_backend import InMemoryStateStore


class FakeExtractor:
    """Scriptable extraction adapter that records every call."""

    def __init__(self) -> None:
        self.entities: list[ExtractedEntity] = []
        self.facts: list[ConversationFact] = []
        self.topic: str | None = None
        self.summary: str = "Earlier turns summarized."
        self.fail: set[str] = set()
        self.calls: dict[str, list[Any]] = defaultdict(list)

    def _maybe_fail(self, step: str) -> None:
        if step in self.fail:
            msg = f"{step} unavailable"
            raise ExtractionError(msg)

    async def extract_entities(self, text: str) -> list[ExtractedEntity]:
        self.calls["entities"].append(text)
        self._maybe_fail("entities")
        return [e.model_copy() for e in self.entities]

    async def extract_facts(self, turns, start_index: int = 0) -> list[ConversationFact]:
        self.calls["facts"].append((list(turns), start_index))
        self._maybe_fail("facts")
        return [f.model_copy() for f in self.facts]

    async def detect_topic(self, turns) -> str | None:
        self.calls["topic"].append(list(turns))
        self._maybe_fail("topic")
        return self.topic

    async def summarize(self, turns, prior_summary: str | None) -> str:
        self.calls["summary"].append((list(turns), prior_summary))
        self._maybe_fail("summary")
        return self.summary


class FailingStateStore:
    """State store whose every operation fails."""

    async def get(self, key: str):
        raise StateStoreError("down")

    async def set(self, key: str, value, ttl_seconds=None) -> None:
        raise StateStoreError("down")

    async def delete(self, key: str) -> bool:
        raise StateStoreError("down")

    async def keys(self, prefix: str) -> list[str]:
        raise StateStoreError("down")

    async def append(self, key: str, value) -> None:
        raise StateStoreError("down")

    async def read_log(self, key: str, limit: int = 50) -> list:
        raise StateStoreError("down")


def _make_turns(count: int, first_role: str = "user") -> list[Turn]:
    """Alternating user/assistant turns with numbered content."""
    other = "assistant" if first_role == "user" else "user"
    return [
        Turn(role=first_role if i % 2 == 0 else other, content=f"turn {i} content")
        for i in range(count)
    ]


@pytest.fixture
def store() -> InMemoryStateStore:
    return InMemoryStateStore()


@pytest.fixture
def failing_store() -> FailingStateStore:
    return FailingStateStore()


@pytest.fixture
def extractor() -> FakeExtractor:
    return FakeExtractor()


@pytest.fixture
def make_turns():
    return _make_turns
