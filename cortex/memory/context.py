"""Pure helpers that turn a SessionMemory into prompt material."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from cortex.memory.models import ConversationFact, ExtractedEntity, SessionMemory, Turn

CONTEXT_ITEMS = 10
CHARS_PER_TOKEN = 4

_HEADER = "--- SESSION MEMORY ---"
_FOOTER = "--- END SESSION MEMORY ---"


def build_session_context(memory: SessionMemory) -> str:
    """Format summary, topic, top entities and top facts as a labeled block.

    Deterministic: the same record always renders to the same text. Returns
    an empty string when the record holds nothing worth injecting.
    """
    parts: list[str] = []

    if memory.summary:
        parts.append(f"## Previous Context Summary\n{memory.summary}")

    if memory.current_topic:
        parts.append(f"## Current Topic\n{memory.current_topic}")

    if memory.entities:
        lines = []
        for e in memory.entities[:CONTEXT_ITEMS]:
            line = f'- {e.type.value}: "{e.value}"'
            if e.context:
                line += f" ({e.context})"
            lines.append(line)
        parts.append("## Key Entities Mentioned\n" + "\n".join(lines))

    if memory.facts:
        lines = [f"- [{f.category.value}] {f.text}" for f in memory.facts[:CONTEXT_ITEMS]]
        parts.append("## Key Facts\n" + "\n".join(lines))

    if not parts:
        return ""
    body = "\n\n".join(parts)
    return f"{_HEADER}\n{body}\n{_FOOTER}"


def windowed_history(memory: SessionMemory, turns: Sequence[Turn]) -> list[Turn]:
    """Return only the turns not yet folded into the summary."""
    return list(turns[memory.window_start :])


def estimate_tokens(text: str) -> int:
    return len(text) // CHARS_PER_TOKEN


def tokens_saved(
    all_turns: Sequence[Turn], session_context: str, recent_turns: Sequence[Turn]
) -> int:
    """Rough token savings of memory+window over sending the full history."""
    full = sum(len(t.content) for t in all_turns)
    optimized = len(session_context) + sum(len(t.content) for t in recent_turns)
    return max(0, round((full - optimized) / CHARS_PER_TOKEN))


def _query_words(query: str) -> list[str]:
    return [w for w in re.split(r"\s+", query.lower()) if len(w) > 2]


def relevant_entities(memory: SessionMemory, query: str) -> list[ExtractedEntity]:
    """Entities whose value or context shares a word with *query*."""
    words = _query_words(query)
    if not words:
        return []
    matches = []
    for entity in memory.entities:
        value = entity.value.lower()
        context = entity.context.lower()
        if any(w in value or w in context or value in w for w in words):
            matches.append(entity)
    return matches


def relevant_facts(memory: SessionMemory, query: str) -> list[ConversationFact]:
    """Facts whose text contains any word of *query*."""
    words = _query_words(query)
    if not words:
        return []
    return [f for f in memory.facts if any(w in f.text.lower() for w in words)]
