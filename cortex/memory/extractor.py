"""Extraction adapter: entities, facts, topic, and rolling summary.

Each call sends a bounded slice of the conversation to the memory model and
parses its JSON (or plain text) answer. Every failure mode (timeout, API
error, unparsable output) surfaces as :class:`ExtractionError` so the
session manager can skip just that step.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import TYPE_CHECKING, Any, Protocol

from pydantic import ValidationError

from cortex.config import settings
from cortex.errors import ExtractionError
from cortex.llm import client as llm_client
from cortex.memory.models import (
    ConversationFact,
    EntityType,
    ExtractedEntity,
    FactCategory,
)
from cortex.timeutil import utcnow

if TYPE_CHECKING:
    from collections.abc import Sequence

    from cortex.memory.models import Turn

logger = logging.getLogger(__name__)

# Input limits (characters) applied before anything is sent to the model.
ENTITY_INPUT_LIMIT = 2000
FACT_INPUT_LIMIT = 3000
TOPIC_INPUT_LIMIT = 1000
SUMMARY_INPUT_LIMIT = 4000

MIN_ENTITY_TEXT = 10
TOPIC_TURNS = 5

VALID_ENTITY_TYPES = {t.value for t in EntityType}
VALID_FACT_CATEGORIES = {c.value for c in FactCategory}


class Extractor(Protocol):
    """What the session manager needs from an extraction backend."""

    async def extract_entities(self, text: str) -> list[ExtractedEntity]: ...

    async def extract_facts(
        self, turns: Sequence[Turn], start_index: int = 0
    ) -> list[ConversationFact]: ...

    async def detect_topic(self, turns: Sequence[Turn]) -> str | None: ...

    async def summarize(self, turns: Sequence[Turn], prior_summary: str | None) -> str: ...


# -- Prompts -----------------------------------------------------------------

_ENTITY_SYSTEM = """Extract named entities from the message. Output a JSON array:
[{"type": "person|company|product|date|amount|task|project|contact|other", "value": "entity value", "context": "brief context", "confidence": 0.0-1.0}]

Only include entities with confidence >= 0.7. Output valid JSON only, no markdown."""

_FACT_SYSTEM = """Extract key facts from this conversation segment. Output a JSON array:
[{"text": "concise fact statement", "category": "decision|action|preference|context|goal|constraint", "confidence": 0.0-1.0, "turn_index": number}]

Focus on decisions made, actions taken or planned, stated preferences,
important context, goals, and constraints or requirements.

Only include facts with confidence >= 0.7. Output valid JSON only, no markdown."""

_TOPIC_SYSTEM = """Identify the main topic of this conversation segment in 2-5 words.
Examples: "CRM lead management", "Marketing campaign planning", "Calendar scheduling"
Output ONLY the topic phrase, nothing else."""

_SUMMARY_SYSTEM = """Summarize this conversation concisely. Include:
- Main topics discussed
- Key decisions or actions
- Important context for future reference
- Any unresolved questions or tasks

Keep the summary under 200 words. Focus on what is needed to continue the conversation."""


# -- Prompt building ---------------------------------------------------------


def format_turns(turns: Sequence[Turn], start_index: int | None = None) -> str:
    """Render turns one per line, optionally prefixed with absolute indexes."""
    lines = []
    for offset, turn in enumerate(turns):
        prefix = f"[{start_index + offset}] " if start_index is not None else ""
        lines.append(f"{prefix}{turn.role}: {turn.content}")
    return "\n".join(lines)


def build_summary_prompt(turns: Sequence[Turn], prior_summary: str | None) -> str:
    text = format_turns(turns)
    if prior_summary:
        return (
            f"Previous context summary:\n{prior_summary}\n\n"
            f"New conversation to incorporate:\n{text}"
        )
    return text


# -- Parsing -----------------------------------------------------------------


def strip_fences(text: str) -> str:
    """Remove a surrounding markdown code fence, if any."""
    text = text.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[-1] if "\n" in text else ""
    if text.endswith("```"):
        text = text.rsplit("```", 1)[0]
    return text.strip()


def _parse_json_array(raw: str) -> list[Any]:
    text = strip_fences(raw)
    if not text:
        return []
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        # Models sometimes wrap the array in prose.
        start, end = text.find("["), text.rfind("]") + 1
        if start < 0 or end <= start:
            msg = f"Extraction response is not JSON: {text[:200]!r}"
            raise ExtractionError(msg) from None
        try:
            data = json.loads(text[start:end])
        except json.JSONDecodeError as exc:
            msg = f"Extraction response is not JSON: {text[:200]!r}"
            raise ExtractionError(msg) from exc
    if not isinstance(data, list):
        msg = f"Expected a JSON array, got {type(data).__name__}"
        raise ExtractionError(msg)
    return data


def _confidence(item: dict[str, Any]) -> float | None:
    value = item.get("confidence")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return min(1.0, float(value))


def parse_entities(raw: str) -> list[ExtractedEntity]:
    """Parse the entity model's output, dropping unusable items."""
    now = utcnow()
    entities = []
    for item in _parse_json_array(raw):
        if not isinstance(item, dict):
            continue
        value = str(item.get("value", "")).strip()
        entity_type = str(item.get("type", "")).strip().lower()
        confidence = _confidence(item)
        if not value or entity_type not in VALID_ENTITY_TYPES or confidence is None:
            continue
        if confidence < settings.memory_min_confidence:
            continue
        try:
            entities.append(
                ExtractedEntity(
                    type=EntityType(entity_type),
                    value=value,
                    context=str(item.get("context", "") or "").strip(),
                    confidence=confidence,
                    first_seen=now,
                    last_seen=now,
                )
            )
        except ValidationError:
            logger.debug("Dropping malformed entity: %s", item)
    return entities


def parse_facts(raw: str, start_index: int = 0) -> list[ConversationFact]:
    """Parse the fact model's output, dropping unusable items."""
    now = utcnow()
    facts = []
    for item in _parse_json_array(raw):
        if not isinstance(item, dict):
            continue
        text = str(item.get("text") or item.get("fact") or "").strip()
        category = str(item.get("category", "")).strip().lower()
        confidence = _confidence(item)
        if not text or category not in VALID_FACT_CATEGORIES or confidence is None:
            continue
        if confidence < settings.memory_min_confidence:
            continue
        index = item.get("turn_index", item.get("messageIndex", start_index))
        if isinstance(index, bool) or not isinstance(index, int) or index < 0:
            index = start_index
        facts.append(
            ConversationFact(
                text=text,
                category=FactCategory(category),
                confidence=confidence,
                source_turn_index=index,
                recorded_at=now,
            )
        )
    return facts


def parse_topic(raw: str) -> str | None:
    topic = strip_fences(raw).strip().strip('"').strip()
    if not topic:
        return None
    # A topic is a short label; keep the first line only.
    return topic.splitlines()[0][:100]


# -- LLM-backed adapter ------------------------------------------------------


class LLMExtractor:
    """Extraction adapter that calls Claude through :func:`complete_text`."""

    def __init__(self, model: str | None = None, timeout: float | None = None) -> None:
        self._model = model
        self._timeout = timeout if timeout is not None else settings.extraction_timeout_seconds

    async def _call(
        self,
        step: str,
        system: str,
        prompt: str,
        *,
        max_tokens: int,
        temperature: float = 0.0,
    ) -> str:
        try:
            return await asyncio.wait_for(
                llm_client.complete_text(
                    [{"role": "user", "content": prompt}],
                    system=system,
                    model=self._model,
                    max_tokens=max_tokens,
                    temperature=temperature,
                ),
                timeout=self._timeout,
            )
        except TimeoutError as exc:
            msg = f"{step} extraction timed out after {self._timeout:.1f}s"
            raise ExtractionError(msg) from exc
        except Exception as exc:
            msg = f"{step} extraction failed: {exc}"
            raise ExtractionError(msg) from exc

    async def extract_entities(self, text: str) -> list[ExtractedEntity]:
        if len(text.strip()) < MIN_ENTITY_TEXT:
            return []
        raw = await self._call(
            "entity", _ENTITY_SYSTEM, text[:ENTITY_INPUT_LIMIT], max_tokens=300
        )
        return parse_entities(raw)

    async def extract_facts(
        self, turns: Sequence[Turn], start_index: int = 0
    ) -> list[ConversationFact]:
        if len(turns) < 2:
            return []
        prompt = format_turns(turns, start_index=start_index)[:FACT_INPUT_LIMIT]
        raw = await self._call("fact", _FACT_SYSTEM, prompt, max_tokens=400)
        return parse_facts(raw, start_index)

    async def detect_topic(self, turns: Sequence[Turn]) -> str | None:
        if not turns:
            return None
        recent = "\n".join(t.content for t in turns[-TOPIC_TURNS:])
        raw = await self._call(
            "topic", _TOPIC_SYSTEM, recent[:TOPIC_INPUT_LIMIT], max_tokens=20
        )
        return parse_topic(raw)

    async def summarize(self, turns: Sequence[Turn], prior_summary: str | None) -> str:
        if not turns:
            return prior_summary or ""
        prompt = build_summary_prompt(turns, prior_summary)[:SUMMARY_INPUT_LIMIT]
        raw = await self._call(
            "summary", _SUMMARY_SYSTEM, prompt, max_tokens=300, temperature=0.3
        )
        return raw.strip() or prior_summary or ""
