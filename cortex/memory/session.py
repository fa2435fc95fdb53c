"""Session memory manager — ingest turns, keep bounded memory, persist it.

One ``SessionMemory`` record lives in the state store per conversation with
a sliding expiry: every load and every ingested turn pushes ``expires_at``
out by the session TTL, so an abandoned conversation disappears on its own.

Extraction steps run one after another inside :meth:`ingest`, each wrapped
so that a failure only skips that step. Store failures never propagate
either: a failed read behaves like a cold start and a failed write is
logged. Concurrent ingests of the same conversation are last-writer-wins.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from cortex.config import settings
from cortex.errors import ExtractionError, StateStoreError
from cortex.memory.context import build_session_context, tokens_saved, windowed_history
from cortex.memory.extractor import LLMExtractor
from cortex.memory.models import (
    ConversationFact,
    ExtractedEntity,
    OptimizedContext,
    SessionMemory,
    Turn,
)
from cortex.state.store import session_key
from cortex.timeutil import utcnow

if TYPE_CHECKING:
    from collections.abc import Awaitable, Sequence

    from cortex.memory.extractor import Extractor
    from cortex.state.store import StateStore

logger = logging.getLogger(__name__)

FACT_INTERVAL = 4  # extract facts on every Nth turn
FACT_TURNS = 8  # ...over this many recent turns
TOPIC_INTERVAL = 3
TOPIC_EAGER_TURNS = 3  # always detect topic during the first N turns
TOPIC_TURNS = 5
FACT_PREFIX_CHARS = 30
CLEARED_TTL_SECONDS = 1

_SKIPPED: Any = object()


# -- Merge helpers -------------------------------------------------------------


def _entity_rank(entity: ExtractedEntity) -> tuple[int, float]:
    return (-entity.mention_count, -entity.last_seen.timestamp())


def merge_entities(
    existing: Sequence[ExtractedEntity],
    incoming: Sequence[ExtractedEntity],
    now: datetime,
    limit: int,
) -> list[ExtractedEntity]:
    """Fold *incoming* into *existing* and keep the top *limit*.

    Entities match on type plus case-insensitive value. A match bumps the
    mention count and recency and keeps the higher confidence. Ordering is
    mention count descending, then most recently seen.
    """
    merged = [e.model_copy() for e in existing]
    index = {e.identity: e for e in merged}

    for candidate in incoming:
        if candidate.confidence < settings.memory_min_confidence:
            continue
        match = index.get(candidate.identity)
        if match is not None:
            match.last_seen = now
            match.mention_count += 1
            match.confidence = max(match.confidence, candidate.confidence)
            continue
        entity = candidate.model_copy(
            update={"first_seen": now, "last_seen": now, "mention_count": 1}
        )
        merged.append(entity)
        index[entity.identity] = entity

    merged.sort(key=_entity_rank)
    return merged[:limit]


def _is_duplicate_fact(text: str, facts: Sequence[ConversationFact]) -> bool:
    new = text.lower()
    for fact in facts:
        old = fact.text.lower()
        if new[:FACT_PREFIX_CHARS] in old or old[:FACT_PREFIX_CHARS] in new:
            return True
    return False


def merge_facts(
    existing: Sequence[ConversationFact],
    incoming: Sequence[ConversationFact],
    now: datetime,
    limit: int,
) -> list[ConversationFact]:
    """Add non-duplicate facts and keep the *limit* most recent."""
    merged = [f.model_copy() for f in existing]
    for candidate in incoming:
        if candidate.confidence < settings.memory_min_confidence:
            continue
        if _is_duplicate_fact(candidate.text, merged):
            continue
        merged.append(candidate.model_copy(update={"recorded_at": now}))

    merged.sort(key=lambda f: f.recorded_at, reverse=True)
    return merged[:limit]


def push_topic(history: Sequence[str], topic: str, limit: int) -> list[str]:
    """Append a superseded topic, keeping only the last *limit*."""
    return [*history, topic][-limit:]


# -- Manager -------------------------------------------------------------------


class SessionMemoryManager:
    """Owns per-conversation memory records in a :class:`StateStore`."""

    def __init__(
        self,
        store: StateStore,
        extractor: Extractor | None = None,
        *,
        ttl_seconds: int | None = None,
        window_size: int | None = None,
        summarize_threshold: int | None = None,
        max_entities: int | None = None,
        max_facts: int | None = None,
        topic_history_size: int | None = None,
    ) -> None:
        self._store = store
        self._extractor = extractor or LLMExtractor()
        self.ttl_seconds = ttl_seconds or settings.session_ttl_seconds
        self.window_size = window_size or settings.memory_window_size
        self.summarize_threshold = summarize_threshold or settings.memory_summarize_threshold
        self.max_entities = max_entities or settings.memory_max_entities
        self.max_facts = max_facts or settings.memory_max_facts
        self.topic_history_size = topic_history_size or settings.memory_topic_history_size

    # -- Persistence -----------------------------------------------------------

    def _expiry(self, now: datetime) -> datetime:
        return now + timedelta(seconds=self.ttl_seconds)

    def _new_record(
        self, workspace_id: str, user_id: str, conversation_id: str
    ) -> SessionMemory:
        now = utcnow()
        return SessionMemory(
            workspace_id=workspace_id,
            user_id=user_id,
            conversation_id=conversation_id,
            created_at=now,
            updated_at=now,
            expires_at=self._expiry(now),
        )

    def _is_sane(self, memory: SessionMemory) -> bool:
        return (
            len(memory.entities) <= self.max_entities
            and len(memory.facts) <= self.max_facts
            and len(memory.topic_history) <= self.topic_history_size
        )

    async def get(self, conversation_id: str) -> SessionMemory | None:
        """Load a live record, or None if absent, expired, cleared or unreadable."""
        try:
            data = await self._store.get(session_key(conversation_id))
        except StateStoreError:
            logger.warning(
                "Session load failed for %s; starting cold", conversation_id, exc_info=True
            )
            return None
        if not data or data.get("cleared"):
            return None

        try:
            memory = SessionMemory.model_validate(data)
        except ValidationError:
            logger.warning("Discarding corrupt session memory for %s", conversation_id)
            return None
        if memory.conversation_id != conversation_id:
            logger.warning("Discarding session memory owned by another id: %s", conversation_id)
            return None
        if not self._is_sane(memory):
            logger.warning("Discarding over-capacity session memory for %s", conversation_id)
            return None
        if memory.expires_at <= utcnow():
            return None
        return memory

    async def _save(self, memory: SessionMemory) -> None:
        try:
            await self._store.set(
                session_key(memory.conversation_id),
                memory.model_dump(mode="json"),
                ttl_seconds=self.ttl_seconds,
            )
        except StateStoreError:
            logger.exception("Failed to save session memory for %s", memory.conversation_id)

    # -- Public operations -----------------------------------------------------

    async def initialize(
        self, workspace_id: str, user_id: str, conversation_id: str
    ) -> SessionMemory:
        """Load the live record for a conversation or create an empty one.

        Either way the expiry is pushed out by the session TTL.
        """
        existing = await self.get(conversation_id)
        if existing is not None:
            now = utcnow()
            existing.updated_at = now
            existing.expires_at = self._expiry(now)
            await self._save(existing)
            return existing

        memory = self._new_record(workspace_id, user_id, conversation_id)
        await self._save(memory)
        logger.info("Initialized new session memory for %s", conversation_id)
        return memory

    async def ingest(
        self,
        conversation_id: str,
        new_turn: Turn,
        all_turns: Sequence[Turn],
        *,
        workspace_id: str = "",
        user_id: str = "",
    ) -> SessionMemory:
        """Fold one new turn into the conversation's memory and persist it.

        *all_turns* is the full history including *new_turn*. When no live
        record exists one is created from the identity arguments.
        """
        memory = await self.get(conversation_id)
        if memory is None:
            logger.info("No live session for %s; creating one during ingest", conversation_id)
            memory = self._new_record(workspace_id, user_id, conversation_id)

        now = utcnow()
        total = len(all_turns)
        memory.total_turns = total
        if memory.summarized_through_turn > total:
            # History was truncated by the caller; keep the summary, move the boundary.
            memory.summarized_through_turn = total
            memory.window_start = total

        if new_turn.role == "user":
            entities = await self._safe_step(
                "entities", conversation_id, self._extractor.extract_entities(new_turn.content)
            )
            if entities is not _SKIPPED:
                memory.entities = merge_entities(memory.entities, entities, now, self.max_entities)

        if total > 0 and total % FACT_INTERVAL == 0:
            recent = list(all_turns[-FACT_TURNS:])
            facts = await self._safe_step(
                "facts",
                conversation_id,
                self._extractor.extract_facts(recent, start_index=total - len(recent)),
            )
            if facts is not _SKIPPED:
                memory.facts = merge_facts(memory.facts, facts, now, self.max_facts)

        if total > 0 and (total % TOPIC_INTERVAL == 0 or total <= TOPIC_EAGER_TURNS):
            recent = list(all_turns[-TOPIC_TURNS:])
            topic = await self._safe_step(
                "topic", conversation_id, self._extractor.detect_topic(recent)
            )
            if topic is not _SKIPPED and topic:
                old = memory.current_topic
                if old and old != topic:
                    memory.topic_history = push_topic(
                        memory.topic_history, old, self.topic_history_size
                    )
                memory.current_topic = topic

        if (
            total >= self.summarize_threshold
            and total - memory.summarized_through_turn >= self.window_size
        ):
            await self._summarize(memory, all_turns, total)

        memory.updated_at = now
        memory.expires_at = self._expiry(now)
        await self._save(memory)
        return memory

    async def _summarize(
        self, memory: SessionMemory, all_turns: Sequence[Turn], total: int
    ) -> None:
        start = memory.summarized_through_turn
        end = total - self.window_size
        if end <= start:
            return
        to_fold = list(all_turns[start:end])
        summary = await self._safe_step(
            "summary",
            memory.conversation_id,
            self._extractor.summarize(to_fold, memory.summary),
        )
        if summary is _SKIPPED:
            return
        memory.summary = summary or memory.summary
        memory.summarized_through_turn = end
        memory.window_start = end
        logger.info(
            "Summarized %d turns for %s (window now starts at %d)",
            len(to_fold),
            memory.conversation_id,
            end,
        )

    async def _safe_step(self, step: str, conversation_id: str, call: Awaitable[Any]) -> Any:
        """Await one extraction call; return ``_SKIPPED`` on any failure."""
        try:
            return await call
        except ExtractionError as exc:
            logger.warning("Skipping %s extraction for %s: %s", step, conversation_id, exc)
        except Exception:
            logger.exception("Unexpected %s extraction error for %s", step, conversation_id)
        return _SKIPPED

    async def clear(self, conversation_id: str) -> None:
        """Forget a conversation.

        Overwrites the record with a tombstone that expires almost at once,
        so in-flight readers see "no session" rather than a missing key race.
        """
        try:
            await self._store.set(
                session_key(conversation_id), {"cleared": True}, ttl_seconds=CLEARED_TTL_SECONDS
            )
            logger.info("Cleared session memory for %s", conversation_id)
        except StateStoreError:
            logger.exception("Failed to clear session memory for %s", conversation_id)

    async def get_optimized_context(
        self, conversation_id: str, all_turns: Sequence[Turn]
    ) -> OptimizedContext:
        """Memory block plus the verbatim window, ready for the next prompt."""
        memory = await self.get(conversation_id)
        if memory is None:
            return OptimizedContext(
                session_context="", recent_turns=list(all_turns[-self.window_size :])
            )

        session_context = build_session_context(memory)
        recent = windowed_history(memory, all_turns)
        return OptimizedContext(
            session_context=session_context,
            recent_turns=recent,
            tokens_saved=tokens_saved(all_turns, session_context, recent),
        )
