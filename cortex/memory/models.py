"""Data models for session memory."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import AwareDatetime, BaseModel, Field, model_validator

from cortex.timeutil import utcnow


class EntityType(str, Enum):
    PERSON = "person"
    COMPANY = "company"
    PRODUCT = "product"
    DATE = "date"
    AMOUNT = "amount"
    TASK = "task"
    PROJECT = "project"
    CONTACT = "contact"
    OTHER = "other"


class FactCategory(str, Enum):
    DECISION = "decision"
    ACTION = "action"
    PREFERENCE = "preference"
    CONTEXT = "context"
    GOAL = "goal"
    CONSTRAINT = "constraint"


class Turn(BaseModel):
    """A single conversation turn."""

    role: str  # "user", "assistant" or "system"
    content: str
    id: str | None = None
    created_at: datetime | None = None


class ExtractedEntity(BaseModel):
    """A named thing mentioned in the conversation."""

    type: EntityType
    value: str
    context: str = ""
    confidence: float = Field(ge=0.0, le=1.0)
    first_seen: AwareDatetime = Field(default_factory=utcnow)
    last_seen: AwareDatetime = Field(default_factory=utcnow)
    mention_count: int = Field(default=1, ge=1)

    @property
    def identity(self) -> tuple[str, str]:
        """Uniqueness key: type plus case-folded value."""
        return (self.type.value, self.value.lower())


class ConversationFact(BaseModel):
    """A short categorized statement distilled from a span of turns."""

    text: str
    category: FactCategory
    confidence: float = Field(ge=0.0, le=1.0)
    source_turn_index: int = Field(default=0, ge=0)
    recorded_at: AwareDatetime = Field(default_factory=utcnow)


class SessionMemory(BaseModel):
    """Compressed memory for one conversation.

    ``window_start`` always equals ``summarized_through_turn``; both are
    indexes into the full turn history, and everything before them has been
    folded into ``summary``.
    """

    workspace_id: str
    user_id: str
    conversation_id: str

    entities: list[ExtractedEntity] = Field(default_factory=list)
    facts: list[ConversationFact] = Field(default_factory=list)

    current_topic: str | None = None
    topic_history: list[str] = Field(default_factory=list)

    summary: str | None = None
    summarized_through_turn: int = Field(default=0, ge=0)

    total_turns: int = Field(default=0, ge=0)
    window_start: int = Field(default=0, ge=0)

    created_at: AwareDatetime = Field(default_factory=utcnow)
    updated_at: AwareDatetime = Field(default_factory=utcnow)
    expires_at: AwareDatetime = Field(default_factory=utcnow)

    @model_validator(mode="after")
    def _check_window(self) -> SessionMemory:
        if self.window_start != self.summarized_through_turn:
            msg = "window_start must equal summarized_through_turn"
            raise ValueError(msg)
        if self.summarized_through_turn > self.total_turns:
            msg = "summarized_through_turn cannot exceed total_turns"
            raise ValueError(msg)
        return self

    @property
    def is_empty(self) -> bool:
        return not (self.summary or self.current_topic or self.entities or self.facts)


class OptimizedContext(BaseModel):
    """Prompt-ready memory block plus the turns still kept verbatim."""

    session_context: str
    recent_turns: list[Turn]
    tokens_saved: int = 0
