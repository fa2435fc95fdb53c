"""Session memory — compressed conversational context across turns."""

from cortex.memory.context import (
    build_session_context,
    relevant_entities,
    relevant_facts,
    windowed_history,
)
from cortex.memory.extractor import Extractor, LLMExtractor
from cortex.memory.models import (
    ConversationFact,
    EntityType,
    ExtractedEntity,
    FactCategory,
    OptimizedContext,
    SessionMemory,
    Turn,
)
from cortex.memory.session import SessionMemoryManager

__all__ = [
    "ConversationFact",
    "EntityType",
    "ExtractedEntity",
    "Extractor",
    "FactCategory",
    "LLMExtractor",
    "OptimizedContext",
    "SessionMemory",
    "SessionMemoryManager",
    "Turn",
    "build_session_context",
    "relevant_entities",
    "relevant_facts",
    "windowed_history",
]
