"""Model aliases for extraction calls."""

import logging

from cortex.config import settings

logger = logging.getLogger(__name__)

MODEL_MAP: dict[str, str] = {
    "haiku": "claude-haiku-4-5-20251001",
    "sonnet": "claude-sonnet-4-5-20250929",
    "opus": "claude-opus-4-6-20250612",
}

DEFAULT_MODEL = MODEL_MAP["haiku"]


def resolve_model(name_or_id: str | None = None) -> str:
    """Full model ID for an alias or ID, defaulting to the configured memory model.

    Unknown aliases fall back to Haiku rather than failing the extraction call.
    """
    name = name_or_id or settings.default_memory_model
    if name in MODEL_MAP:
        return MODEL_MAP[name]
    if name.startswith("claude-"):
        return name
    logger.warning("Unknown model %r; using %s", name, DEFAULT_MODEL)
    return DEFAULT_MODEL
