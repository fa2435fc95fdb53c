"""Async Claude API client for single-shot extraction calls."""

from __future__ import annotations

import logging
from typing import Any

import anthropic

from cortex.config import settings
from cortex.llm.models import resolve_model

logger = logging.getLogger(__name__)

_client: anthropic.AsyncAnthropic | None = None


def _get_client() -> anthropic.AsyncAnthropic:
    """Lazily initialize the Anthropic client."""
    global _client  # noqa: PLW0603
    if _client is None:
        _client = anthropic.AsyncAnthropic(api_key=settings.anthropic_api_key)
    return _client


async def complete_text(
    messages: list[dict[str, Any]],
    *,
    system: str | list[dict[str, Any]] | None = None,
    model: str | None = None,
    max_tokens: int = 1024,
    temperature: float | None = None,
) -> str:
    """Single-shot Claude call without tools or streaming.

    Used for isolated extraction tasks (entities, facts, topic, summary).
    Returns an empty string when the response carries no text block.
    """
    client = _get_client()
    kwargs: dict[str, Any] = {
        "model": resolve_model(model),
        "max_tokens": max_tokens,
        "messages": messages,
    }
    if system is not None:
        kwargs["system"] = system
    if temperature is not None:
        kwargs["temperature"] = temperature
    response = await client.messages.create(**kwargs)
    if not response.content:
        logger.debug("Response had no content blocks")
        return ""
    return response.content[0].text
