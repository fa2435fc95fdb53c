"""Anthropic client wrapper used by the extraction adapter."""

from cortex.llm.client import complete_text
from cortex.llm.models import resolve_model

__all__ = ["complete_text", "resolve_model"]
