"""Risk catalog — static tier and default confidence per actionable tool.

Loaded once at startup from ``config/RISK_CATALOG.toml``::

    [tools.create_task]
    tier = "low"
    default_confidence = 80

When the file is missing or malformed the built-in catalog is used.
"""

from __future__ import annotations

import logging
import tomllib
from enum import Enum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field, ValidationError

from cortex.config import settings

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping
    from pathlib import Path

logger = logging.getLogger(__name__)


class RiskTier(str, Enum):
    LOW = "low"  # read-only or trivially reversible
    MEDIUM = "medium"  # ask first, learn over time
    HIGH = "high"  # irreversible external effect, always confirm


class RiskLevel(BaseModel):
    """Catalog entry for one tool."""

    tool_name: str
    tier: RiskTier
    default_confidence: int = Field(default=0, ge=0, le=100)


_DEFAULT_TOOLS: dict[str, tuple[RiskTier, int]] = {
    "create_task": (RiskTier.LOW, 80),
    "prioritize_tasks": (RiskTier.LOW, 75),
    "batch_similar_tasks": (RiskTier.LOW, 70),
    "organize_documents": (RiskTier.LOW, 70),
    "auto_categorize_expenses": (RiskTier.LOW, 75),
    "flag_anomalies": (RiskTier.LOW, 70),
    "project_cash_flow": (RiskTier.LOW, 70),
    "get_pipeline_summary": (RiskTier.LOW, 90),
    "get_campaign_stats": (RiskTier.LOW, 90),
    "search_web": (RiskTier.LOW, 85),
    "create_lead": (RiskTier.MEDIUM, 0),
    "update_lead_stage": (RiskTier.MEDIUM, 0),
    "create_contact": (RiskTier.MEDIUM, 0),
    "create_campaign": (RiskTier.MEDIUM, 0),
    "schedule_meeting": (RiskTier.MEDIUM, 0),
    "draft_proposal": (RiskTier.MEDIUM, 0),
    "auto_qualify_lead": (RiskTier.MEDIUM, 0),
    "create_follow_up_sequence": (RiskTier.MEDIUM, 0),
    "optimize_campaign": (RiskTier.MEDIUM, 0),
    "segment_audience": (RiskTier.MEDIUM, 0),
    "schedule_social_posts": (RiskTier.MEDIUM, 0),
    "book_meeting_rooms": (RiskTier.MEDIUM, 0),
    "send_email": (RiskTier.HIGH, 0),
    "schedule_demo": (RiskTier.HIGH, 0),
    "send_payment_reminders": (RiskTier.HIGH, 0),
    "send_invoice_reminder": (RiskTier.HIGH, 0),
}


class RiskCatalog:
    """Read-only mapping of tool name → :class:`RiskLevel`.

    Constructed explicitly and handed to the autonomy engine, so tests can
    pass their own catalogs.
    """

    def __init__(self, levels: Mapping[str, RiskLevel]) -> None:
        self._levels = dict(levels)

    def get(self, tool_name: str) -> RiskLevel | None:
        return self._levels.get(tool_name)

    def __contains__(self, tool_name: object) -> bool:
        return tool_name in self._levels

    def __iter__(self) -> Iterator[RiskLevel]:
        return iter(self._levels.values())

    def __len__(self) -> int:
        return len(self._levels)

    @classmethod
    def from_dict(cls, tools: Mapping[str, Any]) -> RiskCatalog:
        """Build from ``{name: {"tier": ..., "default_confidence": ...}}``.

        Invalid entries are skipped with a warning.
        """
        levels: dict[str, RiskLevel] = {}
        for name, entry in tools.items():
            if not isinstance(entry, dict):
                logger.warning("Ignoring risk entry %r: expected a table", name)
                continue
            try:
                levels[name] = RiskLevel(tool_name=name, **entry)
            except (ValidationError, TypeError):
                logger.warning("Ignoring invalid risk entry %r: %s", name, entry)
        return cls(levels)

    @classmethod
    def default(cls) -> RiskCatalog:
        return cls(
            {
                name: RiskLevel(tool_name=name, tier=tier, default_confidence=conf)
                for name, (tier, conf) in _DEFAULT_TOOLS.items()
            }
        )

    @classmethod
    def load(cls, path: Path | None = None) -> RiskCatalog:
        """Load from TOML, falling back to the built-in catalog."""
        path = path or settings.risk_catalog_path
        if not path.exists():
            logger.info("No risk catalog at %s; using built-in defaults", path)
            return cls.default()
        try:
            with path.open("rb") as fh:
                data = tomllib.load(fh)
        except (OSError, tomllib.TOMLDecodeError):
            logger.warning("Failed to read risk catalog %s; using built-in defaults", path)
            return cls.default()

        tools = data.get("tools")
        if not isinstance(tools, dict):
            logger.warning("Risk catalog %s has no [tools] table; using built-in defaults", path)
            return cls.default()
        catalog = cls.from_dict(tools)
        logger.info("Loaded %d risk entries from %s", len(catalog), path)
        return catalog
