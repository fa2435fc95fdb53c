"""Learned autonomy — when the assistant may act without asking."""

from cortex.autonomy.engine import AutonomyEngine
from cortex.autonomy.learning import apply_outcome, compute_confidence
from cortex.autonomy.models import (
    ActionRecord,
    AutonomyDecision,
    AutonomyPreference,
    AutonomySummary,
    ResultStatus,
    ToolConfidence,
)
from cortex.autonomy.risk import RiskCatalog, RiskLevel, RiskTier

__all__ = [
    "ActionRecord",
    "AutonomyDecision",
    "AutonomyEngine",
    "AutonomyPreference",
    "AutonomySummary",
    "ResultStatus",
    "RiskCatalog",
    "RiskLevel",
    "RiskTier",
    "ToolConfidence",
    "apply_outcome",
    "compute_confidence",
]
