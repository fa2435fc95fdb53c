"""Data models for learned autonomy."""

from __future__ import annotations

from enum import Enum

from pydantic import AwareDatetime, BaseModel, Field, model_validator

from cortex.timeutil import utcnow

AUTO_ENABLE_CONFIDENCE = 80
AUTO_ENABLE_APPROVALS = 5


class ResultStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    PENDING = "pending"


class AutonomyPreference(BaseModel):
    """Learned track record for one (workspace, user, tool)."""

    workspace_id: str
    user_id: str
    tool_name: str
    confidence_score: int = Field(default=0, ge=0, le=100)
    approval_count: int = Field(default=0, ge=0)
    rejection_count: int = Field(default=0, ge=0)
    auto_execute_enabled: bool = False
    last_updated: AwareDatetime = Field(default_factory=utcnow)

    @model_validator(mode="after")
    def _check_enabled(self) -> AutonomyPreference:
        if self.auto_execute_enabled and not can_auto_enable(
            self.confidence_score, self.approval_count
        ):
            msg = "auto_execute_enabled requires confidence >= 80 and 5+ approvals"
            raise ValueError(msg)
        return self


def can_auto_enable(confidence: int, approvals: int) -> bool:
    return confidence >= AUTO_ENABLE_CONFIDENCE and approvals >= AUTO_ENABLE_APPROVALS


class ActionRecord(BaseModel):
    """Immutable audit entry for one executed (or proposed) action."""

    workspace_id: str
    user_id: str
    tool_name: str
    was_automatic: bool
    user_approved: bool | None = None
    execution_time_ms: int = Field(default=0, ge=0)
    result_status: ResultStatus = ResultStatus.SUCCESS
    recorded_at: AwareDatetime = Field(default_factory=utcnow)


class AutonomyDecision(BaseModel):
    """Answer to "may this action run unattended?"."""

    auto_execute: bool
    confidence: int
    reason: str
    # Confident enough to offer the user an opt-in, but not yet enabled.
    eligible_to_enable: bool = False


class ToolConfidence(BaseModel):
    tool_name: str
    confidence: int


class AutonomySummary(BaseModel):
    total_actions: int = 0
    auto_enabled_count: int = 0
    average_confidence: int = 0
    top_auto_tools: list[ToolConfidence] = Field(default_factory=list)
