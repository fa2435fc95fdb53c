"""Autonomy engine — decide whether a tool call may run unattended.

Decisions combine the static risk tier of the tool with the learned
per-user preference. Outcomes reported after each action feed the
learning rules in :mod:`cortex.autonomy.learning`.

Nothing here raises into the assistant turn: store failures are logged,
and a corrupt preference row is treated as if there were no history.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pydantic import ValidationError

from cortex.autonomy.learning import apply_outcome
from cortex.autonomy.models import (
    AUTO_ENABLE_CONFIDENCE,
    ActionRecord,
    AutonomyDecision,
    AutonomyPreference,
    AutonomySummary,
    ResultStatus,
    ToolConfidence,
)
from cortex.autonomy.risk import RiskCatalog, RiskTier
from cortex.errors import StateStoreError
from cortex.state.store import (
    history_key,
    preference_key,
    preference_prefix,
    tool_from_preference_key,
)
from cortex.timeutil import utcnow

if TYPE_CHECKING:
    from cortex.state.store import StateStore

logger = logging.getLogger(__name__)

OFFER_ENABLE_CONFIDENCE = 60
TOP_AUTO_TOOLS = 5


class AutonomyEngine:
    """Owns per-(workspace, user, tool) autonomy preferences."""

    def __init__(self, store: StateStore, catalog: RiskCatalog | None = None) -> None:
        self._store = store
        self._catalog = catalog if catalog is not None else RiskCatalog.load()

    @property
    def catalog(self) -> RiskCatalog:
        return self._catalog

    # -- Persistence -----------------------------------------------------------

    async def get_preference(
        self, workspace_id: str, user_id: str, tool_name: str
    ) -> AutonomyPreference | None:
        """Load a stored preference, or None if absent or unreadable."""
        key = preference_key(workspace_id, user_id, tool_name)
        try:
            data = await self._store.get(key)
        except StateStoreError:
            logger.warning("Failed to load autonomy preference %s", key, exc_info=True)
            return None
        if not data:
            return None
        try:
            pref = AutonomyPreference.model_validate(data)
        except ValidationError:
            logger.warning("Discarding corrupt autonomy preference %s", key)
            return None
        if (pref.workspace_id, pref.user_id, pref.tool_name) != (
            workspace_id,
            user_id,
            tool_name,
        ):
            logger.warning("Ignoring autonomy preference %s stored for another owner", key)
            return None
        return pref

    async def _save_preference(self, preference: AutonomyPreference) -> None:
        key = preference_key(preference.workspace_id, preference.user_id, preference.tool_name)
        try:
            # Preferences live for the lifetime of the account.
            await self._store.set(key, preference.model_dump(mode="json"), ttl_seconds=None)
        except StateStoreError:
            logger.exception("Failed to save autonomy preference %s", key)

    # -- Decision --------------------------------------------------------------

    async def should_auto_execute(
        self, tool_name: str, user_id: str, workspace_id: str
    ) -> AutonomyDecision:
        """Decide whether *tool_name* may run without asking the user."""
        risk = self._catalog.get(tool_name)

        if risk is None:
            return AutonomyDecision(
                auto_execute=False,
                confidence=0,
                reason="Unknown tool - requires confirmation",
            )

        if risk.tier == RiskTier.LOW:
            return AutonomyDecision(
                auto_execute=True,
                confidence=risk.default_confidence,
                reason="Low-risk action - safe to auto-execute",
            )

        if risk.tier == RiskTier.HIGH:
            return AutonomyDecision(
                auto_execute=False,
                confidence=0,
                reason="High-risk action - requires confirmation",
            )

        preference = await self.get_preference(workspace_id, user_id, tool_name)
        if preference is None:
            return AutonomyDecision(
                auto_execute=False,
                confidence=0,
                reason="No learning history - asking for confirmation",
            )

        score = preference.confidence_score
        if preference.auto_execute_enabled and score >= AUTO_ENABLE_CONFIDENCE:
            return AutonomyDecision(
                auto_execute=True,
                confidence=score,
                reason=(
                    f"Learned preference: {preference.approval_count} approvals, "
                    f"{score}% confidence"
                ),
            )

        if score >= OFFER_ENABLE_CONFIDENCE and not preference.auto_execute_enabled:
            return AutonomyDecision(
                auto_execute=False,
                confidence=score,
                reason=(
                    f"High confidence ({score}%) but auto-execute not enabled - "
                    "offer to enable"
                ),
                eligible_to_enable=True,
            )

        return AutonomyDecision(
            auto_execute=False,
            confidence=score,
            reason=f"Low confidence ({score}%) - asking for confirmation",
        )

    # -- Learning --------------------------------------------------------------

    async def record_action(
        self,
        workspace_id: str,
        user_id: str,
        tool_name: str,
        *,
        was_automatic: bool,
        user_approved: bool | None,
        execution_time_ms: int = 0,
        result_status: ResultStatus | str = ResultStatus.SUCCESS,
    ) -> AutonomyPreference | None:
        """Append an audit entry and learn from explicit approval or rejection.

        Returns the updated preference when feedback was given, else None. A
        malformed audit entry is logged and skipped; the feedback still counts.
        """
        record: ActionRecord | None
        try:
            record = ActionRecord(
                workspace_id=workspace_id,
                user_id=user_id,
                tool_name=tool_name,
                was_automatic=was_automatic,
                user_approved=user_approved,
                execution_time_ms=max(0, int(execution_time_ms)),
                result_status=ResultStatus(result_status),
            )
        except (TypeError, ValueError, ValidationError):
            logger.warning(
                "Invalid action record for %s (status=%r, time=%r); history entry skipped",
                tool_name,
                result_status,
                execution_time_ms,
            )
            record = None

        if record is not None:
            try:
                await self._store.append(
                    history_key(workspace_id, user_id), record.model_dump(mode="json")
                )
            except StateStoreError:
                logger.exception("Failed to append action history for %s", tool_name)

        if user_approved is None:
            return None
        return await self._update_learning(workspace_id, user_id, tool_name, bool(user_approved))

    async def _update_learning(
        self, workspace_id: str, user_id: str, tool_name: str, approved: bool
    ) -> AutonomyPreference:
        existing = await self.get_preference(workspace_id, user_id, tool_name)
        risk = self._catalog.get(tool_name)
        updated = apply_outcome(
            existing,
            workspace_id=workspace_id,
            user_id=user_id,
            tool_name=tool_name,
            approved=approved,
            now=utcnow(),
            default_confidence=risk.default_confidence if risk else 0,
        )
        newly_enabled = updated.auto_execute_enabled and not (
            existing is not None and existing.auto_execute_enabled
        )
        if newly_enabled:
            logger.info(
                "Auto-execute enabled for %s (user %s, confidence %d%%)",
                tool_name,
                user_id,
                updated.confidence_score,
            )
        await self._save_preference(updated)
        return updated

    # -- Reporting -------------------------------------------------------------

    async def list_preferences(
        self, workspace_id: str, user_id: str
    ) -> list[AutonomyPreference]:
        """All readable preferences for a user, in tool-name order."""
        try:
            keys = await self._store.keys(preference_prefix(workspace_id, user_id))
        except StateStoreError:
            logger.warning("Failed to list autonomy preferences for %s", user_id, exc_info=True)
            return []

        prefix = preference_prefix(workspace_id, user_id)
        preferences = []
        for key in keys:
            tool_name = tool_from_preference_key(key, prefix)
            pref = await self.get_preference(workspace_id, user_id, tool_name)
            if pref is not None:
                preferences.append(pref)
        return preferences

    async def get_summary(self, workspace_id: str, user_id: str) -> AutonomySummary:
        """Aggregate a user's preferences; read-only."""
        preferences = await self.list_preferences(workspace_id, user_id)
        if not preferences:
            return AutonomySummary()

        enabled = [p for p in preferences if p.auto_execute_enabled]
        average = sum(p.confidence_score for p in preferences) / len(preferences)
        top = sorted(enabled, key=lambda p: (-p.confidence_score, p.tool_name))
        return AutonomySummary(
            total_actions=len(preferences),
            auto_enabled_count=len(enabled),
            average_confidence=int(average + 0.5),
            top_auto_tools=[
                ToolConfidence(tool_name=p.tool_name, confidence=p.confidence_score)
                for p in top[:TOP_AUTO_TOOLS]
            ],
        )

    async def get_history(
        self, workspace_id: str, user_id: str, limit: int = 50
    ) -> list[ActionRecord]:
        """Most recent action records for a user, newest first."""
        try:
            rows = await self._store.read_log(history_key(workspace_id, user_id), limit=limit)
        except StateStoreError:
            logger.warning("Failed to read action history for %s", user_id, exc_info=True)
            return []
        records = []
        for row in rows:
            try:
                records.append(ActionRecord.model_validate(row))
            except ValidationError:
                logger.debug("Skipping malformed action record: %s", row)
        return records
