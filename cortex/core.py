"""Entry points for the assistant turn loop.

The turn loop talks to one :class:`CognitiveCore`: ingest each turn, render
memory into the prompt, ask before tool calls, report outcomes afterwards.
Session memory and autonomy share only the state store.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from cortex.autonomy.engine import AutonomyEngine
from cortex.autonomy.models import ResultStatus
from cortex.autonomy.risk import RiskCatalog
from cortex.memory.context import build_session_context
from cortex.memory.session import SessionMemoryManager
from cortex.state import create_state_store

if TYPE_CHECKING:
    from collections.abc import Sequence

    from cortex.autonomy.models import AutonomyDecision, AutonomyPreference, AutonomySummary
    from cortex.memory.extractor import Extractor
    from cortex.memory.models import SessionMemory, Turn
    from cortex.state.store import StateStore

logger = logging.getLogger(__name__)


class CognitiveCore:
    """Memory manager and autonomy engine wired to one state store.

    Get the shared instance via ``CognitiveCore.get()``, or construct one
    directly with explicit collaborators (tests, embedded use).
    """

    _instance: CognitiveCore | None = None

    def __init__(
        self,
        store: StateStore | None = None,
        *,
        extractor: Extractor | None = None,
        catalog: RiskCatalog | None = None,
    ) -> None:
        self.store = store if store is not None else create_state_store()
        self.memory = SessionMemoryManager(self.store, extractor)
        self.autonomy = AutonomyEngine(self.store, catalog)

    @classmethod
    def get(cls) -> CognitiveCore:
        """Return the shared CognitiveCore instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def _reset(cls) -> None:
        """Reset the singleton (for testing)."""
        cls._instance = None

    # -- Memory ----------------------------------------------------------------

    async def start_conversation(
        self, workspace_id: str, user_id: str, conversation_id: str
    ) -> SessionMemory:
        return await self.memory.initialize(workspace_id, user_id, conversation_id)

    async def ingest_turn(
        self,
        conversation_id: str,
        new_turn: Turn,
        all_turns: Sequence[Turn],
        *,
        workspace_id: str = "",
        user_id: str = "",
    ) -> SessionMemory:
        return await self.memory.ingest(
            conversation_id, new_turn, all_turns, workspace_id=workspace_id, user_id=user_id
        )

    @staticmethod
    def render_context(memory: SessionMemory) -> str:
        return build_session_context(memory)

    async def reset_conversation(self, conversation_id: str) -> None:
        await self.memory.clear(conversation_id)

    # -- Autonomy --------------------------------------------------------------

    async def decide(self, tool_name: str, user_id: str, workspace_id: str) -> AutonomyDecision:
        decision = await self.autonomy.should_auto_execute(tool_name, user_id, workspace_id)
        logger.debug("Autonomy decision for %s: %s", tool_name, decision.reason)
        return decision

    async def record_outcome(
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
        return await self.autonomy.record_action(
            workspace_id,
            user_id,
            tool_name,
            was_automatic=was_automatic,
            user_approved=user_approved,
            execution_time_ms=execution_time_ms,
            result_status=result_status,
        )

    async def get_summary(self, workspace_id: str, user_id: str) -> AutonomySummary:
        return await self.autonomy.get_summary(workspace_id, user_id)
