"""Confidence arithmetic for learned autonomy.

Everything here is pure: counts and elapsed days in, score out. Rules are
applied in a fixed order, and later rules override earlier ones:

1. ratio     – ``round(100 * approvals / (approvals + rejections))``
2. boost     – an approval with 3+ approvals and no rejections adds 15, capped at 90
3. decay     – after 30+ idle days, each full 30 days forgives one rejection
4. reset     – a rejection that leaves 2+ rejections, no approvals, and came
               within 7 days of the last one forces 0
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

from cortex.autonomy.models import AutonomyPreference, can_auto_enable
from cortex.timeutil import whole_days_between

if TYPE_CHECKING:
    from datetime import datetime

FIRST_APPROVAL_CONFIDENCE = 20
FIRST_REJECTION_CONFIDENCE = 0

BOOST_MIN_APPROVALS = 3
BOOST_AMOUNT = 15
BOOST_CAP = 90

DECAY_AFTER_DAYS = 30
DECAY_PERIOD_DAYS = 30

RESET_MIN_REJECTIONS = 2
RESET_WITHIN_DAYS = 7


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _ratio(approvals: int, rejections: int, default: int) -> int:
    total = approvals + rejections
    if total <= 0:
        return default
    return _round_half_up(100 * approvals / total)


def compute_confidence(
    approvals: int,
    rejections: int,
    *,
    approved: bool,
    days_since_update: int,
    default_confidence: int = 0,
) -> int:
    """Return the new confidence score (0-100) after one outcome.

    *approvals* and *rejections* already include the outcome being applied.
    *days_since_update* is measured from the preference's previous update.
    """
    confidence = _ratio(approvals, rejections, default_confidence)

    if approved and approvals >= BOOST_MIN_APPROVALS and rejections == 0:
        confidence = min(BOOST_CAP, confidence + BOOST_AMOUNT)

    if days_since_update > DECAY_AFTER_DAYS and rejections > 0:
        forgiven = days_since_update // DECAY_PERIOD_DAYS
        effective_rejections = max(0, rejections - forgiven)
        confidence = _ratio(approvals, effective_rejections, default_confidence)

    if (
        not approved
        and rejections >= RESET_MIN_REJECTIONS
        and approvals == 0
        and days_since_update < RESET_WITHIN_DAYS
    ):
        confidence = 0

    return max(0, min(100, confidence))


def apply_outcome(
    preference: AutonomyPreference | None,
    *,
    workspace_id: str,
    user_id: str,
    tool_name: str,
    approved: bool,
    now: datetime,
    default_confidence: int = 0,
) -> AutonomyPreference:
    """Return the preference updated by one approval or rejection.

    A missing preference is created from this first outcome alone.
    """
    if preference is None:
        return AutonomyPreference(
            workspace_id=workspace_id,
            user_id=user_id,
            tool_name=tool_name,
            confidence_score=(
                FIRST_APPROVAL_CONFIDENCE if approved else FIRST_REJECTION_CONFIDENCE
            ),
            approval_count=1 if approved else 0,
            rejection_count=0 if approved else 1,
            auto_execute_enabled=False,
            last_updated=now,
        )

    approvals = preference.approval_count + (1 if approved else 0)
    rejections = preference.rejection_count + (0 if approved else 1)
    confidence = compute_confidence(
        approvals,
        rejections,
        approved=approved,
        days_since_update=whole_days_between(preference.last_updated, now),
        default_confidence=default_confidence,
    )
    return preference.model_copy(
        update={
            "confidence_score": confidence,
            "approval_count": approvals,
            "rejection_count": rejections,
            "auto_execute_enabled": can_auto_enable(confidence, approvals),
            "last_updated": now,
        }
    )
