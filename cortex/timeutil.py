"""UTC time helpers."""

from datetime import UTC, datetime

SECONDS_PER_DAY = 24 * 60 * 60


def utcnow() -> datetime:
    return datetime.now(UTC)


def whole_days_between(earlier: datetime, later: datetime) -> int:
    """Number of complete days from *earlier* to *later* (never negative)."""
    return max(0, int((later - earlier).total_seconds() // SECONDS_PER_DAY))
