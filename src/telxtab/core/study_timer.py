"""Study time accounting."""

from __future__ import annotations

import structlog

from telxtab.db import profiles_repository

logger = structlog.get_logger(__name__)

# Upper bound for a single report
MAX_REPORT_SECONDS = 24 * 60 * 60


class StudyTimeError(Exception):
    pass


def record_study_time(user_id: str, seconds: int) -> int:
    """Add elapsed study time to the user's total.

    Reports above 24 hours are clamped.

    Returns:
        New total in seconds.

    Raises:
        StudyTimeError: If seconds is negative
    """
    if seconds < 0:
        raise StudyTimeError("Study time cannot be negative")
    seconds = min(seconds, MAX_REPORT_SECONDS)
    total = profiles_repository.add_study_seconds(user_id, seconds)
    logger.debug("study_time.recorded", user_id=user_id, seconds=seconds, total=total)
    return total


def format_duration(seconds: int) -> dict[str, int | str]:
    hours, remainder = divmod(max(0, int(seconds)), 3600)
    minutes, secs = divmod(remainder, 60)
    return {
        "hours": hours,
        "minutes": minutes,
        "seconds": secs,
        "formatted": f"{hours:02d}:{minutes:02d}:{secs:02d}",
    }


def study_hours(seconds: int) -> float:
    """Seconds as hours, one decimal."""
    return round(seconds / 3600, 1)
