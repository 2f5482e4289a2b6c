"""Daily login streaks."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import structlog

from telxtab.db import progress_repository
from telxtab.db.database import utc_now
from telxtab.db.progress_repository import StreakRecord

logger = structlog.get_logger(__name__)


def _day_of(timestamp: str) -> date:
    return datetime.fromisoformat(timestamp).astimezone(timezone.utc).date()


def check_in(user_id: str, today: date | None = None) -> StreakRecord:
    """Register activity for today and return the updated streak.

    Same day keeps the streak, the day after extends it, any longer gap
    resets it to 1. The longest streak is kept as a running maximum.
    """
    if today is None:
        today = datetime.now(timezone.utc).date()

    now = datetime.combine(today, datetime.now(timezone.utc).time(), tzinfo=timezone.utc).isoformat()
    record = progress_repository.get_streak(user_id)

    if record is None:
        record = StreakRecord(
            user_id=user_id,
            current_streak=1,
            longest_streak=1,
            created_at=utc_now(),
            updated_at=now,
        )
        progress_repository.save_streak(record)
        logger.info("streaks.started", user_id=user_id)
        return record

    last_day = _day_of(record.updated_at)
    if last_day == today:
        return record

    if last_day == today - timedelta(days=1):
        record.current_streak += 1
    else:
        record.current_streak = 1

    record.longest_streak = max(record.longest_streak, record.current_streak)
    record.updated_at = now
    progress_repository.save_streak(record)
    return record
