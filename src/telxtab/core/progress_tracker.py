"""Video lesson progress tracking.

Responsibilities:
- Convert player position into a whole percent watched
- Persist progress only on step boundaries (every 5% by default) or at 100%
- Keep progress monotonic: a lower percent never overwrites a higher one
- Award the lesson completion XP at most once per user and lesson

The completion bonus is claimed by flipping ``user_progress.xp_awarded``
from 0 to 1 in the same transaction that increments the profile XP, so
two "ended" events racing each other award XP once.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import structlog

from telxtab.config.app_config import load_app_config
from telxtab.db import courses_repository, profiles_repository, progress_repository
from telxtab.db.database import get_db
from telxtab.db.progress_repository import ProgressRecord

logger = structlog.get_logger(__name__)


class ProgressError(Exception):
    """Invalid progress report."""

    pass


@dataclass
class ProgressUpdate:
    """Outcome of a progress report."""

    lesson_id: str
    percent: int
    written: bool
    completed: bool
    xp_awarded: bool = False
    xp_total: int | None = None


def compute_percent(current_time: float, duration: float) -> int:
    """Whole percent of the video watched, clamped to 0..100.

    Raises:
        ProgressError: If duration is not positive or either value is not finite
    """
    if not (math.isfinite(current_time) and math.isfinite(duration)):
        raise ProgressError("Player time and duration must be finite numbers")
    if duration <= 0:
        raise ProgressError("Video duration must be positive")
    percent = round(current_time / duration * 100)
    return max(0, min(100, percent))


def should_persist(percent: int, step: int | None = None) -> bool:
    """True on step boundaries and at 100%."""
    if step is None:
        step = load_app_config().rewards.progress_step_percent
    return percent == 100 or percent % step == 0


def _validate_lesson(course_id: str, lesson_id: str) -> None:
    lesson = courses_repository.get_lesson(lesson_id)
    if lesson is None or lesson.course_id != course_id:
        raise ProgressError(f"Lesson '{lesson_id}' not found in course '{course_id}'")


def record_progress(user_id: str, course_id: str, lesson_id: str, percent: int) -> ProgressUpdate:
    """Persist a progress report if it crosses a step boundary.

    Args:
        user_id: Viewer
        course_id: Course of the lesson
        lesson_id: Lesson being watched
        percent: Whole percent watched (0-100)

    Returns:
        ProgressUpdate with ``written`` telling whether the row changed.

    Raises:
        ProgressError: If percent is out of range or the lesson doesn't exist
    """
    if not 0 <= percent <= 100:
        raise ProgressError(f"Progress must be between 0 and 100, got {percent}")
    _validate_lesson(course_id, lesson_id)

    if not should_persist(percent):
        return ProgressUpdate(lesson_id=lesson_id, percent=percent, written=False, completed=False)

    completed = percent == 100
    with get_db() as conn:
        existing = progress_repository.get_progress(user_id, lesson_id, conn=conn)
        if existing is None:
            progress_repository.insert_progress(
                conn, user_id, course_id, lesson_id, percent, completed
            )
            written = True
        else:
            written = progress_repository.raise_progress(
                conn, user_id, lesson_id, percent, completed
            )
            completed = completed or existing.completed

    if written:
        logger.debug(
            "progress.updated",
            user_id=user_id,
            lesson_id=lesson_id,
            percent=percent,
            completed=completed,
        )

    return ProgressUpdate(
        lesson_id=lesson_id,
        percent=percent,
        written=written,
        completed=completed,
    )


def complete_lesson(user_id: str, course_id: str, lesson_id: str) -> ProgressUpdate:
    """Handle the end of a video: record 100% and award XP once.

    Returns:
        ProgressUpdate; ``xp_awarded`` is True only for the first call.
    """
    update = record_progress(user_id, course_id, lesson_id, 100)
    reward = load_app_config().rewards.lesson_completion_xp

    with get_db() as conn:
        claimed = progress_repository.claim_xp_award(conn, user_id, lesson_id)
        if claimed:
            xp_total = profiles_repository.increment_xp(user_id, reward, conn=conn)
        else:
            row = conn.execute("SELECT xp FROM profiles WHERE id = ?", (user_id,)).fetchone()
            xp_total = int(row["xp"]) if row else 0

    if claimed:
        logger.info("progress.lesson_completed", user_id=user_id, lesson_id=lesson_id, xp=reward)

    update.completed = True
    update.xp_awarded = claimed
    update.xp_total = xp_total
    return update


def get_course_progress(user_id: str, course_id: str) -> list[ProgressRecord]:
    """Progress rows of one user in one course, most recent first."""
    return progress_repository.list_course_progress(user_id, course_id)
