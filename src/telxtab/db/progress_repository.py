"""Repository functions for user_progress, exercise_attempts and streaks tables.

Functions that take an optional ``conn`` join an outer transaction when
one is passed, so core modules can combine several writes atomically.
"""

from __future__ import annotations

import sqlite3
from dataclasses import asdict, dataclass
from typing import Any

import structlog

from telxtab.db.database import get_db, new_id, utc_now

logger = structlog.get_logger(__name__)


@dataclass
class ProgressRecord:
    """Watch progress of one user on one lesson."""

    id: str
    user_id: str
    course_id: str
    lesson_id: str
    progress_percent: int
    completed: bool
    xp_awarded: bool
    last_watched_at: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class StreakRecord:
    user_id: str
    current_streak: int
    longest_streak: int
    created_at: str
    updated_at: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


# =============================================================================
# PROGRESS
# =============================================================================


def get_progress(user_id: str, lesson_id: str, conn: sqlite3.Connection | None = None) -> ProgressRecord | None:
    if conn is None:
        with get_db() as own_conn:
            return get_progress(user_id, lesson_id, conn=own_conn)

    row = conn.execute(
        "SELECT * FROM user_progress WHERE user_id = ? AND lesson_id = ?",
        (user_id, lesson_id),
    ).fetchone()
    return _row_to_progress(row) if row else None


def insert_progress(
    conn: sqlite3.Connection,
    user_id: str,
    course_id: str,
    lesson_id: str,
    percent: int,
    completed: bool,
) -> None:
    conn.execute(
        """
        INSERT INTO user_progress (
            id, user_id, course_id, lesson_id, progress_percent,
            completed, xp_awarded, last_watched_at
        ) VALUES (?, ?, ?, ?, ?, ?, 0, ?)
        """,
        (new_id(), user_id, course_id, lesson_id, percent, int(completed), utc_now()),
    )


def raise_progress(
    conn: sqlite3.Connection,
    user_id: str,
    lesson_id: str,
    percent: int,
    completed: bool,
) -> bool:
    """Update progress only if ``percent`` is higher than what is stored.

    ``completed`` is OR-ed into the stored flag, so it never reverts.
    Returns True if a row changed.
    """
    cursor = conn.execute(
        """
        UPDATE user_progress
        SET progress_percent = ?,
            completed = MAX(completed, ?),
            last_watched_at = ?
        WHERE user_id = ? AND lesson_id = ? AND progress_percent < ?
        """,
        (percent, int(completed), utc_now(), user_id, lesson_id, percent),
    )
    return cursor.rowcount > 0


def mark_completed(conn: sqlite3.Connection, user_id: str, course_id: str, lesson_id: str) -> None:
    """Upsert a progress row as completed without touching the percent."""
    conn.execute(
        """
        INSERT INTO user_progress (
            id, user_id, course_id, lesson_id, progress_percent,
            completed, xp_awarded, last_watched_at
        ) VALUES (?, ?, ?, ?, 0, 1, 0, ?)
        ON CONFLICT(user_id, lesson_id)
        DO UPDATE SET completed = 1, last_watched_at = excluded.last_watched_at
        """,
        (new_id(), user_id, course_id, lesson_id, utc_now()),
    )


def claim_xp_award(conn: sqlite3.Connection, user_id: str, lesson_id: str) -> bool:
    """Flip xp_awarded from 0 to 1. Only the first caller gets True."""
    cursor = conn.execute(
        """
        UPDATE user_progress SET xp_awarded = 1
        WHERE user_id = ? AND lesson_id = ? AND xp_awarded = 0
        """,
        (user_id, lesson_id),
    )
    return cursor.rowcount > 0


def list_course_progress(user_id: str, course_id: str) -> list[ProgressRecord]:
    with get_db() as conn:
        rows = conn.execute(
            """
            SELECT * FROM user_progress
            WHERE user_id = ? AND course_id = ?
            ORDER BY last_watched_at DESC
            """,
            (user_id, course_id),
        ).fetchall()
    return [_row_to_progress(row) for row in rows]


def course_completion_rows(user_id: str) -> list[dict[str, Any]]:
    """Per-course lesson totals and completed counts for one user."""
    with get_db() as conn:
        rows = conn.execute(
            """
            SELECT c.id AS course_id,
                   c.title AS course_title,
                   c.language AS language,
                   c.level AS level,
                   (SELECT COUNT(*) FROM lessons l WHERE l.course_id = c.id) AS total_lessons,
                   (SELECT COUNT(*) FROM user_progress p
                     WHERE p.course_id = c.id AND p.user_id = ? AND p.completed = 1
                   ) AS lessons_completed,
                   (SELECT MAX(p.last_watched_at) FROM user_progress p
                     WHERE p.course_id = c.id AND p.user_id = ? AND p.completed = 1
                   ) AS completed_at
            FROM courses c
            ORDER BY c.title
            """,
            (user_id, user_id),
        ).fetchall()
    return [dict(row) for row in rows]


def recent_progress(user_id: str, limit: int = 5) -> list[dict[str, Any]]:
    """Latest progress rows joined with lesson and course details."""
    with get_db() as conn:
        rows = conn.execute(
            """
            SELECT p.*, l.title AS lesson_title, l.duration AS lesson_duration,
                   c.title AS course_title, c.language AS course_language
            FROM user_progress p
            JOIN lessons l ON l.id = p.lesson_id
            JOIN courses c ON c.id = p.course_id
            WHERE p.user_id = ?
            ORDER BY p.last_watched_at DESC
            LIMIT ?
            """,
            (user_id, limit),
        ).fetchall()
    return [dict(row) for row in rows]


# =============================================================================
# EXERCISE ATTEMPTS
# =============================================================================


def insert_attempt(
    conn: sqlite3.Connection,
    user_id: str,
    exercise_id: str,
    attempt: str,
    is_correct: bool,
) -> str:
    attempt_id = new_id()
    conn.execute(
        """
        INSERT INTO exercise_attempts (id, user_id, exercise_id, attempt, is_correct, created_at)
        VALUES (?, ?, ?, ?, ?, ?)
        """,
        (attempt_id, user_id, exercise_id, attempt, int(is_correct), utc_now()),
    )
    return attempt_id


def count_unsolved_exercises(conn: sqlite3.Connection, user_id: str, lesson_id: str) -> int:
    """Exercises of a lesson without any correct attempt by the user."""
    row = conn.execute(
        """
        SELECT COUNT(*) FROM exercises e
        WHERE e.lesson_id = ?
          AND NOT EXISTS (
              SELECT 1 FROM exercise_attempts a
              WHERE a.exercise_id = e.id AND a.user_id = ? AND a.is_correct = 1
          )
        """,
        (lesson_id, user_id),
    ).fetchone()
    return int(row[0])


def list_attempts(user_id: str, exercise_id: str) -> list[dict[str, Any]]:
    with get_db() as conn:
        rows = conn.execute(
            """
            SELECT * FROM exercise_attempts
            WHERE user_id = ? AND exercise_id = ?
            ORDER BY created_at
            """,
            (user_id, exercise_id),
        ).fetchall()
    return [dict(row) | {"is_correct": bool(row["is_correct"])} for row in rows]


# =============================================================================
# STREAKS
# =============================================================================


def get_streak(user_id: str) -> StreakRecord | None:
    with get_db() as conn:
        row = conn.execute("SELECT * FROM streaks WHERE user_id = ?", (user_id,)).fetchone()
    return _row_to_streak(row) if row else None


def save_streak(record: StreakRecord) -> None:
    """Insert or replace a streak row."""
    with get_db() as conn:
        conn.execute(
            """
            INSERT INTO streaks (user_id, current_streak, longest_streak, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(user_id) DO UPDATE SET
                current_streak = excluded.current_streak,
                longest_streak = excluded.longest_streak,
                updated_at = excluded.updated_at
            """,
            (
                record.user_id,
                record.current_streak,
                record.longest_streak,
                record.created_at,
                record.updated_at,
            ),
        )
    logger.debug(
        "streaks.saved",
        user_id=record.user_id,
        current=record.current_streak,
        longest=record.longest_streak,
    )


def _row_to_progress(row) -> ProgressRecord:
    return ProgressRecord(
        id=row["id"],
        user_id=row["user_id"],
        course_id=row["course_id"],
        lesson_id=row["lesson_id"],
        progress_percent=int(row["progress_percent"]),
        completed=bool(row["completed"]),
        xp_awarded=bool(row["xp_awarded"]),
        last_watched_at=row["last_watched_at"],
    )


def _row_to_streak(row) -> StreakRecord:
    return StreakRecord(
        user_id=row["user_id"],
        current_streak=int(row["current_streak"]),
        longest_streak=int(row["longest_streak"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )
