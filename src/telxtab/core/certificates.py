"""Course completion summaries used for certificates."""

from __future__ import annotations

from typing import Any

from telxtab.db import progress_repository


def course_completion(user_id: str) -> dict[str, list[dict[str, Any]]]:
    """Completion state of every course for a user.

    Returns:
        Dict with ``completed`` (100% of lessons done) and ``in_progress``
        (at least one lesson done) lists. Courses without lessons are
        never complete; untouched courses are omitted.
    """
    completed: list[dict[str, Any]] = []
    in_progress: list[dict[str, Any]] = []

    for row in progress_repository.course_completion_rows(user_id):
        total = int(row["total_lessons"])
        done = int(row["lessons_completed"])
        percentage = round(done / total * 100) if total else 0
        is_completed = total > 0 and percentage == 100

        item = {
            "course_id": row["course_id"],
            "course_title": row["course_title"],
            "language": row["language"],
            "level": row["level"],
            "total_lessons": total,
            "lessons_completed": done,
            "completion_percentage": percentage,
            "completed_at": row["completed_at"] if is_completed else None,
            "is_completed": is_completed,
        }

        if is_completed:
            completed.append(item)
        elif done > 0:
            in_progress.append(item)

    return {"completed": completed, "in_progress": in_progress}
