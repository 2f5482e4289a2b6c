"""Student dashboard aggregates: leaderboard and recent activity."""

from __future__ import annotations

from typing import Any

from telxtab.core.ranks import get_rank_by_xp
from telxtab.db import profiles_repository, progress_repository


def leaderboard(limit: int = 5) -> list[dict[str, Any]]:
    """Top users by XP with their rank."""
    profiles = profiles_repository.list_profiles(limit=limit, order_by="xp DESC")
    return [
        {
            "position": index,
            "id": profile.id,
            "username": profile.username,
            "full_name": profile.full_name,
            "avatar_url": profile.avatar_url,
            "xp": profile.xp,
            "rank": get_rank_by_xp(profile.xp).to_dict(),
        }
        for index, profile in enumerate(profiles, start=1)
    ]


def recent_activity(user_id: str, limit: int = 5) -> list[dict[str, Any]]:
    """Most recently watched lessons."""
    return [
        {
            "lesson_id": row["lesson_id"],
            "course_id": row["course_id"],
            "lesson_title": row["lesson_title"],
            "course_title": row["course_title"],
            "course_language": row["course_language"],
            "progress": int(row["progress_percent"]),
            "status": "completed" if row["completed"] else "in_progress",
            "duration_minutes": round(int(row["lesson_duration"]) / 60),
            "last_watched_at": row["last_watched_at"],
        }
        for row in progress_repository.recent_progress(user_id, limit=limit)
    ]
