"""Repository functions for the follows table."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass

import structlog

from telxtab.db.database import get_db, new_id, utc_now

logger = structlog.get_logger(__name__)


@dataclass
class FollowRecord:
    """A follower -> following edge."""

    id: str
    follower_id: str
    following_id: str
    created_at: str


class FollowError(Exception):
    """Invalid follow operation."""

    pass


class SelfFollowError(FollowError):
    """A user tried to follow themselves."""

    pass


class AlreadyFollowingError(FollowError):
    """The follow edge already exists."""

    pass


def follow(follower_id: str, following_id: str) -> FollowRecord:
    """Create a follow edge.

    Raises:
        SelfFollowError: If follower and following are the same user
        AlreadyFollowingError: If the edge already exists
    """
    if follower_id == following_id:
        raise SelfFollowError("You cannot follow yourself")

    record = FollowRecord(
        id=new_id(),
        follower_id=follower_id,
        following_id=following_id,
        created_at=utc_now(),
    )
    try:
        with get_db() as conn:
            conn.execute(
                """
                INSERT INTO follows (id, follower_id, following_id, created_at)
                VALUES (?, ?, ?, ?)
                """,
                (record.id, record.follower_id, record.following_id, record.created_at),
            )
    except sqlite3.IntegrityError as e:
        if "UNIQUE" in str(e):
            raise AlreadyFollowingError("Already following this user") from e
        raise

    logger.info("follows.created", follower_id=follower_id, following_id=following_id)
    return record


def unfollow(follower_id: str, following_id: str) -> bool:
    """Remove a follow edge. Returns False if it didn't exist."""
    with get_db() as conn:
        cursor = conn.execute(
            "DELETE FROM follows WHERE follower_id = ? AND following_id = ?",
            (follower_id, following_id),
        )
    removed = cursor.rowcount > 0
    if removed:
        logger.info("follows.removed", follower_id=follower_id, following_id=following_id)
    return removed


def is_following(follower_id: str, following_id: str) -> bool:
    with get_db() as conn:
        row = conn.execute(
            "SELECT 1 FROM follows WHERE follower_id = ? AND following_id = ?",
            (follower_id, following_id),
        ).fetchone()
    return row is not None


def following_ids(user_id: str) -> list[str]:
    """IDs of the users that ``user_id`` follows."""
    with get_db() as conn:
        rows = conn.execute(
            "SELECT following_id FROM follows WHERE follower_id = ?", (user_id,)
        ).fetchall()
    return [row["following_id"] for row in rows]


def follow_stats(user_id: str) -> dict[str, int]:
    """Follower and following counts."""
    with get_db() as conn:
        followers = conn.execute(
            "SELECT COUNT(*) FROM follows WHERE following_id = ?", (user_id,)
        ).fetchone()[0]
        following = conn.execute(
            "SELECT COUNT(*) FROM follows WHERE follower_id = ?", (user_id,)
        ).fetchone()[0]
    return {"followers": int(followers), "following": int(following)}
