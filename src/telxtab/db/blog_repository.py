"""Repository functions for blog_posts, blog_likes and blog_comments tables."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

import structlog

from telxtab.db.database import get_db, new_id, utc_now

logger = structlog.get_logger(__name__)


@dataclass
class BlogPostRecord:
    """Blog post record from database."""

    id: str
    title: str
    slug: str
    content: str
    excerpt: str
    cover_image_url: str
    author_id: str | None
    status: str
    published_at: str | None
    read_time: int
    views: int
    created_at: str
    updated_at: str
    tags: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "slug": self.slug,
            "content": self.content,
            "excerpt": self.excerpt,
            "cover_image_url": self.cover_image_url,
            "author_id": self.author_id,
            "status": self.status,
            "published_at": self.published_at,
            "tags": self.tags,
            "read_time": self.read_time,
            "views": self.views,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


def insert_post(
    title: str,
    slug: str,
    content: str,
    author_id: str | None,
    status: str,
    read_time: int,
    excerpt: str = "",
    cover_image_url: str = "",
    tags: list[str] | None = None,
    published_at: str | None = None,
) -> BlogPostRecord:
    """Insert a blog post. The caller resolves the slug."""
    post_id = new_id()
    now = utc_now()
    with get_db() as conn:
        conn.execute(
            """
            INSERT INTO blog_posts (
                id, title, slug, content, excerpt, cover_image_url, author_id,
                status, published_at, tags, read_time, views, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 0, ?, ?)
            """,
            (
                post_id,
                title,
                slug,
                content,
                excerpt,
                cover_image_url,
                author_id,
                status,
                published_at,
                json.dumps(tags or []),
                read_time,
                now,
                now,
            ),
        )

    logger.debug("blog.post_inserted", post_id=post_id, slug=slug, status=status)
    return get_post(post_id)  # type: ignore[return-value]


def get_post(post_id: str) -> BlogPostRecord | None:
    with get_db() as conn:
        row = conn.execute("SELECT * FROM blog_posts WHERE id = ?", (post_id,)).fetchone()
    return _row_to_record(row) if row else None


def get_post_by_slug(slug: str) -> BlogPostRecord | None:
    with get_db() as conn:
        row = conn.execute("SELECT * FROM blog_posts WHERE slug = ?", (slug,)).fetchone()
    return _row_to_record(row) if row else None


def slug_exists(slug: str) -> bool:
    with get_db() as conn:
        row = conn.execute("SELECT 1 FROM blog_posts WHERE slug = ?", (slug,)).fetchone()
    return row is not None


def list_posts(status: str | None = None) -> list[BlogPostRecord]:
    """List posts newest first, optionally filtered by status.

    Published posts are ordered by publication date, everything else
    by creation date.
    """
    with get_db() as conn:
        if status is None:
            rows = conn.execute(
                "SELECT * FROM blog_posts ORDER BY created_at DESC"
            ).fetchall()
        elif status == "published":
            rows = conn.execute(
                "SELECT * FROM blog_posts WHERE status = 'published' ORDER BY published_at DESC"
            ).fetchall()
        else:
            rows = conn.execute(
                "SELECT * FROM blog_posts WHERE status = ? ORDER BY created_at DESC",
                (status,),
            ).fetchall()
    return [_row_to_record(row) for row in rows]


def update_status(post_id: str, status: str, published_at: str | None) -> bool:
    with get_db() as conn:
        cursor = conn.execute(
            """
            UPDATE blog_posts SET status = ?, published_at = ?, updated_at = ?
            WHERE id = ?
            """,
            (status, published_at, utc_now(), post_id),
        )
    return cursor.rowcount > 0


def delete_post(post_id: str) -> bool:
    """Delete a post. Likes and comments cascade."""
    with get_db() as conn:
        cursor = conn.execute("DELETE FROM blog_posts WHERE id = ?", (post_id,))
    deleted = cursor.rowcount > 0
    if deleted:
        logger.info("blog.post_deleted", post_id=post_id)
    return deleted


def increment_views(post_id: str) -> int:
    """Atomically bump the view counter and return the new value."""
    with get_db() as conn:
        conn.execute("UPDATE blog_posts SET views = views + 1 WHERE id = ?", (post_id,))
        row = conn.execute("SELECT views FROM blog_posts WHERE id = ?", (post_id,)).fetchone()
    return int(row["views"]) if row else 0


# =============================================================================
# LIKES
# =============================================================================


def has_liked(post_id: str, user_id: str) -> bool:
    with get_db() as conn:
        row = conn.execute(
            "SELECT 1 FROM blog_likes WHERE post_id = ? AND user_id = ?",
            (post_id, user_id),
        ).fetchone()
    return row is not None


def add_like(post_id: str, user_id: str) -> None:
    with get_db() as conn:
        conn.execute(
            """
            INSERT OR IGNORE INTO blog_likes (id, post_id, user_id, created_at)
            VALUES (?, ?, ?, ?)
            """,
            (new_id(), post_id, user_id, utc_now()),
        )


def remove_like(post_id: str, user_id: str) -> None:
    with get_db() as conn:
        conn.execute(
            "DELETE FROM blog_likes WHERE post_id = ? AND user_id = ?", (post_id, user_id)
        )


def count_likes(post_id: str) -> int:
    with get_db() as conn:
        return int(
            conn.execute("SELECT COUNT(*) FROM blog_likes WHERE post_id = ?", (post_id,)).fetchone()[0]
        )


# =============================================================================
# COMMENTS
# =============================================================================


def insert_comment(post_id: str, user_id: str, content: str) -> dict[str, Any]:
    comment = {
        "id": new_id(),
        "post_id": post_id,
        "user_id": user_id,
        "content": content,
        "created_at": utc_now(),
    }
    with get_db() as conn:
        conn.execute(
            """
            INSERT INTO blog_comments (id, post_id, user_id, content, created_at)
            VALUES (:id, :post_id, :user_id, :content, :created_at)
            """,
            comment,
        )
    return comment


def list_comments(post_id: str) -> list[dict[str, Any]]:
    """Comments oldest first, with the commenter's username and avatar."""
    with get_db() as conn:
        rows = conn.execute(
            """
            SELECT c.*, p.username, p.full_name, p.avatar_url
            FROM blog_comments c
            JOIN profiles p ON p.id = c.user_id
            WHERE c.post_id = ?
            ORDER BY c.created_at ASC
            """,
            (post_id,),
        ).fetchall()
    return [dict(row) for row in rows]


def count_comments(post_id: str) -> int:
    with get_db() as conn:
        return int(
            conn.execute(
                "SELECT COUNT(*) FROM blog_comments WHERE post_id = ?", (post_id,)
            ).fetchone()[0]
        )


def _row_to_record(row) -> BlogPostRecord:
    """Convert database row to BlogPostRecord."""
    return BlogPostRecord(
        id=row["id"],
        title=row["title"],
        slug=row["slug"],
        content=row["content"],
        excerpt=row["excerpt"],
        cover_image_url=row["cover_image_url"],
        author_id=row["author_id"],
        status=row["status"],
        published_at=row["published_at"],
        read_time=int(row["read_time"]),
        views=int(row["views"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        tags=json.loads(row["tags"]) if row["tags"] else [],
    )
