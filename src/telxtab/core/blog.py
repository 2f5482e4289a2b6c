"""Blog publishing.

Responsibilities:
- Derive URL slugs from titles, resolving collisions with a numeric suffix
- Estimate reading time (200 words per minute)
- Keep published_at consistent with the post status
- Likes, comments and view counting for published posts
"""

from __future__ import annotations

import math
import re
from typing import Any

import structlog

from telxtab.db import blog_repository, profiles_repository
from telxtab.db.blog_repository import BlogPostRecord
from telxtab.db.database import utc_now

logger = structlog.get_logger(__name__)

POST_STATUSES = ("draft", "published", "archived")
WORDS_PER_MINUTE = 200

_NON_SLUG_CHARS = re.compile(r"[^a-z0-9]+")


class BlogError(Exception):
    """Invalid blog operation."""

    pass


def slugify(title: str) -> str:
    """Lowercase, collapse non-alphanumeric runs into '-', trim dashes."""
    return _NON_SLUG_CHARS.sub("-", title.lower()).strip("-")


def estimate_read_time(content: str) -> int:
    """Minutes to read ``content``, at least 1."""
    words = len(content.split())
    return max(1, math.ceil(words / WORDS_PER_MINUTE))


def _unique_slug(base: str) -> str:
    slug = base
    suffix = 2
    while blog_repository.slug_exists(slug):
        slug = f"{base}-{suffix}"
        suffix += 1
    return slug


def _check_status(status: str) -> None:
    if status not in POST_STATUSES:
        raise BlogError(f"Invalid status '{status}'. Expected one of {POST_STATUSES}")


def create_post(
    title: str,
    content: str,
    author_id: str | None,
    status: str = "draft",
    excerpt: str = "",
    cover_image_url: str = "",
    tags: list[str] | None = None,
) -> BlogPostRecord:
    """Create a blog post.

    Raises:
        BlogError: If title or content is empty, the title has no
            slug-able characters, or the status is unknown
    """
    title = title.strip()
    if not title or not content.strip():
        raise BlogError("Title and content are required")
    _check_status(status)

    base_slug = slugify(title)
    if not base_slug:
        raise BlogError("Title must contain at least one letter or digit")

    post = blog_repository.insert_post(
        title=title,
        slug=_unique_slug(base_slug),
        content=content,
        author_id=author_id,
        status=status,
        read_time=estimate_read_time(content),
        excerpt=excerpt,
        cover_image_url=cover_image_url,
        tags=[t.strip() for t in (tags or []) if t.strip()],
        published_at=utc_now() if status == "published" else None,
    )
    logger.info("blog.post_created", post_id=post.id, slug=post.slug, status=status)
    return post


def change_status(post_id: str, status: str) -> BlogPostRecord | None:
    """Move a post to another status. Returns None if the post doesn't exist."""
    _check_status(status)
    published_at = utc_now() if status == "published" else None
    if not blog_repository.update_status(post_id, status, published_at):
        return None
    logger.info("blog.status_changed", post_id=post_id, status=status)
    return blog_repository.get_post(post_id)


def _with_engagement(post: BlogPostRecord, viewer_id: str | None) -> dict[str, Any]:
    data = post.to_dict()
    author = profiles_repository.get_profile(post.author_id) if post.author_id else None
    data["author"] = (
        {
            "id": author.id,
            "username": author.username,
            "full_name": author.full_name,
            "avatar_url": author.avatar_url,
        }
        if author
        else None
    )
    data["likes_count"] = blog_repository.count_likes(post.id)
    data["comments_count"] = blog_repository.count_comments(post.id)
    data["is_liked"] = bool(viewer_id) and blog_repository.has_liked(post.id, viewer_id)
    return data


def list_published_posts(viewer_id: str | None = None) -> list[dict[str, Any]]:
    return [
        _with_engagement(post, viewer_id)
        for post in blog_repository.list_posts(status="published")
    ]


def get_published_post(slug: str, viewer_id: str | None = None) -> dict[str, Any] | None:
    """Fetch a published post by slug and count the view.

    Returns None for unknown slugs and for posts that are not published.
    """
    post = blog_repository.get_post_by_slug(slug)
    if post is None or post.status != "published":
        return None

    post.views = blog_repository.increment_views(post.id)
    return _with_engagement(post, viewer_id)


def _published_or_raise(post_id: str) -> BlogPostRecord:
    post = blog_repository.get_post(post_id)
    if post is None or post.status != "published":
        raise BlogError(f"Post '{post_id}' not found")
    return post


def toggle_like(post_id: str, user_id: str) -> dict[str, Any]:
    """Like or unlike a post.

    Returns:
        Dict with the new ``liked`` state and ``likes_count``.
    """
    _published_or_raise(post_id)
    if blog_repository.has_liked(post_id, user_id):
        blog_repository.remove_like(post_id, user_id)
        liked = False
    else:
        blog_repository.add_like(post_id, user_id)
        liked = True
    return {"liked": liked, "likes_count": blog_repository.count_likes(post_id)}


def add_comment(post_id: str, user_id: str, content: str) -> dict[str, Any]:
    """Add a comment to a published post.

    Raises:
        BlogError: If the comment is empty or the post is not published
    """
    content = content.strip()
    if not content:
        raise BlogError("Comment cannot be empty")
    _published_or_raise(post_id)
    comment = blog_repository.insert_comment(post_id, user_id, content)
    logger.debug("blog.comment_added", post_id=post_id, user_id=user_id)
    return comment


def list_comments(post_id: str) -> list[dict[str, Any]]:
    return blog_repository.list_comments(post_id)
