"""Public blog endpoints: published posts, likes and comments."""

from fastapi import APIRouter, Depends, HTTPException, status

from telxtab.core import blog
from telxtab.db.profiles_repository import ProfileRecord
from telxtab.web.deps import get_current_user, get_optional_user
from telxtab.web.schemas import (
    BlogPostDetail,
    CommentCreate,
    CommentResponse,
    LikeResponse,
)

router = APIRouter(prefix="/api/blog", tags=["blog"])


def _not_found(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


@router.get("", response_model=list[BlogPostDetail])
async def list_posts(
    viewer: ProfileRecord | None = Depends(get_optional_user),
) -> list[BlogPostDetail]:
    """Published posts, newest first."""
    viewer_id = viewer.id if viewer else None
    return [BlogPostDetail(**post) for post in blog.list_published_posts(viewer_id)]


@router.get("/{slug}", response_model=BlogPostDetail)
async def get_post(
    slug: str,
    viewer: ProfileRecord | None = Depends(get_optional_user),
) -> BlogPostDetail:
    """Read a published post. Counts a view."""
    post = blog.get_published_post(slug, viewer.id if viewer else None)
    if post is None:
        raise _not_found(f"Post '{slug}' not found")
    return BlogPostDetail(**post)


@router.post("/{post_id}/like", response_model=LikeResponse)
async def toggle_like(
    post_id: str,
    user: ProfileRecord = Depends(get_current_user),
) -> LikeResponse:
    try:
        return LikeResponse(**blog.toggle_like(post_id, user.id))
    except blog.BlogError as e:
        raise _not_found(str(e)) from e


@router.get("/{post_id}/comments", response_model=list[CommentResponse])
async def list_comments(post_id: str) -> list[CommentResponse]:
    return [CommentResponse(**c) for c in blog.list_comments(post_id)]


@router.post(
    "/{post_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_comment(
    post_id: str,
    request: CommentCreate,
    user: ProfileRecord = Depends(get_current_user),
) -> CommentResponse:
    if not request.content.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Comment cannot be empty")
    try:
        comment = blog.add_comment(post_id, user.id, request.content)
    except blog.BlogError as e:
        raise _not_found(str(e)) from e

    return CommentResponse(
        **comment,
        username=user.username,
        full_name=user.full_name,
        avatar_url=user.avatar_url,
    )
