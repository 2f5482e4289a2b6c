"""Follow / unfollow endpoints."""

from fastapi import APIRouter, Depends, HTTPException, status

from telxtab.db import follows_repository, profiles_repository
from telxtab.db.profiles_repository import ProfileRecord
from telxtab.web.deps import get_current_user
from telxtab.web.schemas import FollowStatsResponse, PublicProfileResponse

router = APIRouter(prefix="/api/follows", tags=["follows"])


@router.post("/{user_id}", response_model=FollowStatsResponse, status_code=status.HTTP_201_CREATED)
async def follow_user(
    user_id: str,
    user: ProfileRecord = Depends(get_current_user),
) -> FollowStatsResponse:
    """Follow a user. Returns the followed user's updated stats."""
    if profiles_repository.get_profile(user_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User '{user_id}' not found",
        )

    try:
        follows_repository.follow(user.id, user_id)
    except follows_repository.SelfFollowError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    except follows_repository.AlreadyFollowingError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e

    return FollowStatsResponse(**follows_repository.follow_stats(user_id))


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def unfollow_user(
    user_id: str,
    user: ProfileRecord = Depends(get_current_user),
) -> None:
    if not follows_repository.unfollow(user.id, user_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="You are not following this user",
        )


@router.get("/following", response_model=list[PublicProfileResponse])
async def list_following(user: ProfileRecord = Depends(get_current_user)) -> list[PublicProfileResponse]:
    """Users the caller follows."""
    result = []
    for followed_id in follows_repository.following_ids(user.id):
        profile = profiles_repository.get_profile(followed_id)
        if profile is not None:
            result.append(PublicProfileResponse(**profile.public_dict()))
    return result


@router.get("/{user_id}/stats", response_model=FollowStatsResponse)
async def get_follow_stats(
    user_id: str,
    user: ProfileRecord = Depends(get_current_user),
) -> FollowStatsResponse:
    return FollowStatsResponse(**follows_repository.follow_stats(user_id))
