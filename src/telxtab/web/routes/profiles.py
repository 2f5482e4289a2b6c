"""Profile endpoints: own profile, stats, dashboard, streaks and partner suggestions."""

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from starlette.concurrency import run_in_threadpool

from telxtab.ai.matchmaker import MatchmakingError, suggest_connections
from telxtab.core import certificates, dashboard, storage, streaks, study_timer
from telxtab.core.ranks import get_rank_by_xp, get_xp_progress
from telxtab.db import follows_repository, messages_repository, profiles_repository
from telxtab.db.profiles_repository import DuplicateProfileError, ProfileRecord
from telxtab.llm.client import LLMClient, LLMError
from telxtab.web.deps import get_current_user, get_llm_client
from telxtab.web.schemas import (
    CertificatesResponse,
    DashboardResponse,
    LeaderboardEntry,
    ProfileResponse,
    ProfileStatsResponse,
    ProfileUpdate,
    ProfileViewResponse,
    PublicProfileResponse,
    RankResponse,
    StreakResponse,
    StudyTimeRequest,
    StudyTimeResponse,
    SuggestionResponse,
)

router = APIRouter(prefix="/api/profiles", tags=["profiles"])


def profile_response(profile: ProfileRecord) -> ProfileResponse:
    """Own-profile payload with rank information."""
    return ProfileResponse(
        **profile.public_dict(),
        email=profile.email,
        is_banned=profile.is_banned,
        study_seconds=profile.study_seconds,
        rank=RankResponse(**get_rank_by_xp(profile.xp).to_dict()),
        xp_progress=get_xp_progress(profile.xp),
    )


@router.get("/me", response_model=ProfileResponse)
async def get_my_profile(user: ProfileRecord = Depends(get_current_user)) -> ProfileResponse:
    return profile_response(user)


@router.patch("/me", response_model=ProfileResponse)
async def update_my_profile(
    request: ProfileUpdate,
    user: ProfileRecord = Depends(get_current_user),
) -> ProfileResponse:
    """Update editable profile fields."""
    fields = request.model_dump(exclude_none=True)
    if "username" in fields:
        fields["username"] = fields["username"].strip()
        if not fields["username"]:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Username cannot be empty",
            )

    try:
        updated = profiles_repository.update_profile(user.id, **fields)
    except DuplicateProfileError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e

    return profile_response(updated)  # type: ignore[arg-type]


@router.post("/me/avatar", response_model=ProfileResponse)
async def upload_avatar(
    file: UploadFile = File(...),
    user: ProfileRecord = Depends(get_current_user),
) -> ProfileResponse:
    """Upload a new avatar to the avatars bucket."""
    data = await file.read()
    path = storage.build_object_path(user.id, file.filename or "avatar.png")
    try:
        storage.upload("avatars", path, data)
    except storage.StorageError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e

    updated = profiles_repository.update_profile(
        user.id, avatar_url=storage.public_url("avatars", path)
    )
    return profile_response(updated)  # type: ignore[arg-type]


@router.get("/me/stats", response_model=ProfileStatsResponse)
async def get_my_stats(user: ProfileRecord = Depends(get_current_user)) -> ProfileStatsResponse:
    follow = follows_repository.follow_stats(user.id)
    return ProfileStatsResponse(
        followers=follow["followers"],
        following=follow["following"],
        messages_sent=messages_repository.count_sent(user.id),
        study_hours=study_timer.study_hours(user.study_seconds),
        xp=user.xp,
        rank=RankResponse(**get_rank_by_xp(user.xp).to_dict()),
    )


@router.post("/me/check-in", response_model=StreakResponse)
async def check_in(user: ProfileRecord = Depends(get_current_user)) -> StreakResponse:
    """Register today's activity for the login streak."""
    record = streaks.check_in(user.id)
    return StreakResponse(**record.to_dict())


@router.post("/me/study-time", response_model=StudyTimeResponse)
async def report_study_time(
    request: StudyTimeRequest,
    user: ProfileRecord = Depends(get_current_user),
) -> StudyTimeResponse:
    try:
        total = study_timer.record_study_time(user.id, request.seconds)
    except study_timer.StudyTimeError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e

    return StudyTimeResponse(
        total_seconds=total,
        study_hours=study_timer.study_hours(total),
        formatted=study_timer.format_duration(total)["formatted"],
    )


@router.get("/me/dashboard", response_model=DashboardResponse)
async def get_dashboard(user: ProfileRecord = Depends(get_current_user)) -> DashboardResponse:
    """Profile, streak, leaderboard and recent lessons in one call."""
    streak = streaks.check_in(user.id)
    return DashboardResponse(
        profile=profile_response(user),
        streak=StreakResponse(**streak.to_dict()),
        leaderboard=dashboard.leaderboard(),
        recent_activity=dashboard.recent_activity(user.id),
    )


@router.get("/me/certificates", response_model=CertificatesResponse)
async def get_certificates(user: ProfileRecord = Depends(get_current_user)) -> CertificatesResponse:
    return CertificatesResponse(**certificates.course_completion(user.id))


@router.get("/me/suggestions", response_model=list[SuggestionResponse])
async def get_suggestions(
    user: ProfileRecord = Depends(get_current_user),
    client: LLMClient = Depends(get_llm_client),
) -> list[SuggestionResponse]:
    """AI-suggested language partners among users not yet followed."""
    excluded = [user.id, *follows_repository.following_ids(user.id)]
    candidates = [
        p
        for p in profiles_repository.list_profiles(exclude_ids=excluded)
        if not p.is_banned
    ]

    try:
        suggestions = await run_in_threadpool(suggest_connections, client, user, candidates)
    except (MatchmakingError, LLMError) as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Could not get suggestions: {e}",
        ) from e

    return [SuggestionResponse(**s) for s in suggestions]


@router.get("/leaderboard", response_model=list[LeaderboardEntry])
async def get_leaderboard(
    limit: int = 5,
    user: ProfileRecord = Depends(get_current_user),
) -> list[LeaderboardEntry]:
    return [LeaderboardEntry(**entry) for entry in dashboard.leaderboard(limit=max(1, min(limit, 50)))]


@router.get("/{user_id}", response_model=ProfileViewResponse)
async def get_profile(
    user_id: str,
    user: ProfileRecord = Depends(get_current_user),
) -> ProfileViewResponse:
    """Public profile of another user."""
    profile = profiles_repository.get_profile(user_id)
    if profile is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User '{user_id}' not found",
        )

    return ProfileViewResponse(
        profile=PublicProfileResponse(**profile.public_dict()),
        rank=RankResponse(**get_rank_by_xp(profile.xp).to_dict()),
        stats=follows_repository.follow_stats(profile.id),
        is_following=follows_repository.is_following(user.id, profile.id),
    )
