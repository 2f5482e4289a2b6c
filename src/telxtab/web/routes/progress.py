"""Video progress endpoints."""

from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException, status

from telxtab.core import progress_tracker
from telxtab.core.progress_tracker import ProgressError
from telxtab.db import courses_repository
from telxtab.db.profiles_repository import ProfileRecord
from telxtab.web.deps import get_current_user
from telxtab.web.schemas import LessonRef, ProgressReport, ProgressResponse, ProgressUpdateResponse

router = APIRouter(prefix="/api/progress", tags=["progress"])


def _require_access(user: ProfileRecord, course_id: str) -> None:
    if not user.is_admin and not courses_repository.is_enrolled(user.id, course_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Enroll in the course to track progress",
        )


@router.post("", response_model=ProgressUpdateResponse)
async def report_progress(
    request: ProgressReport,
    user: ProfileRecord = Depends(get_current_user),
) -> ProgressUpdateResponse:
    """Report the player position.

    Only step boundaries (every 5%) and 100% are stored; other reports
    return ``written: false``.
    """
    _require_access(user, request.course_id)

    try:
        if request.percent is not None:
            percent = request.percent
        elif request.current_time is not None and request.duration is not None:
            percent = progress_tracker.compute_percent(request.current_time, request.duration)
        else:
            raise ProgressError("Provide either percent or current_time and duration")

        update = progress_tracker.record_progress(
            user.id, request.course_id, request.lesson_id, percent
        )
    except ProgressError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e

    return ProgressUpdateResponse(**asdict(update))


@router.post("/complete", response_model=ProgressUpdateResponse)
async def complete_lesson(
    request: LessonRef,
    user: ProfileRecord = Depends(get_current_user),
) -> ProgressUpdateResponse:
    """The video reached its end. Awards the completion XP once."""
    _require_access(user, request.course_id)

    try:
        update = progress_tracker.complete_lesson(user.id, request.course_id, request.lesson_id)
    except ProgressError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e

    return ProgressUpdateResponse(**asdict(update))


@router.get("/courses/{course_id}", response_model=list[ProgressResponse])
async def get_course_progress(
    course_id: str,
    user: ProfileRecord = Depends(get_current_user),
) -> list[ProgressResponse]:
    return [
        ProgressResponse(**p.to_dict())
        for p in progress_tracker.get_course_progress(user.id, course_id)
    ]
