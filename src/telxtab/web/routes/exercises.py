"""Exercise attempt and practice reward endpoints."""

from fastapi import APIRouter, Depends, HTTPException, status

from telxtab.core import exercises
from telxtab.core.ranks import get_rank_by_xp
from telxtab.db import courses_repository
from telxtab.db.profiles_repository import ProfileRecord
from telxtab.web.deps import get_current_user
from telxtab.web.schemas import (
    AttemptRequest,
    AttemptResponse,
    PracticeResultRequest,
    PracticeResultResponse,
    RankResponse,
)

router = APIRouter(prefix="/api/exercises", tags=["exercises"])


@router.post("/practice", response_model=PracticeResultResponse)
async def report_practice_result(
    request: PracticeResultRequest,
    user: ProfileRecord = Depends(get_current_user),
) -> PracticeResultResponse:
    """Reward a correct answer to an AI-generated practice question."""
    xp = exercises.award_practice_xp(user.id, request.is_correct)
    return PracticeResultResponse(xp=xp, rank=RankResponse(**get_rank_by_xp(xp).to_dict()))


@router.post("/{exercise_id}/attempts", response_model=AttemptResponse)
async def submit_attempt(
    exercise_id: str,
    request: AttemptRequest,
    user: ProfileRecord = Depends(get_current_user),
) -> AttemptResponse:
    """Grade an answer and record the attempt."""
    exercise = courses_repository.get_exercise(exercise_id)
    if exercise is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Exercise '{exercise_id}' not found",
        )
    if not user.is_admin and not courses_repository.is_enrolled(user.id, exercise.course_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Enroll in the course to answer its exercises",
        )

    result = exercises.submit_answer(user.id, exercise_id, request.answer, request.matched)
    return AttemptResponse(
        is_correct=result.is_correct,
        explanation=result.explanation,
        lesson_completed=result.lesson_completed,
    )
