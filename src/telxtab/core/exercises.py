"""Lesson exercise grading.

Every submission is recorded as an attempt. When the last unsolved
exercise of a lesson gets a correct attempt, the lesson is marked
completed for that user.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from telxtab.config.app_config import load_app_config
from telxtab.db import courses_repository, profiles_repository, progress_repository
from telxtab.db.database import get_db

logger = structlog.get_logger(__name__)

# Attempt value recorded for a finished matching exercise
MATCHING_COMPLETED = "matching_completed"


class ExerciseError(Exception):
    """Invalid exercise submission."""

    pass


class ExerciseNotFoundError(ExerciseError):
    pass


@dataclass
class AttemptResult:
    """Result of grading one submission."""

    is_correct: bool
    explanation: str
    lesson_completed: bool


def _grade(exercise: courses_repository.ExerciseRecord, answer: str, matched: bool | None) -> bool:
    if exercise.type == "matching":
        # Pairs are matched client-side; the client reports completion
        return answer == MATCHING_COMPLETED and bool(matched)
    return answer == exercise.correct_answer


def submit_answer(
    user_id: str,
    exercise_id: str,
    answer: str,
    matched: bool | None = None,
) -> AttemptResult:
    """Grade and record an answer.

    Args:
        user_id: Submitting user
        exercise_id: Exercise being answered
        answer: Selected option, or "matching_completed" for matching exercises
        matched: Client-reported result of a matching exercise

    Raises:
        ExerciseNotFoundError: If the exercise doesn't exist
    """
    exercise = courses_repository.get_exercise(exercise_id)
    if exercise is None:
        raise ExerciseNotFoundError(f"Exercise '{exercise_id}' not found")

    is_correct = _grade(exercise, answer, matched)
    lesson_completed = False

    with get_db() as conn:
        progress_repository.insert_attempt(conn, user_id, exercise_id, answer, is_correct)

        if is_correct and exercise.lesson_id is not None:
            unsolved = progress_repository.count_unsolved_exercises(conn, user_id, exercise.lesson_id)
            if unsolved == 0:
                progress_repository.mark_completed(
                    conn, user_id, exercise.course_id, exercise.lesson_id
                )
                lesson_completed = True

    logger.debug(
        "exercises.attempt_recorded",
        user_id=user_id,
        exercise_id=exercise_id,
        is_correct=is_correct,
        lesson_completed=lesson_completed,
    )

    return AttemptResult(
        is_correct=is_correct,
        explanation=exercise.explanation,
        lesson_completed=lesson_completed,
    )


def award_practice_xp(user_id: str, is_correct: bool) -> int:
    """Add the practice reward for a correct AI-generated question.

    Returns:
        The user's XP after the update.
    """
    if not is_correct:
        profile = profiles_repository.get_profile(user_id)
        return profile.xp if profile else 0

    reward = load_app_config().rewards.exercise_correct_xp
    xp_total = profiles_repository.increment_xp(user_id, reward)
    logger.debug("exercises.practice_xp_awarded", user_id=user_id, xp=reward, total=xp_total)
    return xp_total
