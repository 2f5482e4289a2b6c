"""Course catalogue, enrollment and lesson access endpoints."""

from fastapi import APIRouter, Depends, HTTPException, status

from telxtab.core import storage
from telxtab.core.progress_tracker import get_course_progress
from telxtab.db import courses_repository, progress_repository
from telxtab.db.courses_repository import CourseRecord, ExerciseRecord, LessonRecord
from telxtab.db.profiles_repository import ProfileRecord
from telxtab.web.deps import get_current_user
from telxtab.web.schemas import (
    CourseOverviewResponse,
    CourseResponse,
    ExerciseResponse,
    LessonDetailResponse,
    LessonResponse,
    ProgressResponse,
    SectionResponse,
)

router = APIRouter(prefix="/api/courses", tags=["courses"])


def course_response(course: CourseRecord | dict, lesson_count: int = 0, total_duration: int = 0) -> CourseResponse:
    data = course.to_dict() if isinstance(course, CourseRecord) else dict(course)
    data.setdefault("lesson_count", lesson_count)
    data.setdefault("total_duration", total_duration)
    if data["thumbnail_path"]:
        data["thumbnail_url"] = storage.public_url("course-thumbnails", data["thumbnail_path"])
    return CourseResponse(**data)


def lesson_response(lesson: LessonRecord) -> LessonResponse:
    data = lesson.to_dict()
    if lesson.video_path:
        data["video_url"] = storage.public_url("lesson-videos", lesson.video_path)
    return LessonResponse(**data)


def exercise_response(exercise: ExerciseRecord) -> ExerciseResponse:
    return ExerciseResponse(**exercise.to_dict(include_answer=False))


def _get_visible_course(course_id: str, user: ProfileRecord) -> CourseRecord:
    course = courses_repository.get_course(course_id)
    if course is None or (not course.is_public and not user.is_admin):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Course '{course_id}' not found",
        )
    return course


@router.get("", response_model=list[CourseResponse])
async def list_courses(user: ProfileRecord = Depends(get_current_user)) -> list[CourseResponse]:
    """Public course catalogue."""
    return [course_response(c) for c in courses_repository.list_courses(public_only=True)]


@router.get("/{course_id}", response_model=CourseOverviewResponse)
async def get_course_overview(
    course_id: str,
    user: ProfileRecord = Depends(get_current_user),
) -> CourseOverviewResponse:
    """Sections, ordered lessons, enrollment state and the caller's progress."""
    course = _get_visible_course(course_id, user)
    lessons = courses_repository.list_lessons(course.id)

    return CourseOverviewResponse(
        course=course_response(
            course,
            lesson_count=len(lessons),
            total_duration=sum(lesson.duration for lesson in lessons),
        ),
        sections=[SectionResponse(**s.to_dict()) for s in courses_repository.list_sections(course.id)],
        lessons=[lesson_response(lesson) for lesson in lessons],
        is_enrolled=courses_repository.is_enrolled(user.id, course.id),
        progress=[ProgressResponse(**p.to_dict()) for p in get_course_progress(user.id, course.id)],
    )


@router.post("/{course_id}/enroll")
async def enroll(
    course_id: str,
    user: ProfileRecord = Depends(get_current_user),
) -> dict[str, bool]:
    """Enroll in a course. Enrolling twice is a no-op."""
    course = _get_visible_course(course_id, user)
    created = courses_repository.enroll(user.id, course.id)
    return {"enrolled": True, "created": created}


@router.get("/{course_id}/lessons/{lesson_id}", response_model=LessonDetailResponse)
async def get_lesson(
    course_id: str,
    lesson_id: str,
    user: ProfileRecord = Depends(get_current_user),
) -> LessonDetailResponse:
    """Lesson with video URL, the caller's progress and its exercises.

    Requires enrollment unless the caller is an admin.
    """
    course = _get_visible_course(course_id, user)
    lesson = courses_repository.get_lesson(lesson_id)
    if lesson is None or lesson.course_id != course.id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Lesson '{lesson_id}' not found",
        )

    if not user.is_admin and not courses_repository.is_enrolled(user.id, course.id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Enroll in the course to access its lessons",
        )

    progress = progress_repository.get_progress(user.id, lesson.id)
    return LessonDetailResponse(
        lesson=lesson_response(lesson),
        progress=ProgressResponse(**progress.to_dict()) if progress else None,
        exercises=[exercise_response(e) for e in courses_repository.list_exercises(lesson_id=lesson.id)],
    )
