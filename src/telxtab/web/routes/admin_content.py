"""Admin content management: blog posts and courses with their media."""

from typing import Literal

import structlog
from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status

from telxtab.core import blog, storage
from telxtab.core.blog import BlogError
from telxtab.db import blog_repository, courses_repository
from telxtab.db.courses_repository import CourseRecord
from telxtab.db.profiles_repository import ProfileRecord
from telxtab.web.deps import require_admin
from telxtab.web.routes.courses import course_response, lesson_response
from telxtab.web.schemas import (
    AdminExerciseResponse,
    BlogPostCreate,
    BlogPostResponse,
    BlogStatusUpdate,
    CourseCreate,
    CourseResponse,
    CourseUpdate,
    ExerciseCreate,
    LessonCreate,
    LessonResponse,
    LessonUpdate,
    SectionCreate,
    SectionResponse,
    UploadResponse,
)

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])


def _not_found(kind: str, item_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"{kind} '{item_id}' not found",
    )


async def _store_upload(bucket: str, owner_id: str, file: UploadFile) -> str:
    """Store an uploaded file and return its object path."""
    data = await file.read()
    path = storage.build_object_path(owner_id, file.filename or "upload.bin")
    try:
        storage.upload(bucket, path, data)
    except storage.StorageError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    return path


def _remove_media(bucket: str, path: str) -> None:
    """Delete a stored object that a removed or replaced row pointed at."""
    if not path:
        return
    try:
        removed = storage.delete(bucket, path)
    except storage.StorageError as e:
        logger.warning("storage.cleanup_failed", bucket=bucket, path=path, error=str(e))
        return
    logger.info("storage.cleaned_up", bucket=bucket, path=path, removed=removed)


# =============================================================================
# BLOG
# =============================================================================


@router.get("/blog", response_model=list[BlogPostResponse])
async def list_blog_posts(
    status_filter: Literal["draft", "published", "archived"] | None = Query(
        default=None, alias="status"
    ),
    admin: ProfileRecord = Depends(require_admin),
) -> list[BlogPostResponse]:
    """Every post, newest first, optionally filtered by status."""
    return [
        BlogPostResponse(**p.to_dict())
        for p in blog_repository.list_posts(status=status_filter)
    ]


@router.post("/blog", response_model=BlogPostResponse, status_code=status.HTTP_201_CREATED)
async def create_blog_post(
    request: BlogPostCreate,
    admin: ProfileRecord = Depends(require_admin),
) -> BlogPostResponse:
    try:
        post = blog.create_post(
            title=request.title,
            content=request.content,
            author_id=admin.id,
            status=request.status.value,
            excerpt=request.excerpt,
            cover_image_url=request.cover_image_url,
            tags=request.tags,
        )
    except BlogError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    return BlogPostResponse(**post.to_dict())


@router.patch("/blog/{post_id}/status", response_model=BlogPostResponse)
async def change_blog_status(
    post_id: str,
    request: BlogStatusUpdate,
    admin: ProfileRecord = Depends(require_admin),
) -> BlogPostResponse:
    post = blog.change_status(post_id, request.status.value)
    if post is None:
        raise _not_found("Post", post_id)
    return BlogPostResponse(**post.to_dict())


@router.delete("/blog/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_blog_post(
    post_id: str,
    admin: ProfileRecord = Depends(require_admin),
) -> None:
    if not blog_repository.delete_post(post_id):
        raise _not_found("Post", post_id)
    logger.info("admin.post_deleted", admin_id=admin.id, post_id=post_id)


@router.post("/blog/uploads", response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_blog_media(
    kind: Literal["cover", "image"] = "image",
    file: UploadFile = File(...),
    admin: ProfileRecord = Depends(require_admin),
) -> UploadResponse:
    """Upload a cover or an inline image and return its public URL."""
    bucket = "blog-covers" if kind == "cover" else "blog-images"
    path = await _store_upload(bucket, admin.id, file)
    return UploadResponse(bucket=bucket, path=path, url=storage.public_url(bucket, path))


# =============================================================================
# COURSES
# =============================================================================


def _get_course(course_id: str) -> CourseRecord:
    course = courses_repository.get_course(course_id)
    if course is None:
        raise _not_found("Course", course_id)
    return course


@router.get("/courses", response_model=list[CourseResponse])
async def list_all_courses(admin: ProfileRecord = Depends(require_admin)) -> list[CourseResponse]:
    """Every course, public or not."""
    return [course_response(c) for c in courses_repository.list_courses(public_only=False)]


@router.post("/courses", response_model=CourseResponse, status_code=status.HTTP_201_CREATED)
async def create_course(
    request: CourseCreate,
    admin: ProfileRecord = Depends(require_admin),
) -> CourseResponse:
    course = courses_repository.create_course(
        title=request.title.strip(),
        description=request.description,
        language=request.language,
        level=request.level,
        is_public=request.is_public,
    )
    return course_response(course)


@router.patch("/courses/{course_id}", response_model=CourseResponse)
async def update_course(
    course_id: str,
    request: CourseUpdate,
    admin: ProfileRecord = Depends(require_admin),
) -> CourseResponse:
    _get_course(course_id)
    course = courses_repository.update_course(course_id, **request.model_dump(exclude_none=True))
    return course_response(course)  # type: ignore[arg-type]


@router.delete("/courses/{course_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_course(
    course_id: str,
    admin: ProfileRecord = Depends(require_admin),
) -> None:
    course = _get_course(course_id)
    videos = [lesson.video_path for lesson in courses_repository.list_lessons(course_id)]
    if not courses_repository.delete_course(course_id):
        raise _not_found("Course", course_id)

    _remove_media("course-thumbnails", course.thumbnail_path)
    for path in videos:
        _remove_media("lesson-videos", path)


@router.post("/courses/{course_id}/thumbnail", response_model=CourseResponse)
async def upload_course_thumbnail(
    course_id: str,
    file: UploadFile = File(...),
    admin: ProfileRecord = Depends(require_admin),
) -> CourseResponse:
    previous = _get_course(course_id).thumbnail_path
    path = await _store_upload("course-thumbnails", course_id, file)
    course = courses_repository.update_course(course_id, thumbnail_path=path)
    if previous != path:
        _remove_media("course-thumbnails", previous)
    return course_response(course)  # type: ignore[arg-type]


@router.post(
    "/courses/{course_id}/sections",
    response_model=SectionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_section(
    course_id: str,
    request: SectionCreate,
    admin: ProfileRecord = Depends(require_admin),
) -> SectionResponse:
    _get_course(course_id)
    section = courses_repository.create_section(course_id, request.title.strip(), request.order_index)
    return SectionResponse(**section.to_dict())


@router.delete("/sections/{section_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_section(
    section_id: str,
    admin: ProfileRecord = Depends(require_admin),
) -> None:
    if not courses_repository.delete_section(section_id):
        raise _not_found("Section", section_id)


def _check_section(course_id: str, section_id: str | None) -> None:
    if section_id is None:
        return
    if section_id not in {s.id for s in courses_repository.list_sections(course_id)}:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Section '{section_id}' does not belong to this course",
        )


@router.post(
    "/courses/{course_id}/lessons",
    response_model=LessonResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_lesson(
    course_id: str,
    request: LessonCreate,
    admin: ProfileRecord = Depends(require_admin),
) -> LessonResponse:
    _get_course(course_id)
    _check_section(course_id, request.section_id)
    lesson = courses_repository.create_lesson(
        course_id=course_id,
        title=request.title.strip(),
        section_id=request.section_id,
        description=request.description,
        topic=request.topic,
        duration=request.duration,
        order_index=request.order_index,
    )
    return lesson_response(lesson)


@router.patch("/lessons/{lesson_id}", response_model=LessonResponse)
async def update_lesson(
    lesson_id: str,
    request: LessonUpdate,
    admin: ProfileRecord = Depends(require_admin),
) -> LessonResponse:
    lesson = courses_repository.get_lesson(lesson_id)
    if lesson is None:
        raise _not_found("Lesson", lesson_id)
    fields = request.model_dump(exclude_none=True)
    _check_section(lesson.course_id, fields.get("section_id"))
    updated = courses_repository.update_lesson(lesson_id, **fields)
    return lesson_response(updated)  # type: ignore[arg-type]


@router.delete("/lessons/{lesson_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_lesson(
    lesson_id: str,
    admin: ProfileRecord = Depends(require_admin),
) -> None:
    lesson = courses_repository.get_lesson(lesson_id)
    if lesson is None or not courses_repository.delete_lesson(lesson_id):
        raise _not_found("Lesson", lesson_id)
    _remove_media("lesson-videos", lesson.video_path)


@router.post("/lessons/{lesson_id}/video", response_model=LessonResponse)
async def upload_lesson_video(
    lesson_id: str,
    file: UploadFile = File(...),
    admin: ProfileRecord = Depends(require_admin),
) -> LessonResponse:
    lesson = courses_repository.get_lesson(lesson_id)
    if lesson is None:
        raise _not_found("Lesson", lesson_id)
    path = await _store_upload("lesson-videos", lesson.course_id, file)
    updated = courses_repository.update_lesson(lesson_id, video_path=path)
    if lesson.video_path != path:
        _remove_media("lesson-videos", lesson.video_path)
    return lesson_response(updated)  # type: ignore[arg-type]


@router.get("/courses/{course_id}/exercises", response_model=list[AdminExerciseResponse])
async def list_exercises(
    course_id: str,
    admin: ProfileRecord = Depends(require_admin),
) -> list[AdminExerciseResponse]:
    _get_course(course_id)
    return [
        AdminExerciseResponse(**e.to_dict())
        for e in courses_repository.list_exercises(course_id=course_id)
    ]


@router.post(
    "/courses/{course_id}/exercises",
    response_model=AdminExerciseResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_exercise(
    course_id: str,
    request: ExerciseCreate,
    admin: ProfileRecord = Depends(require_admin),
) -> AdminExerciseResponse:
    """Add a multiple-choice or matching exercise."""
    _get_course(course_id)
    if request.lesson_id is not None:
        lesson = courses_repository.get_lesson(request.lesson_id)
        if lesson is None or lesson.course_id != course_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Lesson '{request.lesson_id}' does not belong to this course",
            )

    if request.type.value == "multiple_choice":
        if len(request.options) < 2 or request.correct_answer not in request.options:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Multiple choice needs at least two options including the correct answer",
            )
    elif not request.pairs:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Matching exercises need at least one pair",
        )

    exercise = courses_repository.create_exercise(
        course_id=course_id,
        type=request.type.value,
        question=request.question,
        lesson_id=request.lesson_id,
        options=request.options,
        pairs=[p.model_dump() for p in request.pairs],
        correct_answer=request.correct_answer,
        explanation=request.explanation,
        order_index=request.order_index,
    )
    return AdminExerciseResponse(**exercise.to_dict())


@router.delete("/exercises/{exercise_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_exercise(
    exercise_id: str,
    admin: ProfileRecord = Depends(require_admin),
) -> None:
    if not courses_repository.delete_exercise(exercise_id):
        raise _not_found("Exercise", exercise_id)
