"""Repository functions for courses, sections, lessons, exercises and enrollments.

Courses own their sections, lessons and exercises; deleting a course
cascades to all of them.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from typing import Any

import structlog

from telxtab.db.database import get_db, new_id, utc_now

logger = structlog.get_logger(__name__)


@dataclass
class CourseRecord:
    id: str
    title: str
    description: str
    language: str
    level: str
    thumbnail_path: str
    is_public: bool
    created_at: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class SectionRecord:
    id: str
    course_id: str
    title: str
    order_index: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class LessonRecord:
    id: str
    course_id: str
    section_id: str | None
    title: str
    description: str
    topic: str
    video_path: str
    duration: int
    order_index: int
    created_at: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class ExerciseRecord:
    """Exercise attached to a course and optionally a lesson.

    ``options`` is used by multiple_choice exercises, ``pairs`` by
    matching exercises (list of {"left", "right"} dicts).
    """

    id: str
    course_id: str
    lesson_id: str | None
    type: str
    question: str
    correct_answer: str
    explanation: str
    order_index: int
    options: list[str] = field(default_factory=list)
    pairs: list[dict[str, str]] = field(default_factory=list)

    def to_dict(self, include_answer: bool = True) -> dict[str, Any]:
        data = asdict(self)
        if not include_answer:
            data.pop("correct_answer")
        return data


# =============================================================================
# COURSES
# =============================================================================


def create_course(
    title: str,
    description: str = "",
    language: str = "English",
    level: str = "beginner",
    thumbnail_path: str = "",
    is_public: bool = True,
) -> CourseRecord:
    record = CourseRecord(
        id=new_id(),
        title=title,
        description=description,
        language=language,
        level=level,
        thumbnail_path=thumbnail_path,
        is_public=is_public,
        created_at=utc_now(),
    )
    with get_db() as conn:
        conn.execute(
            """
            INSERT INTO courses (
                id, title, description, language, level, thumbnail_path, is_public, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                record.id,
                record.title,
                record.description,
                record.language,
                record.level,
                record.thumbnail_path,
                int(record.is_public),
                record.created_at,
            ),
        )
    logger.info("courses.created", course_id=record.id, title=title)
    return record


def get_course(course_id: str) -> CourseRecord | None:
    with get_db() as conn:
        row = conn.execute("SELECT * FROM courses WHERE id = ?", (course_id,)).fetchone()
    return _row_to_course(row) if row else None


def list_courses(public_only: bool = False) -> list[dict[str, Any]]:
    """List courses with lesson_count and total_duration (seconds)."""
    sql = """
        SELECT c.*,
               COUNT(l.id) AS lesson_count,
               COALESCE(SUM(l.duration), 0) AS total_duration
        FROM courses c
        LEFT JOIN lessons l ON l.course_id = c.id
    """
    if public_only:
        sql += " WHERE c.is_public = 1"
    sql += " GROUP BY c.id ORDER BY c.created_at DESC"

    with get_db() as conn:
        rows = conn.execute(sql).fetchall()

    result = []
    for row in rows:
        item = _row_to_course(row).to_dict()
        item["lesson_count"] = int(row["lesson_count"])
        item["total_duration"] = int(row["total_duration"])
        result.append(item)
    return result


def update_course(course_id: str, **fields: Any) -> CourseRecord | None:
    allowed = {"title", "description", "language", "level", "thumbnail_path", "is_public"}
    unknown = set(fields) - allowed
    if unknown:
        raise ValueError(f"Unknown course fields: {sorted(unknown)}")
    if "is_public" in fields:
        fields["is_public"] = int(bool(fields["is_public"]))
    if fields:
        assignments = ", ".join(f"{name} = ?" for name in fields)
        with get_db() as conn:
            conn.execute(
                f"UPDATE courses SET {assignments} WHERE id = ?",
                (*fields.values(), course_id),
            )
    return get_course(course_id)


def delete_course(course_id: str) -> bool:
    with get_db() as conn:
        cursor = conn.execute("DELETE FROM courses WHERE id = ?", (course_id,))
    deleted = cursor.rowcount > 0
    if deleted:
        logger.info("courses.deleted", course_id=course_id)
    return deleted


# =============================================================================
# SECTIONS
# =============================================================================


def create_section(course_id: str, title: str, order_index: int = 0) -> SectionRecord:
    record = SectionRecord(id=new_id(), course_id=course_id, title=title, order_index=order_index)
    with get_db() as conn:
        conn.execute(
            "INSERT INTO sections (id, course_id, title, order_index) VALUES (?, ?, ?, ?)",
            (record.id, record.course_id, record.title, record.order_index),
        )
    return record


def list_sections(course_id: str) -> list[SectionRecord]:
    with get_db() as conn:
        rows = conn.execute(
            "SELECT * FROM sections WHERE course_id = ? ORDER BY order_index",
            (course_id,),
        ).fetchall()
    return [
        SectionRecord(
            id=row["id"],
            course_id=row["course_id"],
            title=row["title"],
            order_index=int(row["order_index"]),
        )
        for row in rows
    ]


def delete_section(section_id: str) -> bool:
    """Delete a section. Its lessons stay in the course, unsectioned."""
    with get_db() as conn:
        cursor = conn.execute("DELETE FROM sections WHERE id = ?", (section_id,))
    return cursor.rowcount > 0


# =============================================================================
# LESSONS
# =============================================================================


def create_lesson(
    course_id: str,
    title: str,
    section_id: str | None = None,
    description: str = "",
    topic: str = "",
    video_path: str = "",
    duration: int = 0,
    order_index: int = 0,
) -> LessonRecord:
    record = LessonRecord(
        id=new_id(),
        course_id=course_id,
        section_id=section_id,
        title=title,
        description=description,
        topic=topic,
        video_path=video_path,
        duration=duration,
        order_index=order_index,
        created_at=utc_now(),
    )
    with get_db() as conn:
        conn.execute(
            """
            INSERT INTO lessons (
                id, course_id, section_id, title, description, topic,
                video_path, duration, order_index, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                record.id,
                record.course_id,
                record.section_id,
                record.title,
                record.description,
                record.topic,
                record.video_path,
                record.duration,
                record.order_index,
                record.created_at,
            ),
        )
    logger.debug("lessons.created", lesson_id=record.id, course_id=course_id)
    return record


def get_lesson(lesson_id: str) -> LessonRecord | None:
    with get_db() as conn:
        row = conn.execute("SELECT * FROM lessons WHERE id = ?", (lesson_id,)).fetchone()
    return _row_to_lesson(row) if row else None


def list_lessons(course_id: str) -> list[LessonRecord]:
    with get_db() as conn:
        rows = conn.execute(
            "SELECT * FROM lessons WHERE course_id = ? ORDER BY order_index, created_at",
            (course_id,),
        ).fetchall()
    return [_row_to_lesson(row) for row in rows]


def update_lesson(lesson_id: str, **fields: Any) -> LessonRecord | None:
    allowed = {
        "title",
        "description",
        "topic",
        "video_path",
        "duration",
        "order_index",
        "section_id",
    }
    unknown = set(fields) - allowed
    if unknown:
        raise ValueError(f"Unknown lesson fields: {sorted(unknown)}")
    if fields:
        assignments = ", ".join(f"{name} = ?" for name in fields)
        with get_db() as conn:
            conn.execute(
                f"UPDATE lessons SET {assignments} WHERE id = ?",
                (*fields.values(), lesson_id),
            )
    return get_lesson(lesson_id)


def delete_lesson(lesson_id: str) -> bool:
    with get_db() as conn:
        cursor = conn.execute("DELETE FROM lessons WHERE id = ?", (lesson_id,))
    return cursor.rowcount > 0


# =============================================================================
# EXERCISES
# =============================================================================


def create_exercise(
    course_id: str,
    type: str,
    question: str,
    lesson_id: str | None = None,
    options: list[str] | None = None,
    pairs: list[dict[str, str]] | None = None,
    correct_answer: str = "",
    explanation: str = "",
    order_index: int = 0,
) -> ExerciseRecord:
    record = ExerciseRecord(
        id=new_id(),
        course_id=course_id,
        lesson_id=lesson_id,
        type=type,
        question=question,
        correct_answer=correct_answer,
        explanation=explanation,
        order_index=order_index,
        options=options or [],
        pairs=pairs or [],
    )
    with get_db() as conn:
        conn.execute(
            """
            INSERT INTO exercises (
                id, course_id, lesson_id, type, question, options, pairs,
                correct_answer, explanation, order_index
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                record.id,
                record.course_id,
                record.lesson_id,
                record.type,
                record.question,
                json.dumps(record.options),
                json.dumps(record.pairs),
                record.correct_answer,
                record.explanation,
                record.order_index,
            ),
        )
    return record


def get_exercise(exercise_id: str) -> ExerciseRecord | None:
    with get_db() as conn:
        row = conn.execute("SELECT * FROM exercises WHERE id = ?", (exercise_id,)).fetchone()
    return _row_to_exercise(row) if row else None


def list_exercises(course_id: str | None = None, lesson_id: str | None = None) -> list[ExerciseRecord]:
    """List exercises of a lesson, or of a whole course."""
    with get_db() as conn:
        if lesson_id is not None:
            rows = conn.execute(
                "SELECT * FROM exercises WHERE lesson_id = ? ORDER BY order_index",
                (lesson_id,),
            ).fetchall()
        else:
            rows = conn.execute(
                "SELECT * FROM exercises WHERE course_id = ? ORDER BY order_index",
                (course_id,),
            ).fetchall()
    return [_row_to_exercise(row) for row in rows]


def delete_exercise(exercise_id: str) -> bool:
    with get_db() as conn:
        cursor = conn.execute("DELETE FROM exercises WHERE id = ?", (exercise_id,))
    return cursor.rowcount > 0


# =============================================================================
# ENROLLMENTS
# =============================================================================


def enroll(user_id: str, course_id: str) -> bool:
    """Enroll a user. Returns True if a new enrollment was created."""
    with get_db() as conn:
        cursor = conn.execute(
            """
            INSERT OR IGNORE INTO enrollments (id, user_id, course_id, created_at)
            VALUES (?, ?, ?, ?)
            """,
            (new_id(), user_id, course_id, utc_now()),
        )
    created = cursor.rowcount > 0
    if created:
        logger.info("enrollments.created", user_id=user_id, course_id=course_id)
    return created


def is_enrolled(user_id: str, course_id: str) -> bool:
    with get_db() as conn:
        row = conn.execute(
            "SELECT 1 FROM enrollments WHERE user_id = ? AND course_id = ?",
            (user_id, course_id),
        ).fetchone()
    return row is not None


def _row_to_course(row) -> CourseRecord:
    return CourseRecord(
        id=row["id"],
        title=row["title"],
        description=row["description"],
        language=row["language"],
        level=row["level"],
        thumbnail_path=row["thumbnail_path"],
        is_public=bool(row["is_public"]),
        created_at=row["created_at"],
    )


def _row_to_lesson(row) -> LessonRecord:
    return LessonRecord(
        id=row["id"],
        course_id=row["course_id"],
        section_id=row["section_id"],
        title=row["title"],
        description=row["description"],
        topic=row["topic"],
        video_path=row["video_path"],
        duration=int(row["duration"]),
        order_index=int(row["order_index"]),
        created_at=row["created_at"],
    )


def _row_to_exercise(row) -> ExerciseRecord:
    return ExerciseRecord(
        id=row["id"],
        course_id=row["course_id"],
        lesson_id=row["lesson_id"],
        type=row["type"],
        question=row["question"],
        correct_answer=row["correct_answer"],
        explanation=row["explanation"],
        order_index=int(row["order_index"]),
        options=json.loads(row["options"]) if row["options"] else [],
        pairs=json.loads(row["pairs"]) if row["pairs"] else [],
    )
