"""Fixtures for the HTTP API tests."""

import pytest
from fastapi.testclient import TestClient

from telxtab.db import courses_repository
from telxtab.web import deps
from telxtab.web.api import create_app


@pytest.fixture
def app(mock_llm_client):
    app = create_app()
    app.dependency_overrides[deps.get_llm_client] = lambda: mock_llm_client
    return app


@pytest.fixture
def client(app):
    """Test client; the context manager runs the app lifespan."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def user_headers(user, headers_for):
    return headers_for(user.id)


@pytest.fixture
def other_headers(other_user, headers_for):
    return headers_for(other_user.id)


@pytest.fixture
def admin_headers(admin_user, headers_for):
    return headers_for(admin_user.id)


@pytest.fixture
def course():
    """A public course with one section, one lesson and one exercise."""
    course = courses_repository.create_course("Everyday English", description="Basics")
    section = courses_repository.create_section(course.id, "Greetings")
    lesson = courses_repository.create_lesson(
        course.id, "Saying hello", section_id=section.id, duration=240, video_path="c/hello.mp4"
    )
    exercise = courses_repository.create_exercise(
        course.id,
        "multiple_choice",
        "How do you greet a friend?",
        lesson_id=lesson.id,
        options=["Hi", "Bye"],
        correct_answer="Hi",
        explanation="'Hi' is a greeting.",
    )
    return {"course": course, "section": section, "lesson": lesson, "exercise": exercise}
