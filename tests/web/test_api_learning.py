"""API tests for courses, progress, exercises and the public blog."""

import pytest

from telxtab.core import blog
from telxtab.db import courses_repository


class TestCourseEndpoints:
    """Tests for /api/courses."""

    def test_catalogue_hides_private(self, client, user_headers, course):
        """Only public courses are listed."""
        courses_repository.create_course("Hidden", is_public=False)

        data = client.get("/api/courses", headers=user_headers).json()
        assert [c["title"] for c in data] == ["Everyday English"]
        assert data[0]["lesson_count"] == 1
        assert data[0]["total_duration"] == 240

    def test_overview(self, client, user_headers, course):
        """The overview lists sections and lessons with video URLs."""
        data = client.get(f"/api/courses/{course['course'].id}", headers=user_headers).json()
        assert data["is_enrolled"] is False
        assert data["sections"][0]["title"] == "Greetings"
        assert data["lessons"][0]["video_url"] == "/storage/lesson-videos/c/hello.mp4"

    def test_private_course_not_found(self, client, user_headers):
        """Private courses look missing to users."""
        hidden = courses_repository.create_course("Hidden", is_public=False)
        assert client.get(f"/api/courses/{hidden.id}", headers=user_headers).status_code == 404

    def test_lesson_requires_enrollment(self, client, user_headers, course):
        """Lessons are locked until the user enrolls."""
        url = f"/api/courses/{course['course'].id}/lessons/{course['lesson'].id}"
        assert client.get(url, headers=user_headers).status_code == 403

        enrolled = client.post(f"/api/courses/{course['course'].id}/enroll", headers=user_headers)
        assert enrolled.json() == {"enrolled": True, "created": True}
        again = client.post(f"/api/courses/{course['course'].id}/enroll", headers=user_headers)
        assert again.json()["created"] is False

        data = client.get(url, headers=user_headers).json()
        assert data["lesson"]["title"] == "Saying hello"
        assert data["progress"] is None
        assert data["exercises"][0]["question"] == "How do you greet a friend?"
        assert "correct_answer" not in data["exercises"][0]

    def test_admin_skips_enrollment(self, client, admin_headers, course):
        """Admins can open any lesson."""
        url = f"/api/courses/{course['course'].id}/lessons/{course['lesson'].id}"
        assert client.get(url, headers=admin_headers).status_code == 200


class TestProgressEndpoints:
    """Tests for /api/progress."""

    def test_not_enrolled(self, client, user_headers, course):
        """Progress needs enrollment."""
        response = client.post(
            "/api/progress",
            headers=user_headers,
            json={"course_id": course["course"].id, "lesson_id": course["lesson"].id, "percent": 10},
        )
        assert response.status_code == 403

    def test_progress_from_player_time(self, client, user_headers, user, course):
        """Player time is turned into a stored percentage."""
        courses_repository.enroll(user.id, course["course"].id)
        response = client.post(
            "/api/progress",
            headers=user_headers,
            json={
                "course_id": course["course"].id,
                "lesson_id": course["lesson"].id,
                "current_time": 60,
                "duration": 240,
            },
        )
        assert response.status_code == 200
        assert response.json()["percent"] == 25
        assert response.json()["written"] is True

        rows = client.get(
            f"/api/progress/courses/{course['course'].id}", headers=user_headers
        ).json()
        assert rows[0]["progress_percent"] == 25

    def test_non_finite_time_rejected(self, client, user_headers, user, course):
        """Infinity as a player time is a validation error, not a crash."""
        courses_repository.enroll(user.id, course["course"].id)
        response = client.post(
            "/api/progress",
            headers={**user_headers, "Content-Type": "application/json"},
            content=(
                '{"course_id": "' + course["course"].id + '", "lesson_id": "'
                + course["lesson"].id + '", "current_time": Infinity, "duration": 60}'
            ),
        )
        assert response.status_code == 422

    def test_missing_position(self, client, user_headers, user, course):
        """A report needs a percent or a time and duration."""
        courses_repository.enroll(user.id, course["course"].id)
        response = client.post(
            "/api/progress",
            headers=user_headers,
            json={"course_id": course["course"].id, "lesson_id": course["lesson"].id},
        )
        assert response.status_code == 400

    def test_complete_awards_xp_once(self, client, user_headers, user, course):
        """The end event grants XP the first time only."""
        courses_repository.enroll(user.id, course["course"].id)
        body = {"course_id": course["course"].id, "lesson_id": course["lesson"].id}

        first = client.post("/api/progress/complete", headers=user_headers, json=body).json()
        second = client.post("/api/progress/complete", headers=user_headers, json=body).json()

        assert first["completed"] is True
        assert first["xp_awarded"] is True
        assert second["xp_awarded"] is False
        assert client.get("/api/auth/me", headers=user_headers).json()["xp"] == 100


class TestExerciseEndpoints:
    """Tests for /api/exercises."""

    def test_attempt(self, client, user_headers, user, course):
        """A correct answer completes the lesson when it was the last one."""
        courses_repository.enroll(user.id, course["course"].id)
        url = f"/api/exercises/{course['exercise'].id}/attempts"

        wrong = client.post(url, headers=user_headers, json={"answer": "Bye"}).json()
        assert wrong["is_correct"] is False
        assert wrong["lesson_completed"] is False

        right = client.post(url, headers=user_headers, json={"answer": "Hi"}).json()
        assert right["is_correct"] is True
        assert right["explanation"] == "'Hi' is a greeting."
        assert right["lesson_completed"] is True

    def test_attempt_not_enrolled(self, client, user_headers, course):
        url = f"/api/exercises/{course['exercise'].id}/attempts"
        assert client.post(url, headers=user_headers, json={"answer": "Hi"}).status_code == 403

    def test_unknown_exercise(self, client, user_headers):
        response = client.post("/api/exercises/missing/attempts", headers=user_headers, json={"answer": "x"})
        assert response.status_code == 404

    def test_practice_xp(self, client, user_headers):
        """Correct practice answers give XP; wrong ones don't."""
        correct = client.post("/api/exercises/practice", headers=user_headers, json={"is_correct": True})
        assert correct.json()["xp"] == 10

        wrong = client.post("/api/exercises/practice", headers=user_headers, json={"is_correct": False})
        assert wrong.json()["xp"] == 10
        assert wrong.json()["rank"]["name"] == "Starter"


class TestBlogEndpoints:
    """Tests for /api/blog."""

    @pytest.fixture
    def post(self, admin_user):
        return blog.create_post("Phrasal Verbs", "Get up, get over.", admin_user.id, status="published")

    def test_list_anonymous(self, client, post):
        """Anyone can read published posts."""
        data = client.get("/api/blog").json()
        assert [p["slug"] for p in data] == ["phrasal-verbs"]
        assert data[0]["author"]["username"] == "admin"

    def test_read_counts_view(self, client, post, user_headers):
        """Reading a post counts a view and shows the like state."""
        data = client.get("/api/blog/phrasal-verbs", headers=user_headers).json()
        assert data["views"] == 1
        assert data["is_liked"] is False

    def test_missing_post(self, client):
        assert client.get("/api/blog/nope").status_code == 404

    def test_like_and_comment(self, client, post, user_headers):
        """Likes toggle and comments carry the author."""
        like = client.post(f"/api/blog/{post.id}/like", headers=user_headers)
        assert like.json() == {"liked": True, "likes_count": 1}

        comment = client.post(
            f"/api/blog/{post.id}/comments", headers=user_headers, json={"content": "Useful!"}
        )
        assert comment.status_code == 201
        assert comment.json()["username"] == "alice"

        comments = client.get(f"/api/blog/{post.id}/comments").json()
        assert [c["content"] for c in comments] == ["Useful!"]

    def test_blank_comment(self, client, post, user_headers):
        response = client.post(
            f"/api/blog/{post.id}/comments", headers=user_headers, json={"content": "   "}
        )
        assert response.status_code == 400

    def test_like_requires_login(self, client, post):
        assert client.post(f"/api/blog/{post.id}/like").status_code == 401
