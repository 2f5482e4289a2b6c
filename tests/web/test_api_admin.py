"""API tests for the admin panel and the storage endpoint."""

import pytest

from telxtab.core import ai_chats, blog, notifications, storage
from telxtab.db import courses_repository, profiles_repository


class TestAdminAccess:
    @pytest.mark.parametrize(
        "path",
        ["/api/admin/users", "/api/admin/users/stats", "/api/admin/blog", "/api/admin/courses"],
    )
    def test_non_admin_forbidden(self, client, user_headers, path):
        """Regular users get 403 on admin endpoints."""
        assert client.get(path, headers=user_headers).status_code == 403


class TestAdminUsers:
    """Tests for user management."""

    def test_list_and_filter(self, client, admin_headers, user, other_user):
        """Users can be filtered by role and searched."""
        profiles_repository.set_flag(other_user.id, "is_banned", True)

        everyone = client.get("/api/admin/users", headers=admin_headers).json()
        assert {u["username"] for u in everyone} == {"alice", "bob", "admin"}

        banned = client.get("/api/admin/users?role=banned", headers=admin_headers).json()
        assert [u["username"] for u in banned] == ["bob"]

        found = client.get("/api/admin/users?search=ali", headers=admin_headers).json()
        assert [u["username"] for u in found] == ["alice"]

    def test_stats(self, client, admin_headers, user):
        data = client.get("/api/admin/users/stats", headers=admin_headers).json()
        assert data == {"total_users": 2, "admin_users": 1, "banned_users": 0}

    def test_toggle_ban(self, client, admin_headers, user):
        """Ban toggles on and off."""
        first = client.post(f"/api/admin/users/{user.id}/ban", headers=admin_headers).json()
        assert first["is_banned"] is True
        second = client.post(f"/api/admin/users/{user.id}/ban", headers=admin_headers).json()
        assert second["is_banned"] is False

    def test_toggle_admin(self, client, admin_headers, user):
        data = client.post(f"/api/admin/users/{user.id}/admin", headers=admin_headers).json()
        assert data["is_admin"] is True

    def test_cannot_change_self(self, client, admin_headers, admin_user):
        """Admins can't ban or demote themselves."""
        assert client.post(f"/api/admin/users/{admin_user.id}/ban", headers=admin_headers).status_code == 400
        assert client.post(f"/api/admin/users/{admin_user.id}/admin", headers=admin_headers).status_code == 400

    def test_unknown_user(self, client, admin_headers):
        assert client.post("/api/admin/users/missing/ban", headers=admin_headers).status_code == 404


class TestAdminConversations:
    def test_list_and_delete(self, client, admin_headers, user):
        """Admins see every chat with its owner and can delete it."""
        chat = ai_chats.create_chat(user.id, "Food")

        data = client.get("/api/admin/conversations", headers=admin_headers).json()
        assert data[0]["id"] == chat.id
        assert data[0]["username"] == "alice"
        assert data[0]["message_count"] == 0

        assert client.delete(f"/api/admin/conversations/{chat.id}", headers=admin_headers).status_code == 204
        assert client.delete(f"/api/admin/conversations/{chat.id}", headers=admin_headers).status_code == 404


class TestAdminNotifications:
    """Tests for templates and sending."""

    def test_template_lifecycle(self, client, admin_headers):
        """Templates are created, listed and deleted."""
        created = client.post(
            "/api/admin/notifications/templates",
            headers=admin_headers,
            json={"title": "Welcome", "message": "Glad you're here", "type": "success"},
        )
        assert created.status_code == 201
        template_id = created.json()["id"]

        listed = client.get("/api/admin/notifications/templates", headers=admin_headers).json()
        assert [t["id"] for t in listed] == [template_id]

        assert client.delete(
            f"/api/admin/notifications/templates/{template_id}", headers=admin_headers
        ).status_code == 204
        assert client.delete(
            f"/api/admin/notifications/templates/{template_id}", headers=admin_headers
        ).status_code == 404

    def test_blank_template(self, client, admin_headers):
        response = client.post(
            "/api/admin/notifications/templates",
            headers=admin_headers,
            json={"title": " ", "message": "x"},
        )
        assert response.status_code == 400

    def test_send_template(self, client, admin_headers, user, other_user):
        """Sending reaches each selected user once."""
        template = notifications.create_template("News", "New course available")
        response = client.post(
            "/api/admin/notifications/send",
            headers=admin_headers,
            json={"template_id": template.id, "user_ids": [user.id, other_user.id, user.id]},
        )
        assert response.json() == {"sent": 2}
        assert notifications.unread_count(user.id) == 1

    def test_send_without_users(self, client, admin_headers):
        template = notifications.create_template("News", "New course available")
        response = client.post(
            "/api/admin/notifications/send",
            headers=admin_headers,
            json={"template_id": template.id, "user_ids": []},
        )
        assert response.status_code == 400

    def test_direct_notification(self, client, admin_headers, user):
        """A direct notification goes to one user."""
        response = client.post(
            "/api/admin/notifications/direct",
            headers=admin_headers,
            json={"user_id": user.id, "title": "Hi", "message": "Personal note", "type": "info"},
        )
        assert response.status_code == 201
        assert response.json()["user_id"] == user.id

        missing = client.post(
            "/api/admin/notifications/direct",
            headers=admin_headers,
            json={"user_id": "ghost", "title": "Hi", "message": "x"},
        )
        assert missing.status_code == 404

    def test_stats(self, client, admin_headers, user):
        notifications.notify_user(user.id, "A", "a")
        data = client.get("/api/admin/notifications/stats", headers=admin_headers).json()
        assert data["total_notifications"] == 1
        assert data["unread_notifications"] == 1


class TestAdminBlog:
    """Tests for blog management."""

    def test_create_and_publish(self, client, admin_headers, admin_user):
        """Posts start as drafts and can be published."""
        created = client.post(
            "/api/admin/blog",
            headers=admin_headers,
            json={"title": "Idioms 101", "content": "Break a leg!", "tags": ["idioms"]},
        )
        assert created.status_code == 201
        post = created.json()
        assert post["slug"] == "idioms-101"
        assert post["author_id"] == admin_user.id
        assert client.get("/api/blog/idioms-101").status_code == 404

        published = client.patch(
            f"/api/admin/blog/{post['id']}/status", headers=admin_headers, json={"status": "published"}
        )
        assert published.json()["published_at"] is not None
        assert client.get("/api/blog/idioms-101").status_code == 200

    def test_filter_by_status(self, client, admin_headers, admin_user):
        blog.create_post("Draft", "x", admin_user.id)
        blog.create_post("Live", "x", admin_user.id, status="published")
        drafts = client.get("/api/admin/blog?status=draft", headers=admin_headers).json()
        assert [p["title"] for p in drafts] == ["Draft"]

    def test_delete(self, client, admin_headers, admin_user):
        post = blog.create_post("Gone", "x", admin_user.id)
        assert client.delete(f"/api/admin/blog/{post.id}", headers=admin_headers).status_code == 204
        assert client.delete(f"/api/admin/blog/{post.id}", headers=admin_headers).status_code == 404

    def test_cover_upload(self, client, admin_headers, admin_user):
        """Covers land in the blog-covers bucket."""
        response = client.post(
            "/api/admin/blog/uploads?kind=cover",
            headers=admin_headers,
            files={"file": ("cover.JPG", b"jpeg-bytes", "image/jpeg")},
        )
        assert response.status_code == 201
        data = response.json()
        assert data["bucket"] == "blog-covers"
        assert data["path"].startswith(f"{admin_user.id}/")
        assert data["path"].endswith(".jpg")
        assert client.get(data["url"]).content == b"jpeg-bytes"


class TestAdminCourses:
    """Tests for course, section, lesson and exercise management."""

    def _course(self, client, headers, **overrides):
        body = {"title": "Business English", "level": "intermediate", **overrides}
        response = client.post("/api/admin/courses", headers=headers, json=body)
        assert response.status_code == 201
        return response.json()

    def test_course_crud(self, client, admin_headers, user_headers):
        """Admins see private courses; users don't."""
        course = self._course(client, admin_headers, is_public=False)

        admin_list = client.get("/api/admin/courses", headers=admin_headers).json()
        assert [c["id"] for c in admin_list] == [course["id"]]
        assert client.get("/api/courses", headers=user_headers).json() == []

        updated = client.patch(
            f"/api/admin/courses/{course['id']}", headers=admin_headers, json={"is_public": True}
        )
        assert updated.json()["is_public"] is True

        assert client.delete(f"/api/admin/courses/{course['id']}", headers=admin_headers).status_code == 204
        assert client.delete(f"/api/admin/courses/{course['id']}", headers=admin_headers).status_code == 404

    def test_sections_and_lessons(self, client, admin_headers):
        """Lessons must use a section of their own course."""
        course = self._course(client, admin_headers)
        other = self._course(client, admin_headers, title="Other")
        section = client.post(
            f"/api/admin/courses/{course['id']}/sections", headers=admin_headers, json={"title": "Unit 1"}
        ).json()

        lesson = client.post(
            f"/api/admin/courses/{course['id']}/lessons",
            headers=admin_headers,
            json={"title": "Meetings", "section_id": section["id"], "duration": 300},
        )
        assert lesson.status_code == 201

        wrong = client.post(
            f"/api/admin/courses/{other['id']}/lessons",
            headers=admin_headers,
            json={"title": "Meetings", "section_id": section["id"]},
        )
        assert wrong.status_code == 400

        renamed = client.patch(
            f"/api/admin/lessons/{lesson.json()['id']}", headers=admin_headers, json={"title": "Calls"}
        )
        assert renamed.json()["title"] == "Calls"

    def test_media_uploads(self, client, admin_headers):
        """Thumbnails and videos set their storage paths."""
        course = self._course(client, admin_headers)
        lesson = courses_repository.create_lesson(course["id"], "Intro")

        thumb = client.post(
            f"/api/admin/courses/{course['id']}/thumbnail",
            headers=admin_headers,
            files={"file": ("thumb.png", b"png", "image/png")},
        ).json()
        assert thumb["thumbnail_url"].startswith("/storage/course-thumbnails/")

        video = client.post(
            f"/api/admin/lessons/{lesson.id}/video",
            headers=admin_headers,
            files={"file": ("intro.mp4", b"mp4", "video/mp4")},
        ).json()
        assert video["video_path"].endswith(".mp4")
        assert video["video_url"].startswith("/storage/lesson-videos/")

    def test_delete_removes_media(self, client, admin_headers):
        """Deleting a lesson or course removes its stored video and thumbnail."""
        course = self._course(client, admin_headers)
        kept = courses_repository.create_lesson(course["id"], "Kept", video_path="v/kept.mp4")
        dropped = courses_repository.create_lesson(course["id"], "Dropped", video_path="v/dropped.mp4")
        storage.upload("lesson-videos", "v/kept.mp4", b"mp4")
        storage.upload("lesson-videos", "v/dropped.mp4", b"mp4")

        thumb = client.post(
            f"/api/admin/courses/{course['id']}/thumbnail",
            headers=admin_headers,
            files={"file": ("thumb.png", b"png", "image/png")},
        ).json()
        kept_video = "/storage/lesson-videos/v/kept.mp4"
        dropped_video = "/storage/lesson-videos/v/dropped.mp4"
        assert client.get(dropped_video).status_code == 200

        assert client.delete(f"/api/admin/lessons/{dropped.id}", headers=admin_headers).status_code == 204
        assert client.get(dropped_video).status_code == 404
        assert client.get(kept_video).status_code == 200

        assert client.delete(f"/api/admin/courses/{course['id']}", headers=admin_headers).status_code == 204
        assert client.get(kept_video).status_code == 404
        assert client.get(thumb["thumbnail_url"]).status_code == 404

    def test_exercises(self, client, admin_headers):
        """Exercises are validated and listed with their answers."""
        course = self._course(client, admin_headers)
        lesson = courses_repository.create_lesson(course["id"], "Intro")
        url = f"/api/admin/courses/{course['id']}/exercises"

        created = client.post(
            url,
            headers=admin_headers,
            json={
                "type": "multiple_choice",
                "question": "Pick the greeting",
                "lesson_id": lesson.id,
                "options": ["Hello", "Table"],
                "correct_answer": "Hello",
            },
        )
        assert created.status_code == 201

        bad_choice = client.post(
            url,
            headers=admin_headers,
            json={"type": "multiple_choice", "question": "Q", "options": ["A"], "correct_answer": "A"},
        )
        assert bad_choice.status_code == 400

        no_pairs = client.post(url, headers=admin_headers, json={"type": "matching", "question": "Match"})
        assert no_pairs.status_code == 400

        matching = client.post(
            url,
            headers=admin_headers,
            json={"type": "matching", "question": "Match", "pairs": [{"left": "cat", "right": "gato"}]},
        )
        assert matching.status_code == 201

        listed = client.get(url, headers=admin_headers).json()
        assert len(listed) == 2
        assert {e["correct_answer"] for e in listed} >= {"Hello"}

        exercise_id = created.json()["id"]
        assert client.delete(f"/api/admin/exercises/{exercise_id}", headers=admin_headers).status_code == 204


class TestStorageEndpoint:
    def test_missing_object(self, client):
        assert client.get("/storage/avatars/nobody/none.png").status_code == 404

    def test_unknown_bucket(self, client):
        assert client.get("/storage/secrets/file.txt").status_code == 400
