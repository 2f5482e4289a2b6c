"""Tests for notifications and notification templates."""

import pytest

from telxtab.core import notifications
from telxtab.core.notifications import NotificationError


class TestUserNotifications:
    """Tests for per-user notification operations."""

    def test_notify_and_list(self, user):
        """Notifications are listed newest first."""
        notifications.notify_user(user.id, "First", "Hello")
        notifications.notify_user(user.id, "Second", "Again", type="success")

        titles = [n.title for n in notifications.list_notifications(user.id)]
        assert titles == ["Second", "First"]

    def test_unread_count_and_mark_read(self, user):
        """Marking one read lowers the unread count."""
        first = notifications.notify_user(user.id, "A", "a")
        notifications.notify_user(user.id, "B", "b")
        assert notifications.unread_count(user.id) == 2

        assert notifications.mark_read(user.id, first.id) is True
        assert notifications.unread_count(user.id) == 1
        assert [n.title for n in notifications.list_notifications(user.id, unread_only=True)] == ["B"]

    def test_mark_all_read(self, user):
        """mark_all_read returns how many changed."""
        notifications.notify_user(user.id, "A", "a")
        notifications.notify_user(user.id, "B", "b")
        assert notifications.mark_all_read(user.id) == 2
        assert notifications.unread_count(user.id) == 0

    def test_operations_scoped_to_owner(self, user, other_user):
        """Another user's notification behaves as not found."""
        record = notifications.notify_user(user.id, "Private", "Only alice")
        assert notifications.mark_read(other_user.id, record.id) is False
        assert notifications.delete_notification(other_user.id, record.id) is False
        assert notifications.delete_notification(user.id, record.id) is True

    def test_clear_all_only_touches_owner(self, user, other_user):
        """Clearing removes the user's notifications and nobody else's."""
        notifications.notify_user(user.id, "A", "a")
        notifications.notify_user(user.id, "B", "b")
        notifications.notify_user(other_user.id, "C", "c")

        assert notifications.clear_all(user.id) == 2
        assert notifications.list_notifications(user.id) == []
        assert [n.title for n in notifications.list_notifications(other_user.id)] == ["C"]

    def test_invalid_type(self, user):
        """Unknown types are rejected."""
        with pytest.raises(NotificationError):
            notifications.notify_user(user.id, "T", "M", type="urgent")

    def test_title_required(self, user):
        """Title and message are required."""
        with pytest.raises(NotificationError):
            notifications.notify_user(user.id, "  ", "M")


class TestTemplates:
    """Tests for templates and bulk sending."""

    def test_create_list_delete(self):
        """Templates can be created, listed and deleted."""
        template = notifications.create_template("Welcome", "Glad you're here", "info")
        assert [t.id for t in notifications.list_templates()] == [template.id]
        assert notifications.delete_template(template.id) is True
        assert notifications.list_templates() == []

    def test_send_template_dedups(self, user, other_user):
        """Each distinct user gets exactly one notification."""
        template = notifications.create_template(
            "New course", "Check it out", "achievement", action_url="/courses", action_text="Open"
        )
        records = notifications.send_template(template.id, [user.id, other_user.id, user.id, "ghost"])

        assert len(records) == 2
        mine = notifications.list_notifications(user.id)
        assert len(mine) == 1
        assert mine[0].action_url == "/courses"
        assert mine[0].type == "achievement"

    def test_send_requires_users(self):
        """An empty selection raises."""
        template = notifications.create_template("T", "M")
        with pytest.raises(NotificationError):
            notifications.send_template(template.id, [])

    def test_send_unknown_template(self, user):
        """Missing templates raise."""
        with pytest.raises(NotificationError):
            notifications.send_template("missing", [user.id])

    def test_stats(self, user, other_user):
        """Stats count notifications, unread ones and users."""
        notifications.notify_user(user.id, "A", "a")
        record = notifications.notify_user(other_user.id, "B", "b")
        notifications.mark_read(other_user.id, record.id)

        assert notifications.notification_stats() == {
            "total_notifications": 2,
            "unread_notifications": 1,
            "total_users": 2,
        }
