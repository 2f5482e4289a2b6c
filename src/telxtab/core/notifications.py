"""User notifications and admin notification templates."""

from __future__ import annotations

import structlog

from telxtab.db import notifications_repository, profiles_repository
from telxtab.db.notifications_repository import NotificationRecord, TemplateRecord

logger = structlog.get_logger(__name__)

NOTIFICATION_TYPES = ("info", "success", "warning", "error", "achievement")


class NotificationError(Exception):
    """Invalid notification or template."""

    pass


def _validate(title: str, message: str, type: str) -> None:
    if not title.strip() or not message.strip():
        raise NotificationError("Title and message are required")
    if type not in NOTIFICATION_TYPES:
        raise NotificationError(f"Invalid type '{type}'. Expected one of {NOTIFICATION_TYPES}")


def notify_user(
    user_id: str,
    title: str,
    message: str,
    type: str = "info",
    action_url: str | None = None,
    action_text: str | None = None,
) -> NotificationRecord:
    """Create a notification for one user."""
    _validate(title, message, type)
    [record] = notifications_repository.insert_notifications(
        [user_id], title.strip(), message.strip(), type, action_url, action_text
    )
    logger.info("notifications.created", user_id=user_id, notification_id=record.id, type=type)
    return record


def list_notifications(user_id: str, unread_only: bool = False) -> list[NotificationRecord]:
    return notifications_repository.list_for_user(user_id, unread_only=unread_only)


def unread_count(user_id: str) -> int:
    return notifications_repository.count_unread(user_id)


def mark_read(user_id: str, notification_id: str) -> bool:
    """Mark a notification read. False if it doesn't exist or isn't the user's."""
    return notifications_repository.mark_read(notification_id, user_id)


def mark_all_read(user_id: str) -> int:
    return notifications_repository.mark_all_read(user_id)


def delete_notification(user_id: str, notification_id: str) -> bool:
    return notifications_repository.delete_notification(notification_id, user_id)


def clear_all(user_id: str) -> int:
    """Delete every notification of a user. Returns how many were removed."""
    removed = notifications_repository.delete_all_for_user(user_id)
    logger.info("notifications.cleared", user_id=user_id, removed=removed)
    return removed


# =============================================================================
# TEMPLATES
# =============================================================================


def create_template(
    title: str,
    message: str,
    type: str = "info",
    action_url: str | None = None,
    action_text: str | None = None,
) -> TemplateRecord:
    _validate(title, message, type)
    template = notifications_repository.insert_template(
        title.strip(), message.strip(), type, action_url or None, action_text or None
    )
    logger.info("notifications.template_created", template_id=template.id)
    return template


def list_templates() -> list[TemplateRecord]:
    return notifications_repository.list_templates()


def delete_template(template_id: str) -> bool:
    return notifications_repository.delete_template(template_id)


def send_template(template_id: str, user_ids: list[str]) -> list[NotificationRecord]:
    """Send a template to the selected users, once per distinct user.

    Unknown user ids are skipped.

    Raises:
        NotificationError: If the template doesn't exist or no users are selected
    """
    template = notifications_repository.get_template(template_id)
    if template is None:
        raise NotificationError(f"Template '{template_id}' not found")

    distinct = list(dict.fromkeys(user_ids))
    recipients = [uid for uid in distinct if profiles_repository.get_profile(uid) is not None]
    if not recipients:
        raise NotificationError("Select at least one user")

    records = notifications_repository.insert_notifications(
        recipients,
        template.title,
        template.message,
        template.type,
        template.action_url,
        template.action_text,
    )
    logger.info("notifications.template_sent", template_id=template_id, count=len(records))
    return records


def notification_stats() -> dict[str, int]:
    return notifications_repository.notification_stats()
