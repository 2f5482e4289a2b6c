"""Repository functions for notifications and notification_templates tables."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

import structlog

from telxtab.db.database import get_db, new_id, utc_now

logger = structlog.get_logger(__name__)


@dataclass
class NotificationRecord:
    id: str
    user_id: str
    title: str
    message: str
    type: str
    action_url: str | None
    action_text: str | None
    read: bool
    created_at: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class TemplateRecord:
    id: str
    title: str
    message: str
    type: str
    action_url: str | None
    action_text: str | None
    created_at: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def insert_notifications(
    user_ids: list[str],
    title: str,
    message: str,
    type: str,
    action_url: str | None = None,
    action_text: str | None = None,
) -> list[NotificationRecord]:
    """Insert one notification per user in a single transaction."""
    now = utc_now()
    records = [
        NotificationRecord(
            id=new_id(),
            user_id=user_id,
            title=title,
            message=message,
            type=type,
            action_url=action_url,
            action_text=action_text,
            read=False,
            created_at=now,
        )
        for user_id in user_ids
    ]
    with get_db() as conn:
        conn.executemany(
            """
            INSERT INTO notifications (
                id, user_id, title, message, type, action_url, action_text, read, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, 0, ?)
            """,
            [
                (r.id, r.user_id, r.title, r.message, r.type, r.action_url, r.action_text, r.created_at)
                for r in records
            ],
        )
    logger.debug("notifications.inserted", count=len(records), type=type)
    return records


def list_for_user(user_id: str, unread_only: bool = False) -> list[NotificationRecord]:
    sql = "SELECT * FROM notifications WHERE user_id = ?"
    if unread_only:
        sql += " AND read = 0"
    sql += " ORDER BY created_at DESC, rowid DESC"
    with get_db() as conn:
        rows = conn.execute(sql, (user_id,)).fetchall()
    return [_row_to_notification(row) for row in rows]


def count_unread(user_id: str) -> int:
    with get_db() as conn:
        return int(
            conn.execute(
                "SELECT COUNT(*) FROM notifications WHERE user_id = ? AND read = 0", (user_id,)
            ).fetchone()[0]
        )


def mark_read(notification_id: str, user_id: str) -> bool:
    """Mark one notification read. Scoped to its owner."""
    with get_db() as conn:
        cursor = conn.execute(
            "UPDATE notifications SET read = 1 WHERE id = ? AND user_id = ?",
            (notification_id, user_id),
        )
    return cursor.rowcount > 0


def mark_all_read(user_id: str) -> int:
    with get_db() as conn:
        cursor = conn.execute(
            "UPDATE notifications SET read = 1 WHERE user_id = ? AND read = 0", (user_id,)
        )
    return cursor.rowcount


def delete_notification(notification_id: str, user_id: str) -> bool:
    with get_db() as conn:
        cursor = conn.execute(
            "DELETE FROM notifications WHERE id = ? AND user_id = ?",
            (notification_id, user_id),
        )
    return cursor.rowcount > 0


def delete_all_for_user(user_id: str) -> int:
    with get_db() as conn:
        cursor = conn.execute("DELETE FROM notifications WHERE user_id = ?", (user_id,))
    return cursor.rowcount


def notification_stats() -> dict[str, int]:
    with get_db() as conn:
        row = conn.execute(
            """
            SELECT COUNT(*) AS total,
                   COALESCE(SUM(CASE WHEN read = 0 THEN 1 ELSE 0 END), 0) AS unread
            FROM notifications
            """
        ).fetchone()
        users = conn.execute("SELECT COUNT(*) FROM profiles").fetchone()[0]
    return {
        "total_notifications": int(row["total"]),
        "unread_notifications": int(row["unread"]),
        "total_users": int(users),
    }


# =============================================================================
# TEMPLATES
# =============================================================================


def insert_template(
    title: str,
    message: str,
    type: str,
    action_url: str | None = None,
    action_text: str | None = None,
) -> TemplateRecord:
    record = TemplateRecord(
        id=new_id(),
        title=title,
        message=message,
        type=type,
        action_url=action_url,
        action_text=action_text,
        created_at=utc_now(),
    )
    with get_db() as conn:
        conn.execute(
            """
            INSERT INTO notification_templates (
                id, title, message, type, action_url, action_text, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                record.id,
                record.title,
                record.message,
                record.type,
                record.action_url,
                record.action_text,
                record.created_at,
            ),
        )
    return record


def get_template(template_id: str) -> TemplateRecord | None:
    with get_db() as conn:
        row = conn.execute(
            "SELECT * FROM notification_templates WHERE id = ?", (template_id,)
        ).fetchone()
    return _row_to_template(row) if row else None


def list_templates() -> list[TemplateRecord]:
    with get_db() as conn:
        rows = conn.execute(
            "SELECT * FROM notification_templates ORDER BY created_at DESC"
        ).fetchall()
    return [_row_to_template(row) for row in rows]


def delete_template(template_id: str) -> bool:
    with get_db() as conn:
        cursor = conn.execute(
            "DELETE FROM notification_templates WHERE id = ?", (template_id,)
        )
    return cursor.rowcount > 0


def _row_to_notification(row) -> NotificationRecord:
    return NotificationRecord(
        id=row["id"],
        user_id=row["user_id"],
        title=row["title"],
        message=row["message"],
        type=row["type"],
        action_url=row["action_url"],
        action_text=row["action_text"],
        read=bool(row["read"]),
        created_at=row["created_at"],
    )


def _row_to_template(row) -> TemplateRecord:
    return TemplateRecord(
        id=row["id"],
        title=row["title"],
        message=row["message"],
        type=row["type"],
        action_url=row["action_url"],
        action_text=row["action_text"],
        created_at=row["created_at"],
    )
