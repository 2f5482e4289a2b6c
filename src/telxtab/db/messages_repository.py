"""Repository functions for the messages table (direct messages)."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

import structlog

from telxtab.db.database import get_db, new_id, utc_now

logger = structlog.get_logger(__name__)


@dataclass
class MessageRecord:
    id: str
    sender_id: str
    receiver_id: str
    content: str
    is_read: bool
    created_at: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def insert_message(sender_id: str, receiver_id: str, content: str) -> MessageRecord:
    record = MessageRecord(
        id=new_id(),
        sender_id=sender_id,
        receiver_id=receiver_id,
        content=content,
        is_read=False,
        created_at=utc_now(),
    )
    with get_db() as conn:
        conn.execute(
            """
            INSERT INTO messages (id, sender_id, receiver_id, content, is_read, created_at)
            VALUES (?, ?, ?, ?, 0, ?)
            """,
            (record.id, record.sender_id, record.receiver_id, record.content, record.created_at),
        )
    logger.debug("messages.inserted", message_id=record.id, sender_id=sender_id)
    return record


def list_thread(user_a: str, user_b: str) -> list[MessageRecord]:
    """Messages in both directions between two users, oldest first."""
    with get_db() as conn:
        rows = conn.execute(
            """
            SELECT * FROM messages
            WHERE (sender_id = ? AND receiver_id = ?)
               OR (sender_id = ? AND receiver_id = ?)
            ORDER BY created_at ASC, rowid ASC
            """,
            (user_a, user_b, user_b, user_a),
        ).fetchall()
    return [_row_to_record(row) for row in rows]


def mark_thread_read(receiver_id: str, sender_id: str) -> int:
    """Mark everything ``sender_id`` sent to ``receiver_id`` as read."""
    with get_db() as conn:
        cursor = conn.execute(
            """
            UPDATE messages SET is_read = 1
            WHERE receiver_id = ? AND sender_id = ? AND is_read = 0
            """,
            (receiver_id, sender_id),
        )
    return cursor.rowcount


def list_user_messages(user_id: str) -> list[MessageRecord]:
    """Every message sent or received by a user, newest first."""
    with get_db() as conn:
        rows = conn.execute(
            """
            SELECT * FROM messages
            WHERE sender_id = ? OR receiver_id = ?
            ORDER BY created_at DESC, rowid DESC
            """,
            (user_id, user_id),
        ).fetchall()
    return [_row_to_record(row) for row in rows]


def count_sent(user_id: str) -> int:
    with get_db() as conn:
        return int(
            conn.execute("SELECT COUNT(*) FROM messages WHERE sender_id = ?", (user_id,)).fetchone()[0]
        )


def _row_to_record(row) -> MessageRecord:
    return MessageRecord(
        id=row["id"],
        sender_id=row["sender_id"],
        receiver_id=row["receiver_id"],
        content=row["content"],
        is_read=bool(row["is_read"]),
        created_at=row["created_at"],
    )
