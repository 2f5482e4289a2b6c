"""Repository functions for ai_chats and ai_chat_messages tables."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

import structlog

from telxtab.db.database import get_db, new_id, utc_now

logger = structlog.get_logger(__name__)


@dataclass
class ChatRecord:
    """An AI practice conversation."""

    id: str
    user_id: str
    topic: str
    language_style: str
    created_at: str
    last_message_at: str | None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class ChatMessageRecord:
    id: str
    chat_id: str
    role: str
    content: str
    created_at: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def create_chat(user_id: str, topic: str, language_style: str) -> ChatRecord:
    record = ChatRecord(
        id=new_id(),
        user_id=user_id,
        topic=topic,
        language_style=language_style,
        created_at=utc_now(),
        last_message_at=None,
    )
    with get_db() as conn:
        conn.execute(
            """
            INSERT INTO ai_chats (id, user_id, topic, language_style, created_at, last_message_at)
            VALUES (?, ?, ?, ?, ?, NULL)
            """,
            (record.id, record.user_id, record.topic, record.language_style, record.created_at),
        )
    logger.info("ai_chats.created", chat_id=record.id, user_id=user_id, topic=topic)
    return record


def get_chat(chat_id: str) -> ChatRecord | None:
    with get_db() as conn:
        row = conn.execute("SELECT * FROM ai_chats WHERE id = ?", (chat_id,)).fetchone()
    return _row_to_chat(row) if row else None


def list_chats(user_id: str) -> list[ChatRecord]:
    """Chats of a user, most recently active first."""
    with get_db() as conn:
        rows = conn.execute(
            """
            SELECT * FROM ai_chats WHERE user_id = ?
            ORDER BY COALESCE(last_message_at, created_at) DESC
            """,
            (user_id,),
        ).fetchall()
    return [_row_to_chat(row) for row in rows]


def list_all_chats() -> list[dict[str, Any]]:
    """Every chat with owner info and message count, for admins."""
    with get_db() as conn:
        rows = conn.execute(
            """
            SELECT c.*, p.username, p.full_name, p.email,
                   (SELECT COUNT(*) FROM ai_chat_messages m WHERE m.chat_id = c.id)
                       AS message_count
            FROM ai_chats c
            JOIN profiles p ON p.id = c.user_id
            ORDER BY COALESCE(c.last_message_at, c.created_at) DESC
            """
        ).fetchall()
    return [dict(row) for row in rows]


def touch_chat(chat_id: str, timestamp: str) -> None:
    with get_db() as conn:
        conn.execute(
            "UPDATE ai_chats SET last_message_at = ? WHERE id = ?", (timestamp, chat_id)
        )


def delete_chat(chat_id: str) -> bool:
    with get_db() as conn:
        cursor = conn.execute("DELETE FROM ai_chats WHERE id = ?", (chat_id,))
    deleted = cursor.rowcount > 0
    if deleted:
        logger.info("ai_chats.deleted", chat_id=chat_id)
    return deleted


def insert_message(chat_id: str, role: str, content: str) -> ChatMessageRecord:
    record = ChatMessageRecord(
        id=new_id(),
        chat_id=chat_id,
        role=role,
        content=content,
        created_at=utc_now(),
    )
    with get_db() as conn:
        conn.execute(
            """
            INSERT INTO ai_chat_messages (id, chat_id, role, content, created_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (record.id, record.chat_id, record.role, record.content, record.created_at),
        )
    return record


def delete_message(message_id: str) -> bool:
    with get_db() as conn:
        cursor = conn.execute("DELETE FROM ai_chat_messages WHERE id = ?", (message_id,))
    return cursor.rowcount > 0


def list_messages(chat_id: str) -> list[ChatMessageRecord]:
    """Messages of a chat in insertion order."""
    with get_db() as conn:
        rows = conn.execute(
            "SELECT * FROM ai_chat_messages WHERE chat_id = ? ORDER BY created_at, rowid",
            (chat_id,),
        ).fetchall()
    return [
        ChatMessageRecord(
            id=row["id"],
            chat_id=row["chat_id"],
            role=row["role"],
            content=row["content"],
            created_at=row["created_at"],
        )
        for row in rows
    ]


def _row_to_chat(row) -> ChatRecord:
    return ChatRecord(
        id=row["id"],
        user_id=row["user_id"],
        topic=row["topic"],
        language_style=row["language_style"],
        created_at=row["created_at"],
        last_message_at=row["last_message_at"],
    )
