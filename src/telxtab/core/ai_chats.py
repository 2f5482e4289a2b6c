"""AI practice conversations.

A chat stores the user's turns and the tutor's replies. Sending a message
is a single round-trip: store the user turn, ask the tutor, store the
reply. If the tutor call fails the user turn is removed again, so the
stored conversation always alternates user/assistant.
"""

from __future__ import annotations

from typing import Any

import structlog

from telxtab.ai.tutor_chat import get_chat_response
from telxtab.db import chats_repository
from telxtab.db.chats_repository import ChatMessageRecord, ChatRecord
from telxtab.llm.client import LLMClient, LLMError, Message

logger = structlog.get_logger(__name__)

LANGUAGE_STYLES = ("formal", "informal")


class ChatError(Exception):
    """Invalid chat operation."""

    pass


class ChatNotFoundError(ChatError):
    pass


def create_chat(user_id: str, topic: str, language_style: str = "formal") -> ChatRecord:
    """Start a new practice chat.

    Raises:
        ChatError: If the topic is empty or the style is unknown
    """
    topic = topic.strip()
    if not topic:
        raise ChatError("Topic is required")
    if language_style not in LANGUAGE_STYLES:
        raise ChatError(f"Invalid language style '{language_style}'")
    return chats_repository.create_chat(user_id, topic, language_style)


def get_owned_chat(chat_id: str, user_id: str) -> ChatRecord:
    """Chat owned by ``user_id``.

    Raises:
        ChatNotFoundError: If missing or owned by someone else
    """
    chat = chats_repository.get_chat(chat_id)
    if chat is None or chat.user_id != user_id:
        raise ChatNotFoundError(f"Chat '{chat_id}' not found")
    return chat


def list_chats(user_id: str) -> list[ChatRecord]:
    return chats_repository.list_chats(user_id)


def get_chat_with_messages(chat_id: str, user_id: str) -> dict[str, Any]:
    chat = get_owned_chat(chat_id, user_id)
    data = chat.to_dict()
    data["messages"] = [m.to_dict() for m in chats_repository.list_messages(chat_id)]
    return data


def delete_chat(chat_id: str, user_id: str) -> None:
    get_owned_chat(chat_id, user_id)
    chats_repository.delete_chat(chat_id)


def send_chat_message(
    client: LLMClient,
    chat_id: str,
    user_id: str,
    content: str,
) -> tuple[ChatMessageRecord, ChatMessageRecord]:
    """Store a user turn and the tutor's reply.

    Returns:
        (user_message, assistant_message)

    Raises:
        ChatError: If the content is empty
        ChatNotFoundError: If the chat isn't the user's
        LLMError: If the tutor call fails (the user turn is rolled back)
    """
    content = content.strip()
    if not content:
        raise ChatError("Message cannot be empty")

    chat = get_owned_chat(chat_id, user_id)
    user_message = chats_repository.insert_message(chat.id, "user", content)
    chats_repository.touch_chat(chat.id, user_message.created_at)

    history = [
        Message(role=m.role, content=m.content)  # type: ignore[arg-type]
        for m in chats_repository.list_messages(chat.id)
    ]

    try:
        reply = get_chat_response(client, history, chat.topic, chat.language_style)  # type: ignore[arg-type]
    except LLMError:
        chats_repository.delete_message(user_message.id)
        logger.warning("ai_chats.reply_failed", chat_id=chat.id)
        raise

    assistant_message = chats_repository.insert_message(chat.id, "assistant", reply)
    chats_repository.touch_chat(chat.id, assistant_message.created_at)

    logger.info("ai_chats.exchange", chat_id=chat.id, user_id=user_id)
    return user_message, assistant_message


def open_chat(client: LLMClient, chat_id: str, user_id: str) -> ChatMessageRecord | None:
    """Let the tutor open an empty chat. No-op if the chat already has messages."""
    chat = get_owned_chat(chat_id, user_id)
    if chats_repository.list_messages(chat.id):
        return None
    reply = get_chat_response(client, [], chat.topic, chat.language_style)  # type: ignore[arg-type]
    message = chats_repository.insert_message(chat.id, "assistant", reply)
    chats_repository.touch_chat(chat.id, message.created_at)
    return message
