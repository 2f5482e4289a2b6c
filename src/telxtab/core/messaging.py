"""Direct messaging between users.

Server side: persisting messages, reading threads (which marks received
messages as read) and building the conversation list.

Client side: ``ConversationTimeline`` models the optimistic view of one
thread. Locally composed messages are shown immediately under a
temporary id and reconciled when the server echoes them back.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any

import structlog

from telxtab.db import messages_repository, profiles_repository
from telxtab.db.messages_repository import MessageRecord

logger = structlog.get_logger(__name__)

TEMP_ID_PREFIX = "temp-"


class MessagingError(Exception):
    """Invalid messaging operation."""

    pass


class RecipientNotFoundError(MessagingError):
    pass


def pair_channel(user_a: str, user_b: str) -> str:
    """Realtime channel shared by both participants of a thread."""
    low, high = sorted((user_a, user_b))
    return f"messages:{low}:{high}"


def send_message(
    sender_id: str,
    receiver_id: str,
    content: str,
    client_id: str | None = None,
) -> dict[str, Any]:
    """Persist a message.

    Args:
        sender_id: Author
        receiver_id: Recipient
        content: Message text (trimmed)
        client_id: Temporary id of the sender's optimistic copy, echoed back

    Returns:
        Message dict including ``client_id``.

    Raises:
        MessagingError: If the content is empty or sender == receiver
        RecipientNotFoundError: If the receiver doesn't exist
    """
    content = content.strip()
    if not content:
        raise MessagingError("Message cannot be empty")
    if sender_id == receiver_id:
        raise MessagingError("You cannot message yourself")
    if profiles_repository.get_profile(receiver_id) is None:
        raise RecipientNotFoundError(f"User '{receiver_id}' not found")

    record = messages_repository.insert_message(sender_id, receiver_id, content)
    logger.info("messages.sent", message_id=record.id, sender_id=sender_id, receiver_id=receiver_id)

    data = record.to_dict()
    data["client_id"] = client_id
    return data


def get_thread(user_id: str, other_id: str) -> list[MessageRecord]:
    """Both directions of a thread, oldest first.

    Messages received by ``user_id`` are marked read; the returned
    records reflect that.
    """
    marked = messages_repository.mark_thread_read(receiver_id=user_id, sender_id=other_id)
    if marked:
        logger.debug("messages.marked_read", user_id=user_id, other_id=other_id, count=marked)
    return messages_repository.list_thread(user_id, other_id)


def list_conversations(user_id: str) -> list[dict[str, Any]]:
    """One entry per counterpart, newest conversation first.

    Each entry carries the counterpart's public profile, the last message
    in either direction and the number of unread messages from them.
    """
    conversations: dict[str, dict[str, Any]] = {}

    # Newest first, so the first message seen per counterpart is the last one
    for message in messages_repository.list_user_messages(user_id):
        other_id = message.receiver_id if message.sender_id == user_id else message.sender_id
        entry = conversations.get(other_id)
        if entry is None:
            entry = {"user_id": other_id, "last_message": message.to_dict(), "unread_count": 0}
            conversations[other_id] = entry
        if message.receiver_id == user_id and not message.is_read:
            entry["unread_count"] += 1

    result = []
    for other_id, entry in conversations.items():
        profile = profiles_repository.get_profile(other_id)
        if profile is None:
            continue
        entry["profile"] = profile.public_dict()
        result.append(entry)

    result.sort(key=lambda e: e["last_message"]["created_at"], reverse=True)
    return result


# =============================================================================
# OPTIMISTIC TIMELINE
# =============================================================================


@dataclass
class TimelineEntry:
    """A message as displayed in a thread."""

    id: str
    sender_id: str
    receiver_id: str
    content: str
    created_at: str
    pending: bool = False


@dataclass
class ConversationTimeline:
    """Optimistic, de-duplicated view of one thread.

    Pending entries are appended with a ``temp-`` id and later confirmed
    in place (keeping their position) or rejected. Incoming realtime
    messages are appended once per id.
    """

    me: str
    other: str
    entries: list[TimelineEntry] = field(default_factory=list)
    _counter: int = 0

    def _index(self, entry_id: str) -> int | None:
        for index, entry in enumerate(self.entries):
            if entry.id == entry_id:
                return index
        return None

    def load(self, messages: list[dict[str, Any]]) -> None:
        """Replace the timeline with server state."""
        self.entries = []
        for message in messages:
            self.receive(message)

    def add_pending(self, content: str, created_at: str = "") -> TimelineEntry:
        """Show a locally composed message before the server confirms it."""
        self._counter += 1
        entry = TimelineEntry(
            id=f"{TEMP_ID_PREFIX}{int(time.time() * 1000)}-{self._counter}",
            sender_id=self.me,
            receiver_id=self.other,
            content=content,
            created_at=created_at,
            pending=True,
        )
        self.entries.append(entry)
        return entry

    def confirm(self, temp_id: str, message: dict[str, Any]) -> None:
        """Replace a pending entry with the stored message."""
        index = self._index(temp_id)
        confirmed = _entry_from_message(message)
        existing = self._index(confirmed.id)

        if index is None:
            if existing is None:
                self.entries.append(confirmed)
            return

        if existing is not None:
            # Realtime delivery won the race; drop the pending copy
            del self.entries[index]
        else:
            self.entries[index] = confirmed

    def reject(self, temp_id: str) -> bool:
        """Remove a pending entry after a failed send."""
        index = self._index(temp_id)
        if index is None:
            return False
        del self.entries[index]
        return True

    def receive(self, message: dict[str, Any]) -> bool:
        """Apply a message from the server or the realtime channel.

        Returns:
            True if the timeline changed.
        """
        client_id = message.get("client_id")
        if client_id and self._index(client_id) is not None:
            self.confirm(client_id, message)
            return True

        if self._index(message["id"]) is not None:
            return False

        self.entries.append(_entry_from_message(message))
        return True

    @property
    def pending_ids(self) -> list[str]:
        return [e.id for e in self.entries if e.pending]


def _entry_from_message(message: dict[str, Any]) -> TimelineEntry:
    return TimelineEntry(
        id=message["id"],
        sender_id=message["sender_id"],
        receiver_id=message["receiver_id"],
        content=message["content"],
        created_at=message.get("created_at", ""),
    )
