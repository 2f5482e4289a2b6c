"""Tests for direct messaging and the optimistic conversation timeline."""

import pytest

from telxtab.core import messaging
from telxtab.core.messaging import (
    ConversationTimeline,
    MessagingError,
    RecipientNotFoundError,
    pair_channel,
)


class TestSendMessage:
    """Tests for send_message()."""

    def test_send_returns_message_with_client_id(self, user, other_user):
        """The stored message echoes the client's temporary id."""
        message = messaging.send_message(user.id, other_user.id, "  Hi Bob  ", client_id="temp-1")
        assert message["content"] == "Hi Bob"
        assert message["client_id"] == "temp-1"
        assert message["is_read"] is False

    def test_empty_content_rejected(self, user, other_user):
        """Blank messages are refused."""
        with pytest.raises(MessagingError):
            messaging.send_message(user.id, other_user.id, "   ")

    def test_self_message_rejected(self, user):
        """Users can't message themselves."""
        with pytest.raises(MessagingError):
            messaging.send_message(user.id, user.id, "Hello me")

    def test_unknown_recipient(self, user):
        """Unknown recipients raise a dedicated error."""
        with pytest.raises(RecipientNotFoundError):
            messaging.send_message(user.id, "nobody", "Hello")


class TestThreads:
    """Tests for get_thread() and list_conversations()."""

    def test_thread_both_directions_ascending(self, user, other_user):
        """Threads include both directions, oldest first."""
        messaging.send_message(user.id, other_user.id, "one")
        messaging.send_message(other_user.id, user.id, "two")
        messaging.send_message(user.id, other_user.id, "three")

        thread = messaging.get_thread(user.id, other_user.id)
        assert [m.content for m in thread] == ["one", "two", "three"]

    def test_reading_marks_received_messages(self, user, other_user):
        """Opening a thread marks only the reader's incoming messages as read."""
        messaging.send_message(other_user.id, user.id, "for alice")
        messaging.send_message(user.id, other_user.id, "for bob")

        thread = messaging.get_thread(user.id, other_user.id)
        by_content = {m.content: m for m in thread}
        assert by_content["for alice"].is_read is True
        assert by_content["for bob"].is_read is False

    def test_conversation_unread_count(self, user, other_user, user_factory):
        """Conversations count unread messages per counterpart."""
        carol = user_factory("carol")
        messaging.send_message(other_user.id, user.id, "1")
        messaging.send_message(other_user.id, user.id, "2")
        messaging.send_message(user.id, carol.id, "hey carol")

        conversations = messaging.list_conversations(user.id)
        by_user = {c["user_id"]: c for c in conversations}

        assert by_user[other_user.id]["unread_count"] == 2
        assert by_user[other_user.id]["profile"]["username"] == "bob"
        assert by_user[carol.id]["unread_count"] == 0
        assert conversations[0]["user_id"] == carol.id

    def test_pair_channel_is_symmetric(self):
        """Both participants share one channel."""
        assert pair_channel("b", "a") == pair_channel("a", "b") == "messages:a:b"


def _server_message(message_id, content, client_id=None, sender="me", receiver="you"):
    return {
        "id": message_id,
        "sender_id": sender,
        "receiver_id": receiver,
        "content": content,
        "created_at": "2024-01-01T00:00:00+00:00",
        "client_id": client_id,
    }


class TestConversationTimeline:
    """Tests for the optimistic timeline."""

    def test_pending_then_confirm_keeps_position(self):
        """Confirmed messages replace their pending copy in place."""
        timeline = ConversationTimeline(me="me", other="you")
        pending = timeline.add_pending("hello")
        timeline.receive(_server_message("m2", "later", sender="you", receiver="me"))

        timeline.confirm(pending.id, _server_message("m1", "hello"))

        assert [e.id for e in timeline.entries] == ["m1", "m2"]
        assert timeline.pending_ids == []

    def test_pending_ids_use_temp_prefix(self):
        """Pending entries get temp- ids."""
        timeline = ConversationTimeline(me="me", other="you")
        entry = timeline.add_pending("hi")
        assert entry.id.startswith("temp-")
        assert entry.pending is True

    def test_reject_removes_pending(self):
        """A failed send removes the optimistic entry."""
        timeline = ConversationTimeline(me="me", other="you")
        entry = timeline.add_pending("oops")
        assert timeline.reject(entry.id) is True
        assert timeline.entries == []
        assert timeline.reject(entry.id) is False

    def test_receive_deduplicates(self):
        """The same message id is only shown once."""
        timeline = ConversationTimeline(me="me", other="you")
        message = _server_message("m1", "hi", sender="you", receiver="me")
        assert timeline.receive(message) is True
        assert timeline.receive(message) is False
        assert len(timeline.entries) == 1

    def test_realtime_echo_confirms_pending(self):
        """A realtime event carrying the client_id confirms the pending entry."""
        timeline = ConversationTimeline(me="me", other="you")
        pending = timeline.add_pending("hello")

        timeline.receive(_server_message("m1", "hello", client_id=pending.id))
        timeline.confirm(pending.id, _server_message("m1", "hello"))

        assert [e.id for e in timeline.entries] == ["m1"]

    def test_load_replaces_entries(self):
        """Loading server state resets the timeline."""
        timeline = ConversationTimeline(me="me", other="you")
        timeline.add_pending("draft")
        timeline.load([_server_message("m1", "a"), _server_message("m2", "b")])
        assert [e.id for e in timeline.entries] == ["m1", "m2"]
