"""Direct message endpoints with realtime delivery."""

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import StreamingResponse

from telxtab.core import messaging
from telxtab.core.messaging import MessagingError, RecipientNotFoundError
from telxtab.db import profiles_repository
from telxtab.db.profiles_repository import ProfileRecord
from telxtab.realtime.hub import ChannelHub, RealtimeEvent, sse_stream
from telxtab.web.deps import get_channel_hub, get_current_user
from telxtab.web.routes.ai import SSE_HEADERS
from telxtab.web.schemas import ConversationResponse, MessageCreate, MessageResponse

router = APIRouter(prefix="/api/messages", tags=["messages"])


def _require_user(user_id: str) -> None:
    if profiles_repository.get_profile(user_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User '{user_id}' not found",
        )


@router.get("/conversations", response_model=list[ConversationResponse])
async def list_conversations(
    user: ProfileRecord = Depends(get_current_user),
) -> list[ConversationResponse]:
    """One entry per counterpart, newest first, with unread counts."""
    return [ConversationResponse(**c) for c in messaging.list_conversations(user.id)]


@router.post("", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def send_message(
    request: MessageCreate,
    user: ProfileRecord = Depends(get_current_user),
    hub: ChannelHub = Depends(get_channel_hub),
) -> MessageResponse:
    """Send a message.

    ``client_id`` is echoed in the response and in the realtime event so
    the sender can replace its optimistic copy.
    """
    try:
        message = messaging.send_message(
            user.id, request.receiver_id, request.content, request.client_id
        )
    except RecipientNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except MessagingError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e

    await hub.publish(
        messaging.pair_channel(user.id, request.receiver_id),
        RealtimeEvent(event="INSERT", table="messages", record=message),
    )
    return MessageResponse(**message)


@router.get("/{other_id}", response_model=list[MessageResponse])
async def get_thread(
    other_id: str,
    user: ProfileRecord = Depends(get_current_user),
) -> list[MessageResponse]:
    """Thread with another user, oldest first. Marks received messages read."""
    _require_user(other_id)
    return [MessageResponse(**m.to_dict()) for m in messaging.get_thread(user.id, other_id)]


@router.get("/{other_id}/events")
async def stream_thread_events(
    other_id: str,
    user: ProfileRecord = Depends(get_current_user),
    hub: ChannelHub = Depends(get_channel_hub),
) -> StreamingResponse:
    """Stream new messages of a thread using Server-Sent Events.

    Both participants share one channel, so the sender also receives its
    own messages; clients de-duplicate by id.
    """
    _require_user(other_id)
    subscription = await hub.subscribe(messaging.pair_channel(user.id, other_id))
    return StreamingResponse(
        sse_stream(hub, subscription),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )
