"""Per-user notification endpoints."""

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import StreamingResponse

from telxtab.core import notifications
from telxtab.db.profiles_repository import ProfileRecord
from telxtab.realtime.hub import ChannelHub, notifications_channel, sse_stream
from telxtab.web.deps import get_channel_hub, get_current_user
from telxtab.web.routes.ai import SSE_HEADERS
from telxtab.web.schemas import NotificationResponse, UnreadCountResponse

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


def _not_found(notification_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Notification '{notification_id}' not found",
    )


@router.get("", response_model=list[NotificationResponse])
async def list_notifications(
    unread_only: bool = False,
    user: ProfileRecord = Depends(get_current_user),
) -> list[NotificationResponse]:
    return [
        NotificationResponse(**n.to_dict())
        for n in notifications.list_notifications(user.id, unread_only=unread_only)
    ]


@router.get("/unread-count", response_model=UnreadCountResponse)
async def get_unread_count(user: ProfileRecord = Depends(get_current_user)) -> UnreadCountResponse:
    return UnreadCountResponse(unread_count=notifications.unread_count(user.id))


@router.post("/read-all")
async def mark_all_read(user: ProfileRecord = Depends(get_current_user)) -> dict[str, int]:
    return {"updated": notifications.mark_all_read(user.id)}


@router.delete("")
async def clear_notifications(user: ProfileRecord = Depends(get_current_user)) -> dict[str, int]:
    """Delete all of the current user's notifications."""
    return {"deleted": notifications.clear_all(user.id)}


@router.post("/{notification_id}/read", status_code=status.HTTP_204_NO_CONTENT)
async def mark_read(
    notification_id: str,
    user: ProfileRecord = Depends(get_current_user),
) -> None:
    if not notifications.mark_read(user.id, notification_id):
        raise _not_found(notification_id)


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_notification(
    notification_id: str,
    user: ProfileRecord = Depends(get_current_user),
) -> None:
    if not notifications.delete_notification(user.id, notification_id):
        raise _not_found(notification_id)


@router.get("/events")
async def stream_notifications(
    user: ProfileRecord = Depends(get_current_user),
    hub: ChannelHub = Depends(get_channel_hub),
) -> StreamingResponse:
    """Stream new notifications using Server-Sent Events."""
    subscription = await hub.subscribe(notifications_channel(user.id))
    return StreamingResponse(
        sse_stream(hub, subscription),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )
