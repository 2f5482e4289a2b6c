"""Admin endpoints: users, AI conversations and notifications.

Every route requires an admin caller.
"""

from typing import Literal

import structlog
from fastapi import APIRouter, Depends, HTTPException, status

from telxtab.core import notifications
from telxtab.core.notifications import NotificationError
from telxtab.db import chats_repository, profiles_repository
from telxtab.db.profiles_repository import ProfileRecord
from telxtab.realtime.hub import (
    ChannelHub,
    RealtimeEvent,
    chat_channel,
    notifications_channel,
)
from telxtab.web.deps import get_channel_hub, require_admin
from telxtab.web.schemas import (
    AdminChatResponse,
    AdminUserResponse,
    DirectNotificationRequest,
    NotificationResponse,
    NotificationStatsResponse,
    SendResultResponse,
    SendTemplateRequest,
    TemplateCreate,
    TemplateResponse,
    UserStatsResponse,
)

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])


def admin_user_response(profile: ProfileRecord) -> AdminUserResponse:
    return AdminUserResponse(
        **profile.public_dict(),
        email=profile.email,
        is_banned=profile.is_banned,
    )


async def _publish_notifications(hub: ChannelHub, records) -> None:
    for record in records:
        await hub.publish(
            notifications_channel(record.user_id),
            RealtimeEvent(event="INSERT", table="notifications", record=record.to_dict()),
        )


# =============================================================================
# USERS
# =============================================================================


@router.get("/users", response_model=list[AdminUserResponse])
async def list_users(
    role: Literal["admin", "user", "banned"] | None = None,
    search: str | None = None,
    admin: ProfileRecord = Depends(require_admin),
) -> list[AdminUserResponse]:
    """All users, newest first, with optional role filter and search."""
    profiles = profiles_repository.list_profiles(role=role, search=search or None)
    return [admin_user_response(p) for p in profiles]


@router.get("/users/stats", response_model=UserStatsResponse)
async def get_user_stats(admin: ProfileRecord = Depends(require_admin)) -> UserStatsResponse:
    return UserStatsResponse(**profiles_repository.count_profiles())


def _toggle_flag(admin: ProfileRecord, user_id: str, flag: str) -> ProfileRecord:
    if user_id == admin.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot change this flag on your own account",
        )
    target = profiles_repository.get_profile(user_id)
    if target is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User '{user_id}' not found",
        )

    value = not getattr(target, flag)
    profiles_repository.set_flag(user_id, flag, value)
    logger.info("admin.flag_changed", admin_id=admin.id, user_id=user_id, flag=flag, value=value)
    return profiles_repository.get_profile(user_id)  # type: ignore[return-value]


@router.post("/users/{user_id}/ban", response_model=AdminUserResponse)
async def toggle_ban(
    user_id: str,
    admin: ProfileRecord = Depends(require_admin),
) -> AdminUserResponse:
    """Ban or unban a user."""
    return admin_user_response(_toggle_flag(admin, user_id, "is_banned"))


@router.post("/users/{user_id}/admin", response_model=AdminUserResponse)
async def toggle_admin(
    user_id: str,
    admin: ProfileRecord = Depends(require_admin),
) -> AdminUserResponse:
    """Grant or revoke admin rights."""
    return admin_user_response(_toggle_flag(admin, user_id, "is_admin"))


# =============================================================================
# AI CONVERSATIONS
# =============================================================================


@router.get("/conversations", response_model=list[AdminChatResponse])
async def list_conversations(admin: ProfileRecord = Depends(require_admin)) -> list[AdminChatResponse]:
    return [AdminChatResponse(**c) for c in chats_repository.list_all_chats()]


@router.delete("/conversations/{chat_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_conversation(
    chat_id: str,
    admin: ProfileRecord = Depends(require_admin),
    hub: ChannelHub = Depends(get_channel_hub),
) -> None:
    if not chats_repository.delete_chat(chat_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Chat '{chat_id}' not found",
        )
    logger.info("admin.chat_deleted", admin_id=admin.id, chat_id=chat_id)
    await hub.close_channel(chat_channel(chat_id))


# =============================================================================
# NOTIFICATIONS
# =============================================================================


@router.get("/notifications/templates", response_model=list[TemplateResponse])
async def list_templates(admin: ProfileRecord = Depends(require_admin)) -> list[TemplateResponse]:
    return [TemplateResponse(**t.to_dict()) for t in notifications.list_templates()]


@router.post(
    "/notifications/templates",
    response_model=TemplateResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_template(
    request: TemplateCreate,
    admin: ProfileRecord = Depends(require_admin),
) -> TemplateResponse:
    try:
        template = notifications.create_template(
            request.title,
            request.message,
            request.type.value,
            request.action_url,
            request.action_text,
        )
    except NotificationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    return TemplateResponse(**template.to_dict())


@router.delete("/notifications/templates/{template_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_template(
    template_id: str,
    admin: ProfileRecord = Depends(require_admin),
) -> None:
    if not notifications.delete_template(template_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Template '{template_id}' not found",
        )


@router.post("/notifications/send", response_model=SendResultResponse)
async def send_template(
    request: SendTemplateRequest,
    admin: ProfileRecord = Depends(require_admin),
    hub: ChannelHub = Depends(get_channel_hub),
) -> SendResultResponse:
    """Send a template to the selected users and push it to their streams."""
    try:
        records = notifications.send_template(request.template_id, request.user_ids)
    except NotificationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e

    await _publish_notifications(hub, records)
    return SendResultResponse(sent=len(records))


@router.post(
    "/notifications/direct",
    response_model=NotificationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def send_direct_notification(
    request: DirectNotificationRequest,
    admin: ProfileRecord = Depends(require_admin),
    hub: ChannelHub = Depends(get_channel_hub),
) -> NotificationResponse:
    if profiles_repository.get_profile(request.user_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User '{request.user_id}' not found",
        )
    try:
        record = notifications.notify_user(
            request.user_id,
            request.title,
            request.message,
            request.type.value,
            request.action_url,
            request.action_text,
        )
    except NotificationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e

    await _publish_notifications(hub, [record])
    return NotificationResponse(**record.to_dict())


@router.get("/notifications/stats", response_model=NotificationStatsResponse)
async def get_notification_stats(
    admin: ProfileRecord = Depends(require_admin),
) -> NotificationStatsResponse:
    return NotificationStatsResponse(**notifications.notification_stats())
