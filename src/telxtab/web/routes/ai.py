"""AI practice endpoints: tutor chats and generated practice questions."""

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import StreamingResponse
from starlette.concurrency import run_in_threadpool

from telxtab.ai.question_generator import generate_multiple_choice_questions
from telxtab.core import ai_chats
from telxtab.core.ai_chats import ChatError, ChatNotFoundError
from telxtab.db.profiles_repository import ProfileRecord
from telxtab.llm.client import LLMClient, LLMError
from telxtab.realtime.hub import ChannelHub, RealtimeEvent, chat_channel, sse_stream
from telxtab.web.deps import get_channel_hub, get_current_user, get_llm_client
from telxtab.web.schemas import (
    ChatCreate,
    ChatDetailResponse,
    ChatExchangeResponse,
    ChatMessageCreate,
    ChatMessageResponse,
    ChatResponse,
    QuestionRequest,
    QuestionResponse,
)

router = APIRouter(prefix="/api/ai", tags=["ai"])

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def _chat_not_found(chat_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Chat '{chat_id}' not found",
    )


@router.post("/chats", response_model=ChatResponse, status_code=status.HTTP_201_CREATED)
async def create_chat(
    request: ChatCreate,
    user: ProfileRecord = Depends(get_current_user),
) -> ChatResponse:
    """Start a practice conversation on a topic."""
    try:
        chat = ai_chats.create_chat(user.id, request.topic, request.language_style.value)
    except ChatError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    return ChatResponse(**chat.to_dict())


@router.get("/chats", response_model=list[ChatResponse])
async def list_chats(user: ProfileRecord = Depends(get_current_user)) -> list[ChatResponse]:
    return [ChatResponse(**c.to_dict()) for c in ai_chats.list_chats(user.id)]


@router.get("/chats/{chat_id}", response_model=ChatDetailResponse)
async def get_chat(
    chat_id: str,
    user: ProfileRecord = Depends(get_current_user),
) -> ChatDetailResponse:
    try:
        return ChatDetailResponse(**ai_chats.get_chat_with_messages(chat_id, user.id))
    except ChatNotFoundError as e:
        raise _chat_not_found(chat_id) from e


@router.delete("/chats/{chat_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_chat(
    chat_id: str,
    user: ProfileRecord = Depends(get_current_user),
    hub: ChannelHub = Depends(get_channel_hub),
) -> None:
    try:
        ai_chats.delete_chat(chat_id, user.id)
    except ChatNotFoundError as e:
        raise _chat_not_found(chat_id) from e
    await hub.close_channel(chat_channel(chat_id))


@router.post("/chats/{chat_id}/messages", response_model=ChatExchangeResponse)
async def send_chat_message(
    chat_id: str,
    request: ChatMessageCreate,
    user: ProfileRecord = Depends(get_current_user),
    client: LLMClient = Depends(get_llm_client),
    hub: ChannelHub = Depends(get_channel_hub),
) -> ChatExchangeResponse:
    """Send a turn and receive the tutor's reply.

    If the tutor is unavailable the turn is not kept and 502 is returned.
    """
    try:
        user_message, assistant_message = await run_in_threadpool(
            ai_chats.send_chat_message, client, chat_id, user.id, request.content
        )
    except ChatNotFoundError as e:
        raise _chat_not_found(chat_id) from e
    except ChatError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    except LLMError as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"The AI tutor is unavailable: {e}",
        ) from e

    channel = chat_channel(chat_id)
    for message in (user_message, assistant_message):
        await hub.publish(
            channel,
            RealtimeEvent(event="INSERT", table="ai_chat_messages", record=message.to_dict()),
        )

    return ChatExchangeResponse(
        user_message=ChatMessageResponse(**user_message.to_dict()),
        assistant_message=ChatMessageResponse(**assistant_message.to_dict()),
    )


@router.post("/chats/{chat_id}/open", response_model=ChatMessageResponse | None)
async def open_chat(
    chat_id: str,
    user: ProfileRecord = Depends(get_current_user),
    client: LLMClient = Depends(get_llm_client),
) -> ChatMessageResponse | None:
    """Let the tutor greet first in an empty chat."""
    try:
        message = await run_in_threadpool(ai_chats.open_chat, client, chat_id, user.id)
    except ChatNotFoundError as e:
        raise _chat_not_found(chat_id) from e
    except LLMError as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"The AI tutor is unavailable: {e}",
        ) from e
    return ChatMessageResponse(**message.to_dict()) if message else None


@router.get("/chats/{chat_id}/events")
async def stream_chat_events(
    chat_id: str,
    user: ProfileRecord = Depends(get_current_user),
    hub: ChannelHub = Depends(get_channel_hub),
) -> StreamingResponse:
    """Stream new chat turns using Server-Sent Events.

    Events:
    - INSERT: a stored chat message
    - keepalive: Sent every 30s to keep connection alive
    - close: The chat was deleted
    """
    try:
        ai_chats.get_owned_chat(chat_id, user.id)
    except ChatNotFoundError as e:
        raise _chat_not_found(chat_id) from e

    subscription = await hub.subscribe(chat_channel(chat_id))
    return StreamingResponse(
        sse_stream(hub, subscription),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.post("/questions", response_model=list[QuestionResponse])
async def generate_questions(
    request: QuestionRequest,
    user: ProfileRecord = Depends(get_current_user),
    client: LLMClient = Depends(get_llm_client),
) -> list[QuestionResponse]:
    """Generate multiple-choice practice questions for a topic."""
    questions = await run_in_threadpool(
        generate_multiple_choice_questions,
        client,
        request.topic,
        request.content,
        request.count,
    )
    return [QuestionResponse(**q.to_dict()) for q in questions]
