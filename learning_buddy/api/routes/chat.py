"""API routes for content-aware chat with memory."""

import json
import logging
from dataclasses import dataclass

from fastapi import APIRouter, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sse_starlette.sse import EventSourceResponse

from learning_buddy.api.deps import CurrentUserId, DbSession
from learning_buddy.config import get_settings, sanitize_error
from learning_buddy.db import session as db_session
from learning_buddy.schemas.chat import (
    ChatMessageRequest,
    ChatMessageResponse,
    ChatTurn,
    ConversationListResponse,
    ConversationResponse,
)
from learning_buddy.schemas.memory import MemoryContext
from learning_buddy.schemas.video import VideoContext
from learning_buddy.services import chat_service, memory_store, memory_updater, video_content_service
from learning_buddy.services.chat_service import build_system_prompt, process_response
from learning_buddy.services.errors import LLMUnavailableError

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(prefix="/chat", tags=["chat"])


# =============================================================================
# HELPERS
# =============================================================================


@dataclass
class PreparedChat:
    """Everything needed to call the LLM for one message."""

    memory: MemoryContext
    video_context: VideoContext | None
    history: list[ChatTurn]
    system_prompt: str


async def _resolve_video_context(
    db: AsyncSession,
    user_id: str,
    request: ChatMessageRequest,
) -> VideoContext | None:
    """On-screen content for the request; a storage fault degrades to 'no context'."""
    if request.video_id is None or request.timestamp is None:
        return None
    try:
        return await video_content_service.get_video_context(db, user_id, request.video_id, request.timestamp)
    except SQLAlchemyError:
        logger.exception("Video context lookup failed for video %s", request.video_id)
        await db.rollback()
        return VideoContext(
            video_id=request.video_id,
            timestamp=request.timestamp,
            message="Content temporarily unavailable due to system error",
        )


async def _recent_history(db: AsyncSession, user_id: str) -> list[ChatTurn]:
    """Last few messages across the most recent exchanges, oldest first."""
    conversations = await memory_store.get_recent_conversations(
        db, user_id, limit=settings.history_conversation_window
    )
    turns = [turn for _, messages in reversed(conversations) for turn in messages]
    window = settings.history_message_window
    return turns[-window:] if window > 0 else []


async def _prepare_chat(db: AsyncSession, user_id: str, request: ChatMessageRequest) -> PreparedChat:
    video_context = await _resolve_video_context(db, user_id, request)
    topic = video_context.chunk.topic if video_context and video_context.chunk else None

    memory = await memory_store.assemble_memory_context(db, user_id, topic)
    if memory.degraded:
        logger.warning("Chat for user_id=%s proceeding without memory: %s", user_id, memory.reason)

    history = await _recent_history(db, user_id)
    return PreparedChat(
        memory=memory,
        video_context=video_context,
        history=history,
        system_prompt=build_system_prompt(memory.text, video_context),
    )


async def _finish_exchange(
    db: AsyncSession,
    user_id: str,
    request: ChatMessageRequest,
    prepared: PreparedChat,
    raw_reply: str,
) -> ChatMessageResponse:
    """Post-process the reply, update memory, and log the exchange."""
    text, suggestion, reference = process_response(raw_reply, prepared.video_context)

    memory_updates = await memory_updater.update_from_conversation(
        db,
        user_id,
        request.message,
        text,
        grade_level=request.grade_level,
        video_context=prepared.video_context,
    )

    conversation_id = await memory_store.log_conversation(
        db,
        user_id,
        [ChatTurn(role="user", content=request.message), ChatTurn(role="assistant", content=text)],
        module_context=request.module_context,
        content_context=prepared.video_context.model_dump(mode="json") if prepared.video_context else None,
    )

    return ChatMessageResponse(
        response=text,
        conversation_id=conversation_id,
        memory_updates=memory_updates,
        memory_degraded=prepared.memory.degraded,
        content_reference=reference,
        suggestion=suggestion,
    )


# =============================================================================
# CHAT
# =============================================================================


@router.post("", response_model=ChatMessageResponse)
async def send_chat_message(
    request: ChatMessageRequest,
    db: DbSession,
    user_id: CurrentUserId,
):
    """
    Send a chat message and get the assistant's reply.

    Memory context and (when video_id/timestamp are given) the on-screen
    video chunk are injected into the prompt. Returns 503 when the LLM is
    unavailable.
    """
    prepared = await _prepare_chat(db, user_id, request)

    try:
        reply = await chat_service.get_full_response(
            user_message=request.message,
            conversation_history=prepared.history,
            system_prompt=prepared.system_prompt,
        )
    except LLMUnavailableError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e)) from e

    return await _finish_exchange(db, user_id, request, prepared, reply)


@router.post("/stream")
async def stream_chat_message(
    request: ChatMessageRequest,
    user_id: CurrentUserId,
):
    """
    Send a chat message and stream the response using Server-Sent Events (SSE).

    Events:
    - 'message': Text chunks from the assistant
    - 'done': JSON with conversation_id, memory_updates and suggestion
    - 'error': Error occurred

    Uses its own session because the stream outlives the request dependency.
    """

    async def event_generator():
        """Generate SSE events for streaming response."""
        async with db_session.AsyncSessionLocal() as db:
            try:
                prepared = await _prepare_chat(db, user_id, request)

                full_response = ""
                async for chunk in chat_service.stream_response(
                    user_message=request.message,
                    conversation_history=prepared.history,
                    system_prompt=prepared.system_prompt,
                ):
                    full_response += chunk
                    yield {"event": "message", "data": chunk}

                result = await _finish_exchange(db, user_id, request, prepared, full_response)
                await db.commit()
                yield {
                    "event": "done",
                    "data": json.dumps(
                        {
                            "conversation_id": str(result.conversation_id),
                            "memory_updates": result.memory_updates,
                            "suggestion": result.suggestion.model_dump() if result.suggestion else None,
                        }
                    ),
                }

            except LLMUnavailableError as e:
                yield {"event": "error", "data": str(e)}
            except Exception as e:
                logger.exception("Error during chat streaming")
                await db.rollback()
                safe_msg = sanitize_error(e, generic_message="An error occurred during chat.")
                yield {"event": "error", "data": safe_msg}

    return EventSourceResponse(event_generator())


# =============================================================================
# HISTORY
# =============================================================================


@router.get("/conversations", response_model=ConversationListResponse)
async def list_conversations(
    db: DbSession,
    user_id: CurrentUserId,
    limit: int = 20,
):
    """List the user's recent exchanges, most recent first."""
    conversations = await memory_store.get_recent_conversations(db, user_id, limit=max(1, min(limit, 100)))
    return ConversationListResponse(
        conversations=[
            ConversationResponse(
                id=row.id,
                user_id=row.user_id,
                module_context=row.module_context,
                messages=messages,
                created_at=row.created_at,
            )
            for row, messages in conversations
        ],
        total=len(conversations),
    )
