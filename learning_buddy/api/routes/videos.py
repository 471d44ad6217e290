"""Video content routes: on-screen context, transcript loading, and progress."""

import logging

from fastapi import APIRouter, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError

from learning_buddy.api.deps import CurrentUserId, DbSession
from learning_buddy.config import sanitize_error
from learning_buddy.schemas.video import (
    ContentChunk,
    ProgressResponse,
    ProgressUpdateRequest,
    TranscriptLoadResponse,
    TranscriptStatusResponse,
    VideoContext,
    VideoContextRequest,
)
from learning_buddy.services import video_content_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/videos", tags=["videos"])


@router.post("/context", response_model=VideoContext)
async def get_video_context(
    data: VideoContextRequest,
    user_id: CurrentUserId,
    db: DbSession,
) -> VideoContext:
    """
    Resolve what the viewer is watching at a timestamp.

    A timestamp with no chunk is not an error: the response carries no chunk
    and a suggestion to seek elsewhere.
    """
    try:
        return await video_content_service.get_video_context(db, user_id, data.video_id, data.timestamp)
    except SQLAlchemyError as e:
        logger.exception("Video context lookup failed for video %s", data.video_id)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=sanitize_error(e, generic_message="Content temporarily unavailable."),
        ) from e


@router.post("/{video_id}/transcript", response_model=TranscriptLoadResponse)
async def load_transcript(
    video_id: str,
    user_id: CurrentUserId,
    db: DbSession,
) -> TranscriptLoadResponse:
    """
    Fetch, chunk, and store a video's transcript.

    No-op when chunks already exist. When the transcript service is
    unreachable a low-confidence placeholder chunk is stored instead.
    """
    logger.info("Transcript load requested for video %s by user_id=%s", video_id, user_id)
    return await video_content_service.fetch_and_store_transcript(db, video_id)


@router.get("/{video_id}/transcript-status", response_model=TranscriptStatusResponse)
async def get_transcript_status(
    video_id: str,
    user_id: CurrentUserId,
    db: DbSession,
) -> TranscriptStatusResponse:
    """Whether a video has chunks, and how they were loaded."""
    return await video_content_service.get_transcript_status(db, video_id)


@router.get("/{video_id}/chunks", response_model=list[ContentChunk])
async def list_chunks(
    video_id: str,
    user_id: CurrentUserId,
    db: DbSession,
) -> list[ContentChunk]:
    """All chunks of a video in timeline order."""
    return await video_content_service.list_chunks(db, video_id)


@router.post("/progress", response_model=ProgressResponse)
async def update_progress(
    data: ProgressUpdateRequest,
    user_id: CurrentUserId,
    db: DbSession,
) -> ProgressResponse:
    """Record the viewer's playback position."""
    return await video_content_service.update_progress(
        db,
        user_id,
        data.video_id,
        data.current_position,
        data.duration,
        completed=data.completed,
    )


@router.get("/{video_id}/progress", response_model=ProgressResponse)
async def get_progress(
    video_id: str,
    user_id: CurrentUserId,
    db: DbSession,
) -> ProgressResponse:
    """The viewer's last recorded position; zeros when never watched."""
    return await video_content_service.get_progress(db, user_id, video_id)
