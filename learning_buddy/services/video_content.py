"""Video chunk lookup, transcript ingestion, and playback progress."""

import json
import logging

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from learning_buddy.config import get_settings
from learning_buddy.db.models import VideoContentChunk, VideoProgress, VideoTranscript, utcnow
from learning_buddy.schemas.video import (
    ChunkDraft,
    ContentChunk,
    ProgressResponse,
    Suggestion,
    SurroundingChunk,
    TranscriptLoadResponse,
    TranscriptStatusResponse,
    UserLearningContext,
    VideoContext,
)
from learning_buddy.services.memory_store import MemoryStore, decode_json_list, memory_store
from learning_buddy.services.transcript_chunking import ChunkingPolicy, chunk_segments
from learning_buddy.services.transcript_client import (
    FALLBACK_CONFIDENCE,
    FALLBACK_TOPIC,
    TranscriptClient,
)

logger = logging.getLogger(__name__)
settings = get_settings()

# Entity types written by the memory updater that signal difficulty
STRUGGLE_ENTITY_TYPES = {"learning_state", "teaching_challenge"}


def _to_chunk(row: VideoContentChunk) -> ContentChunk:
    return ContentChunk(
        id=row.id,
        video_id=row.video_id,
        start_time=row.start_time,
        end_time=row.end_time,
        content=row.content,
        topic=row.topic,
        keywords=[str(k) for k in decode_json_list(row.keywords, field="keywords", row_id=row.id)],
        confidence=row.confidence,
        created_at=row.created_at,
    )


def _overlaps_keywords(concepts: list[str], keywords: list[str]) -> list[str]:
    lowered = [k.lower() for k in keywords]
    return [c for c in concepts if any(k in c.lower() for k in lowered)]


def generate_suggestions(chunk: ContentChunk, user_context: UserLearningContext) -> list[Suggestion]:
    """Nudges based on the viewer's memory and the current chunk's topic."""
    suggestions = []

    struggles = _overlaps_keywords(user_context.struggling_with, chunk.keywords)
    if struggles:
        suggestions.append(
            Suggestion(
                type="review",
                message=f"I noticed you had questions about {struggles[0]} before. Would you like me to explain how this relates?",
                action="explain_connection",
            )
        )

    interests = _overlaps_keywords(user_context.interested_in, chunk.keywords)
    if interests:
        suggestions.append(
            Suggestion(
                type="explore",
                message=f"Since you're interested in {interests[0]}, want to dive deeper into this section?",
                action="deep_dive",
            )
        )

    topic = chunk.topic.lower()
    if "example" in topic:
        suggestions.append(
            Suggestion(
                type="practice",
                message="Would you like to create your own example based on this?",
                action="create_example",
            )
        )
    if "advanced" in topic or "technique" in topic:
        suggestions.append(
            Suggestion(
                type="clarify",
                message="This seems like an advanced topic. Would you like me to break it down further?",
                action="simplify_explanation",
            )
        )
    return suggestions


class VideoContentService:
    """Resolves what is on screen and manages the chunk store behind it."""

    def __init__(
        self,
        transcript_client: TranscriptClient | None = None,
        store: MemoryStore | None = None,
        policy: ChunkingPolicy | None = None,
    ):
        self.transcript_client = transcript_client or TranscriptClient()
        self.store = store or memory_store
        self.policy = policy

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    async def find_chunk(self, db: AsyncSession, video_id: str, timestamp: float) -> ContentChunk | None:
        """
        Chunk whose [start_time, end_time) contains the timestamp.

        None is a normal outcome (a gap in chunking or outside the video) and
        means "no context available".
        """
        stmt = (
            select(VideoContentChunk)
            .where(
                VideoContentChunk.video_id == video_id,
                VideoContentChunk.start_time <= timestamp,
                VideoContentChunk.end_time > timestamp,
            )
            .order_by(VideoContentChunk.start_time.desc())
            .limit(1)
        )
        result = await db.execute(stmt)
        row = result.scalar_one_or_none()
        return _to_chunk(row) if row is not None else None

    async def find_surrounding(
        self,
        db: AsyncSession,
        video_id: str,
        low: float,
        high: float,
        limit: int | None = None,
    ) -> list[ContentChunk]:
        """Chunks starting within [low, high], in timeline order."""
        stmt = (
            select(VideoContentChunk)
            .where(
                VideoContentChunk.video_id == video_id,
                VideoContentChunk.start_time >= low,
                VideoContentChunk.start_time <= high,
            )
            .order_by(VideoContentChunk.start_time.asc())
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await db.execute(stmt)
        return [_to_chunk(row) for row in result.scalars()]

    async def list_chunks(self, db: AsyncSession, video_id: str) -> list[ContentChunk]:
        result = await db.execute(
            select(VideoContentChunk)
            .where(VideoContentChunk.video_id == video_id)
            .order_by(VideoContentChunk.start_time.asc())
        )
        return [_to_chunk(row) for row in result.scalars()]

    async def count_chunks(self, db: AsyncSession, video_id: str) -> int:
        result = await db.execute(
            select(func.count()).select_from(VideoContentChunk).where(VideoContentChunk.video_id == video_id)
        )
        return result.scalar() or 0

    # -------------------------------------------------------------------------
    # Ingestion (offline / admin path)
    # -------------------------------------------------------------------------

    async def ingest_chunks(self, db: AsyncSession, video_id: str, drafts: list[ChunkDraft]) -> int:
        """Replace all chunks of a video with the given drafts."""
        await db.execute(delete(VideoContentChunk).where(VideoContentChunk.video_id == video_id))
        for draft in drafts:
            db.add(
                VideoContentChunk(
                    video_id=video_id,
                    start_time=draft.start_time,
                    end_time=draft.end_time,
                    content=draft.content,
                    topic=draft.topic,
                    keywords=json.dumps(draft.keywords),
                    confidence=draft.confidence,
                    created_at=utcnow(),
                )
            )
        await db.commit()
        return len(drafts)

    async def fetch_and_store_transcript(self, db: AsyncSession, video_id: str) -> TranscriptLoadResponse:
        """
        Fetch, chunk, and store a transcript unless a real one is already stored.

        A video holding only the fallback placeholder is fetched again; the
        placeholder is replaced once the source returns real segments.
        """
        existing = await self.count_chunks(db, video_id)
        meta = await self._get_transcript_meta(db, video_id)
        current_status = meta.transcript_status if meta else "loaded"

        if existing and current_status != "fallback":
            return TranscriptLoadResponse(
                video_id=video_id,
                status=current_status,
                chunk_count=existing,
                message="Transcript already loaded",
            )

        fetched = await self.transcript_client.fetch(video_id)
        if fetched.is_fallback and existing:
            logger.warning("Transcript source still unavailable for video %s, keeping placeholder", video_id)
            return TranscriptLoadResponse(
                video_id=video_id,
                status="fallback",
                chunk_count=existing,
                message="Transcript source unavailable, placeholder content kept",
            )

        drafts = chunk_segments(fetched.segments, self.policy)
        if fetched.is_fallback:
            for draft in drafts:
                draft.topic = FALLBACK_TOPIC
                draft.confidence = FALLBACK_CONFIDENCE

        count = await self.ingest_chunks(db, video_id, drafts)
        status = "fallback" if fetched.is_fallback else "loaded"
        await self._set_transcript_status(db, video_id, status, count)

        logger.info("Stored %d chunks for video %s (status=%s)", count, video_id, status)
        return TranscriptLoadResponse(
            video_id=video_id,
            status=status,
            chunk_count=count,
            message=f"Loaded {count} transcript chunks",
        )

    async def get_transcript_status(self, db: AsyncSession, video_id: str) -> TranscriptStatusResponse:
        chunk_count = await self.count_chunks(db, video_id)
        meta = await self._get_transcript_meta(db, video_id)
        return TranscriptStatusResponse(
            video_id=video_id,
            has_transcript=chunk_count > 0,
            chunk_count=chunk_count,
            status=meta.transcript_status if meta else "unknown",
            loaded_at=meta.transcript_loaded_at if meta else None,
        )

    async def _get_transcript_meta(self, db: AsyncSession, video_id: str) -> VideoTranscript | None:
        result = await db.execute(select(VideoTranscript).where(VideoTranscript.video_id == video_id))
        return result.scalar_one_or_none()

    async def _set_transcript_status(self, db: AsyncSession, video_id: str, status: str, chunk_count: int) -> None:
        meta = await self._get_transcript_meta(db, video_id)
        if meta is None:
            meta = VideoTranscript(video_id=video_id)
            db.add(meta)
        meta.transcript_status = status
        meta.chunk_count = chunk_count
        meta.transcript_loaded_at = utcnow()
        await db.commit()

    # -------------------------------------------------------------------------
    # Context for chat
    # -------------------------------------------------------------------------

    async def get_user_learning_context(self, db: AsyncSession, user_id: str) -> UserLearningContext:
        """Recent concepts, struggles, and interests from memory. Empty on failure."""
        try:
            entities = await self.store.get_entities(db, user_id)
            relations = await self.store.get_relations(db, user_id, name="user")
        except Exception:
            logger.exception("Could not read learning context for user_id=%s", user_id)
            return UserLearningContext()

        struggling = [e.entity_name for e in entities if e.entity_type in STRUGGLE_ENTITY_TYPES]
        struggling += [r.to_entity for r in relations if r.relation_type == "struggles_with"]
        interested = [r.to_entity for r in relations if r.relation_type == "interested_in"]

        return UserLearningContext(
            recent_concepts=[e.entity_name for e in entities[:5]],
            struggling_with=list(dict.fromkeys(struggling)),
            interested_in=list(dict.fromkeys(interested)),
        )

    async def get_video_context(
        self,
        db: AsyncSession,
        user_id: str,
        video_id: str,
        timestamp: float,
    ) -> VideoContext:
        """What is on screen at `timestamp`, plus neighbours and suggestions."""
        chunk = await self.find_chunk(db, video_id, timestamp)
        if chunk is None:
            logger.info("No chunk for video %s at %.1fs", video_id, timestamp)
            return VideoContext(
                video_id=video_id,
                timestamp=timestamp,
                message="No content available for this timestamp",
                suggestions=[
                    Suggestion(
                        type="info",
                        message="No specific content available for this timestamp. Try seeking to a different time.",
                        action="seek_different_time",
                    )
                ],
            )

        window = settings.video_surrounding_seconds
        surrounding = await self.find_surrounding(
            db,
            video_id,
            max(0, chunk.start_time - window),
            chunk.end_time + window,
            limit=settings.video_surrounding_limit,
        )
        user_context = await self.get_user_learning_context(db, user_id)

        return VideoContext(
            video_id=video_id,
            timestamp=timestamp,
            chunk=chunk,
            surrounding=[
                SurroundingChunk(start_time=c.start_time, end_time=c.end_time, topic=c.topic) for c in surrounding
            ],
            user_context=user_context,
            suggestions=generate_suggestions(chunk, user_context),
        )

    # -------------------------------------------------------------------------
    # Playback progress
    # -------------------------------------------------------------------------

    async def update_progress(
        self,
        db: AsyncSession,
        user_id: str,
        video_id: str,
        current_position: float,
        duration: float,
        completed: bool = False,
    ) -> ProgressResponse:
        result = await db.execute(
            select(VideoProgress).where(VideoProgress.user_id == user_id, VideoProgress.video_id == video_id)
        )
        progress = result.scalar_one_or_none()
        if progress is None:
            progress = VideoProgress(user_id=user_id, video_id=video_id)
            db.add(progress)

        progress.current_position = current_position
        progress.duration = duration
        progress.progress_percentage = min(current_position / duration * 100, 100.0) if duration > 0 else 0.0
        progress.completed = completed
        progress.last_updated = utcnow()
        await db.commit()
        await db.refresh(progress)
        return ProgressResponse.model_validate(progress)

    async def get_progress(self, db: AsyncSession, user_id: str, video_id: str) -> ProgressResponse:
        result = await db.execute(
            select(VideoProgress).where(VideoProgress.user_id == user_id, VideoProgress.video_id == video_id)
        )
        progress = result.scalar_one_or_none()
        if progress is None:
            return ProgressResponse(video_id=video_id)
        return ProgressResponse.model_validate(progress)


# Singleton instance
video_content_service = VideoContentService()
