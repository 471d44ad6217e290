"""Unit tests for the video chunk locator, transcript ingestion and progress."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from learning_buddy.schemas.video import ChunkDraft, TranscriptFetchResult, TranscriptSegment
from learning_buddy.services.memory_store import MemoryStore
from learning_buddy.services.transcript_client import FALLBACK_CONFIDENCE, FALLBACK_SEGMENTS, FALLBACK_TOPIC
from learning_buddy.services.video_content import VideoContentService

VIDEO_ID = "abc123XYZ_-"


def draft(start: int, end: int, topic: str = "Educational Content", keywords: list[str] | None = None) -> ChunkDraft:
    return ChunkDraft(start_time=start, end_time=end, content=f"content {start}-{end}", topic=topic, keywords=keywords or [])


@pytest.fixture
def transcript_client() -> MagicMock:
    client = MagicMock()
    client.fetch = AsyncMock()
    return client


@pytest.fixture
def service(transcript_client) -> VideoContentService:
    return VideoContentService(transcript_client=transcript_client, store=MemoryStore())


@pytest.mark.unit
class TestFindChunk:
    """Timestamp to chunk resolution over half-open intervals."""

    async def test_timestamp_inside_chunk(self, service, db) -> None:
        await service.ingest_chunks(db, VIDEO_ID, [draft(180, 240, "Advanced Techniques")])

        chunk = await service.find_chunk(db, VIDEO_ID, 217)

        assert chunk is not None
        assert (chunk.start_time, chunk.end_time) == (180, 240)
        assert chunk.topic == "Advanced Techniques"

    async def test_timestamp_past_last_chunk(self, service, db) -> None:
        await service.ingest_chunks(db, VIDEO_ID, [draft(180, 240)])

        assert await service.find_chunk(db, VIDEO_ID, 250) is None

    async def test_boundary_belongs_to_following_chunk(self, service, db) -> None:
        await service.ingest_chunks(db, VIDEO_ID, [draft(0, 60), draft(60, 120)])

        chunk = await service.find_chunk(db, VIDEO_ID, 60)

        assert chunk is not None
        assert chunk.start_time == 60

    async def test_gap_between_chunks(self, service, db) -> None:
        await service.ingest_chunks(db, VIDEO_ID, [draft(0, 60), draft(90, 150)])

        assert await service.find_chunk(db, VIDEO_ID, 75) is None

    async def test_other_video_is_not_matched(self, service, db) -> None:
        await service.ingest_chunks(db, VIDEO_ID, [draft(0, 60)])

        assert await service.find_chunk(db, "another-video", 30) is None

    async def test_find_surrounding_in_timeline_order(self, service, db) -> None:
        await service.ingest_chunks(db, VIDEO_ID, [draft(120, 180), draft(0, 60), draft(60, 120), draft(180, 240)])

        chunks = await service.find_surrounding(db, VIDEO_ID, 0, 150, limit=3)

        assert [c.start_time for c in chunks] == [0, 60, 120]

    async def test_ingest_replaces_existing_chunks(self, service, db) -> None:
        await service.ingest_chunks(db, VIDEO_ID, [draft(0, 60), draft(60, 120)])
        await service.ingest_chunks(db, VIDEO_ID, [draft(0, 30)])

        chunks = await service.list_chunks(db, VIDEO_ID)
        assert [(c.start_time, c.end_time) for c in chunks] == [(0, 30)]


@pytest.mark.unit
class TestTranscriptLoading:
    """Fetch, chunk and store."""

    async def test_stores_chunks_from_fetched_segments(self, service, transcript_client, db) -> None:
        transcript_client.fetch.return_value = TranscriptFetchResult(
            video_id=VIDEO_ID,
            segments=[TranscriptSegment(start_time=i * 8, duration=8, text="lesson plan") for i in range(20)],
        )

        result = await service.fetch_and_store_transcript(db, VIDEO_ID)

        assert result.status == "loaded"
        assert result.chunk_count == 2
        chunks = await service.list_chunks(db, VIDEO_ID)
        assert all(c.topic == "Lesson Planning with AI" for c in chunks)

        status = await service.get_transcript_status(db, VIDEO_ID)
        assert status.has_transcript is True
        assert status.status == "loaded"
        assert status.chunk_count == 2

    async def test_fallback_transcript_is_marked_low_confidence(self, service, transcript_client, db) -> None:
        transcript_client.fetch.return_value = TranscriptFetchResult(
            video_id=VIDEO_ID,
            segments=[s.model_copy() for s in FALLBACK_SEGMENTS],
            is_fallback=True,
        )

        result = await service.fetch_and_store_transcript(db, VIDEO_ID)

        assert result.status == "fallback"
        chunks = await service.list_chunks(db, VIDEO_ID)
        assert len(chunks) == 1
        assert chunks[0].topic == FALLBACK_TOPIC
        assert chunks[0].confidence == FALLBACK_CONFIDENCE

    async def test_already_loaded_is_noop(self, service, transcript_client, db) -> None:
        await service.ingest_chunks(db, VIDEO_ID, [draft(0, 60)])

        result = await service.fetch_and_store_transcript(db, VIDEO_ID)

        assert result.message == "Transcript already loaded"
        assert result.chunk_count == 1
        transcript_client.fetch.assert_not_called()

    async def test_placeholder_is_replaced_once_source_recovers(self, service, transcript_client, db) -> None:
        transcript_client.fetch.side_effect = [
            TranscriptFetchResult(
                video_id=VIDEO_ID,
                segments=[s.model_copy() for s in FALLBACK_SEGMENTS],
                is_fallback=True,
            ),
            TranscriptFetchResult(
                video_id=VIDEO_ID,
                segments=[TranscriptSegment(start_time=i * 8, duration=8, text="lesson plan") for i in range(20)],
            ),
        ]

        first = await service.fetch_and_store_transcript(db, VIDEO_ID)
        second = await service.fetch_and_store_transcript(db, VIDEO_ID)

        assert first.status == "fallback"
        assert second.status == "loaded"
        assert second.chunk_count == 2
        assert transcript_client.fetch.await_count == 2
        chunks = await service.list_chunks(db, VIDEO_ID)
        assert FALLBACK_TOPIC not in {c.topic for c in chunks}
        status = await service.get_transcript_status(db, VIDEO_ID)
        assert status.status == "loaded"

    async def test_placeholder_kept_while_source_is_down(self, service, transcript_client, db) -> None:
        transcript_client.fetch.return_value = TranscriptFetchResult(
            video_id=VIDEO_ID,
            segments=[s.model_copy() for s in FALLBACK_SEGMENTS],
            is_fallback=True,
        )

        await service.fetch_and_store_transcript(db, VIDEO_ID)
        result = await service.fetch_and_store_transcript(db, VIDEO_ID)

        assert result.status == "fallback"
        assert result.message != "Transcript already loaded"
        assert transcript_client.fetch.await_count == 2
        status = await service.get_transcript_status(db, VIDEO_ID)
        assert status.status == "fallback"

    async def test_real_transcript_is_not_fetched_again(self, service, transcript_client, db) -> None:
        transcript_client.fetch.return_value = TranscriptFetchResult(
            video_id=VIDEO_ID,
            segments=[TranscriptSegment(start_time=i * 8, duration=8, text="lesson plan") for i in range(20)],
        )

        await service.fetch_and_store_transcript(db, VIDEO_ID)
        result = await service.fetch_and_store_transcript(db, VIDEO_ID)

        assert result.status == "loaded"
        assert result.message == "Transcript already loaded"
        assert transcript_client.fetch.await_count == 1

    async def test_status_for_unknown_video(self, service, db) -> None:
        status = await service.get_transcript_status(db, "never-seen")

        assert status.has_transcript is False
        assert status.status == "unknown"


@pytest.mark.unit
class TestVideoContext:
    """Context for chat prompts."""

    async def test_context_with_chunk_and_suggestions(self, service, db, user_id) -> None:
        await service.ingest_chunks(
            db,
            VIDEO_ID,
            [
                draft(120, 180, "Classroom Implementation"),
                draft(180, 240, "Advanced Techniques", keywords=["prompt", "technique"]),
                draft(240, 300, "Practical Examples"),
            ],
        )
        await service.store.create_relation(db, user_id, "user", "prompt engineering", "struggles_with", 0.7)

        context = await service.get_video_context(db, user_id, VIDEO_ID, 217)

        assert context.chunk is not None
        assert context.chunk.topic == "Advanced Techniques"
        assert [s.start_time for s in context.surrounding] == [120, 180, 240]
        assert "prompt engineering" in context.user_context.struggling_with
        assert [s.type for s in context.suggestions] == ["review", "clarify"]

    async def test_context_without_chunk(self, service, db, user_id) -> None:
        context = await service.get_video_context(db, user_id, VIDEO_ID, 9999)

        assert context.chunk is None
        assert context.message == "No content available for this timestamp"
        assert [s.action for s in context.suggestions] == ["seek_different_time"]

    async def test_learning_context_reads_updater_entity_types(self, service, db, user_id) -> None:
        store = service.store
        await store.create_entity(db, user_id, "student_learning_challenges", "teaching_challenge", ["o"])
        await store.create_entity(db, user_id, "confusion", "learning_state", ["o"])
        await store.create_entity(db, user_id, "enthusiasm for AI", "emotional_state", ["o"])
        await store.create_relation(db, user_id, "user", "bias", "interested_in", 0.6)

        learning = await service.get_user_learning_context(db, user_id)

        assert set(learning.struggling_with) == {"student_learning_challenges", "confusion"}
        assert learning.interested_in == ["bias"]


@pytest.mark.unit
class TestProgress:
    async def test_update_and_read_progress(self, service, db, user_id) -> None:
        await service.update_progress(db, user_id, VIDEO_ID, 30, 120)
        progress = await service.update_progress(db, user_id, VIDEO_ID, 60, 120)

        assert progress.progress_percentage == 50.0
        read_back = await service.get_progress(db, user_id, VIDEO_ID)
        assert read_back.current_position == 60

    async def test_percentage_capped(self, service, db, user_id) -> None:
        progress = await service.update_progress(db, user_id, VIDEO_ID, 130, 120, completed=True)

        assert progress.progress_percentage == 100.0
        assert progress.completed is True

    async def test_unwatched_video_is_zero(self, service, db, user_id) -> None:
        progress = await service.get_progress(db, user_id, VIDEO_ID)

        assert progress.current_position == 0
        assert progress.completed is False

    async def test_zero_duration_is_zero_percent(self, service, db, user_id) -> None:
        progress = await service.update_progress(db, user_id, VIDEO_ID, 30, 0)

        assert progress.progress_percentage == 0.0
        assert progress.current_position == 30
