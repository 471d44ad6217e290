"""Unit tests for transcript chunking."""

import pytest

from learning_buddy.schemas.video import TranscriptSegment
from learning_buddy.services.transcript_chunking import (
    DEFAULT_TOPIC,
    ChunkingPolicy,
    chunk_segments,
    extract_keywords,
    extract_topic,
)


@pytest.fixture
def policy() -> ChunkingPolicy:
    return ChunkingPolicy()


def even_segments(count: int, seconds: float, text: str = "we talk about teaching") -> list[TranscriptSegment]:
    return [TranscriptSegment(start_time=i * seconds, duration=seconds, text=text) for i in range(count)]


@pytest.mark.unit
class TestChunkSegments:
    """Windowing of raw transcript segments."""

    def test_twenty_minute_video_of_eight_second_segments(self, policy) -> None:
        segments = even_segments(156, 8)  # 1248 seconds

        chunks = chunk_segments(segments, policy)

        assert len(chunks) == 16
        assert [c.end_time - c.start_time for c in chunks[:-1]] == [80] * 15
        assert chunks[-1].start_time == 1200
        assert chunks[-1].end_time == 1248

    def test_chunks_tile_the_timeline(self, policy) -> None:
        chunks = chunk_segments(even_segments(156, 8), policy)

        assert chunks[0].start_time == 0
        for previous, following in zip(chunks, chunks[1:]):
            assert previous.end_time == following.start_time

    def test_only_last_chunk_may_be_short(self, policy) -> None:
        chunks = chunk_segments(even_segments(100, 7), policy)

        for chunk in chunks[:-1]:
            assert chunk.end_time - chunk.start_time >= policy.min_seconds
            assert chunk.end_time - chunk.start_time <= policy.max_seconds

    def test_segment_count_cap_closes_window(self, policy) -> None:
        segments = [TranscriptSegment(start_time=i * 3, text="hello") for i in range(40)]

        chunks = chunk_segments(segments, policy)

        assert [c.segment_count for c in chunks] == [20, 20]
        assert chunks[0].end_time - chunks[0].start_time == 60

    def test_long_segment_starts_new_window(self, policy) -> None:
        segments = [
            TranscriptSegment(start_time=0, duration=50, text="intro"),
            TranscriptSegment(start_time=50, duration=60, text="long stretch"),
        ]

        chunks = chunk_segments(segments, policy)

        assert [(c.start_time, c.end_time) for c in chunks] == [(0, 50), (50, 110)]

    def test_short_video_is_single_chunk(self, policy) -> None:
        chunks = chunk_segments(even_segments(3, 5), policy)

        assert len(chunks) == 1
        assert (chunks[0].start_time, chunks[0].end_time) == (0, 15)

    def test_no_segments_no_chunks(self, policy) -> None:
        assert chunk_segments([], policy) == []

    def test_fractional_boundaries_do_not_overlap(self, policy) -> None:
        segments = [TranscriptSegment(start_time=i * 7.5, duration=7.5, text="x") for i in range(30)]

        chunks = chunk_segments(segments, policy)

        for previous, following in zip(chunks, chunks[1:]):
            assert previous.end_time <= following.start_time
        assert all(c.end_time > c.start_time for c in chunks)

    def test_content_joins_segment_text(self, policy) -> None:
        segments = [
            TranscriptSegment(start_time=0, duration=2, text=" Welcome "),
            TranscriptSegment(start_time=2, duration=2, text=""),
            TranscriptSegment(start_time=4, duration=2, text="to the course"),
        ]

        chunks = chunk_segments(segments, policy)

        assert chunks[0].content == "Welcome to the course"
        assert chunks[0].topic == "Course Introduction"


@pytest.mark.unit
class TestLabels:
    """Topic and keyword labelling."""

    def test_first_matching_category_wins(self, policy) -> None:
        text = "A classroom example of prompt engineering"
        assert extract_topic(text, policy) == "Prompt Engineering Fundamentals"

    def test_default_topic(self, policy) -> None:
        assert extract_topic("nothing recognisable", policy) == DEFAULT_TOPIC

    def test_keywords_capped(self, policy) -> None:
        text = (
            "prompt engineering for ai in education: teaching and learning with each student "
            "in the classroom, lesson by lesson"
        )
        keywords = extract_keywords(text, policy)

        assert len(keywords) == policy.max_keywords
        assert keywords[0] == "prompt"

    def test_keywords_match_inside_words(self, policy) -> None:
        assert "student" in extract_keywords("Students love it", policy)
