"""Unit tests for writing chat exchanges back into memory."""

from datetime import date, datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from learning_buddy.schemas.video import ContentChunk, VideoContext
from learning_buddy.services.memory_store import MemoryStore
from learning_buddy.services.memory_updater import (
    MEMORY_UPDATE_FAILED,
    ConversationMemoryUpdater,
    detect_progressions,
    detect_teaching_challenge,
)


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def updater(store) -> ConversationMemoryUpdater:
    return ConversationMemoryUpdater(store=store)


def video_context(topic: str = "Advanced Techniques") -> VideoContext:
    return VideoContext(
        video_id="vid42",
        timestamp=217.4,
        chunk=ContentChunk(
            id=1,
            video_id="vid42",
            start_time=180,
            end_time=240,
            content="Chain prompts together",
            topic=topic,
            created_at=datetime.now(timezone.utc),
        ),
    )


@pytest.mark.unit
class TestDetectProgressions:
    def test_understanding(self) -> None:
        assert detect_progressions("Oh, now I understand!") == [("understands", 0.8)]

    def test_multiple_signals(self) -> None:
        found = detect_progressions("That helps, but I'm still confused")
        assert ("finding_helpful", 0.7) in found
        assert ("struggles_with", 0.7) in found

    def test_no_signal(self) -> None:
        assert detect_progressions("Hello there") == []


@pytest.mark.unit
class TestDetectTeachingChallenge:
    def test_students_struggling(self) -> None:
        observation = detect_teaching_challenge("My students find this really difficult")

        assert observation == "Mentioned student challenges: My students find this really difficult"

    def test_needs_a_classroom_subject(self) -> None:
        assert detect_teaching_challenge("I struggle with this myself") is None

    def test_observation_is_truncated(self) -> None:
        observation = detect_teaching_challenge("In my class they struggle " + "x" * 200)

        assert len(observation) == len("Mentioned student challenges: ") + 100


@pytest.mark.unit
class TestUpdateFromConversation:
    async def test_records_concept_observation(self, updater, store, db, user_id) -> None:
        updates = await updater.update_from_conversation(
            db, user_id, "What is machine learning?", "It is a way computers learn from examples."
        )

        assert "Learning about: machine learning" in updates
        entity = await store.get_entity(db, user_id, "machine learning")
        assert entity is not None
        assert entity.observations == [f"Discussed: machine learning on {date.today().isoformat()}"]

    async def test_progress_relation_targets_first_topical_concept(self, updater, store, db, user_id) -> None:
        updates = await updater.update_from_conversation(
            db, user_id, "I was confused but now I understand prompt engineering", "Great!"
        )

        assert "Progress: understands prompt engineering" in updates
        relations = await store.get_relations(db, user_id, name="user")
        assert [(r.to_entity, r.relation_type, r.strength) for r in relations] == [
            ("prompt engineering", "understands", 0.8)
        ]

    async def test_repeat_mentions_append_not_duplicate(self, updater, store, db, user_id) -> None:
        await updater.update_from_conversation(db, user_id, "bias", "bias bias")
        await updater.update_from_conversation(db, user_id, "more on bias", "ok")

        entities = await store.get_entities(db, user_id, name_contains="bias")
        assert len(entities) == 1
        assert len(entities[0].observations) == 2

    async def test_video_engagement(self, updater, store, db, user_id) -> None:
        updates = await updater.update_from_conversation(
            db,
            user_id,
            "How does this apply to prompt engineering?",
            "Chaining is an advanced form of it.",
            video_context=video_context(),
        )

        assert "Watching: Advanced Techniques" in updates
        assert "Connected prompt engineering to Advanced Techniques" in updates

        content = await store.get_entity(db, user_id, "Advanced Techniques")
        assert content.entity_type == "learning_content"
        assert content.observations == ["Engaged with video content about Advanced Techniques at timestamp 217"]

        progress = await store.get_entity(db, user_id, "vid42")
        assert progress.entity_type == "video_progress"

        relations = await store.get_relations(db, user_id, name="Advanced Techniques")
        assert [(r.from_entity, r.relation_type, r.strength) for r in relations] == [
            ("prompt engineering", "learned_from_content", 0.7)
        ]

    async def test_teaching_challenge_is_recorded(self, updater, store, db, user_id) -> None:
        updates = await updater.update_from_conversation(
            db, user_id, "My students struggle with this in my class", "Let us break it into steps."
        )

        assert "Noted challenge: student_learning_challenges" in updates
        entity = await store.get_entity(db, user_id, "student_learning_challenges")
        assert entity.entity_type == "teaching_challenge"
        assert entity.observations == ["Mentioned student challenges: My students struggle with this in my class"]

        await updater.update_from_conversation(db, user_id, "My students still find it difficult", "ok")
        entity = await store.get_entity(db, user_id, "student_learning_challenges")
        assert len(entity.observations) == 2

    async def test_no_concepts_no_updates(self, updater, db, user_id) -> None:
        assert await updater.update_from_conversation(db, user_id, "hello", "hi there") == []

    async def test_failure_is_reported_not_raised(self, db, user_id) -> None:
        store = MagicMock()
        store.add_observations = AsyncMock(side_effect=RuntimeError("boom"))
        updater = ConversationMemoryUpdater(store=store)

        updates = await updater.update_from_conversation(db, user_id, "tell me about ethics", "sure")

        assert updates == [MEMORY_UPDATE_FAILED]

    async def test_uses_injected_extractor(self, store, db, user_id) -> None:
        extractor = MagicMock()
        extractor.extract = AsyncMock(return_value=[])
        updater = ConversationMemoryUpdater(store=store, extractor=extractor)

        await updater.update_from_conversation(db, user_id, "hi", "hello", grade_level="high school")

        extractor.extract.assert_awaited_once_with("hi hello", "high school")
