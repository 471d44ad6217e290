"""Write what a chat exchange revealed back into semantic memory."""

import logging
import re
from datetime import date

from sqlalchemy.ext.asyncio import AsyncSession

from learning_buddy.schemas.memory import ExtractedConcept
from learning_buddy.schemas.video import VideoContext
from learning_buddy.services.concept_extraction import ConceptExtractor, LexicalConceptExtractor
from learning_buddy.services.memory_store import MemoryStore, memory_store

logger = logging.getLogger(__name__)

MEMORY_UPDATE_FAILED = "Memory system processing this interaction"

# (pattern, relation type, strength)
PROGRESSION_PATTERNS = [
    (re.compile(r"now i understand|makes sense now|i get it now"), "understands", 0.8),
    (re.compile(r"still confused|still don't get|still unclear"), "struggles_with", 0.7),
    (re.compile(r"want to learn more|tell me more|can you explain"), "interested_in", 0.6),
    (re.compile(r"this is helpful|that helps|good explanation"), "finding_helpful", 0.7),
    (re.compile(r"tried this|implemented|used in class"), "applied", 0.9),
]

STATE_TYPES = {"emotional_state", "learning_state"}

TEACHING_CHALLENGE_ENTITY = "student_learning_challenges"
TEACHING_CHALLENGE_TYPE = "teaching_challenge"


def detect_progressions(text: str) -> list[tuple[str, float]]:
    """Relation types (with strength) signalled anywhere in the text."""
    lower_text = text.lower()
    return [(relation, strength) for pattern, relation, strength in PROGRESSION_PATTERNS if pattern.search(lower_text)]


def detect_teaching_challenge(user_message: str) -> str | None:
    """Observation for a teacher describing their students struggling, if they did."""
    lower_text = user_message.lower()
    about_class = "my students" in lower_text or "in my class" in lower_text
    if about_class and ("struggle" in lower_text or "difficult" in lower_text):
        return f"Mentioned student challenges: {user_message[:100]}"
    return None


def _unique_by_name(concepts: list[ExtractedConcept]) -> list[ExtractedConcept]:
    seen: set[str] = set()
    unique = []
    for concept in concepts:
        if concept.name not in seen:
            seen.add(concept.name)
            unique.append(concept)
    return unique


class ConversationMemoryUpdater:
    """Scans an exchange for concepts and progress cues and records them."""

    def __init__(self, store: MemoryStore | None = None, extractor: ConceptExtractor | None = None):
        self.store = store or memory_store
        self.extractor = extractor or LexicalConceptExtractor()

    async def update_from_conversation(
        self,
        db: AsyncSession,
        user_id: str,
        user_message: str,
        ai_response: str,
        grade_level: str | None = None,
        video_context: VideoContext | None = None,
    ) -> list[str]:
        """
        Record observations and relations for one exchange.

        Best-effort: failures are logged and reported as a single neutral
        update line instead of raising into the chat flow.
        """
        try:
            return await self._update(db, user_id, user_message, ai_response, grade_level, video_context)
        except Exception:
            logger.exception("Memory update failed for user_id=%s", user_id)
            try:
                await db.rollback()
            except Exception:
                logger.exception("Rollback after failed memory update also failed")
            return [MEMORY_UPDATE_FAILED]

    async def _update(
        self,
        db: AsyncSession,
        user_id: str,
        user_message: str,
        ai_response: str,
        grade_level: str | None,
        video_context: VideoContext | None,
    ) -> list[str]:
        combined = f"{user_message} {ai_response}"
        concepts = _unique_by_name(await self.extractor.extract(combined, grade_level))
        today = date.today().isoformat()

        updates = []
        for concept in concepts:
            await self.store.add_observations(db, user_id, concept.name, [f"Discussed: {concept.name} on {today}"])
            updates.append(f"Learning about: {concept.name}")

        topical = [c for c in concepts if c.type not in STATE_TYPES]
        if topical:
            for relation_type, strength in detect_progressions(combined):
                await self.store.create_relation(db, user_id, "user", topical[0].name, relation_type, strength)
                updates.append(f"Progress: {relation_type} {topical[0].name}")

        challenge = detect_teaching_challenge(user_message)
        if challenge:
            await self._observe(db, user_id, TEACHING_CHALLENGE_ENTITY, TEACHING_CHALLENGE_TYPE, challenge)
            updates.append(f"Noted challenge: {TEACHING_CHALLENGE_ENTITY}")

        if video_context is not None and video_context.chunk is not None:
            updates.extend(await self._record_video_engagement(db, user_id, video_context, topical))

        return updates

    async def _record_video_engagement(
        self,
        db: AsyncSession,
        user_id: str,
        video_context: VideoContext,
        topical: list[ExtractedConcept],
    ) -> list[str]:
        chunk = video_context.chunk
        timestamp = int(video_context.timestamp)

        await self._observe(
            db, user_id, chunk.topic, "learning_content",
            f"Engaged with video content about {chunk.topic} at timestamp {timestamp}",
        )
        await self._observe(
            db, user_id, video_context.video_id, "video_progress",
            f"Reached timestamp {timestamp} in video {video_context.video_id}",
        )
        updates = [f"Watching: {chunk.topic}"]

        if topical:
            await self.store.create_relation(
                db, user_id, topical[0].name, chunk.topic, "learned_from_content", 0.7
            )
            updates.append(f"Connected {topical[0].name} to {chunk.topic}")
        return updates

    async def _observe(self, db: AsyncSession, user_id: str, name: str, entity_type: str, observation: str) -> None:
        """Append to an entity, creating it with the given type when new."""
        if await self.store.get_entity(db, user_id, name) is None:
            await self.store.create_entity(db, user_id, name, entity_type, [observation])
        else:
            await self.store.add_observations(db, user_id, name, [observation])


# Singleton instance; the extractor is swapped at startup by select_concept_extractor()
memory_updater = ConversationMemoryUpdater()
