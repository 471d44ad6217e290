"""Render a user's entities and relations into a bounded prompt paragraph."""

import logging
from typing import TYPE_CHECKING

from sqlalchemy.ext.asyncio import AsyncSession

from learning_buddy.config import get_settings
from learning_buddy.schemas.memory import Entity, MemoryContext, Relation

if TYPE_CHECKING:
    from learning_buddy.services.memory_store import MemoryStore

logger = logging.getLogger(__name__)
settings = get_settings()

MEMORY_HEADER = "Here's what I remember about this teacher:"
ENTITY_SECTION_LABEL = "Concepts we've discussed:"
RELATION_SECTION_LABEL = "Learning connections:"
FIRST_CONVERSATION = "This is our first conversation."


def filter_by_topic(entities: list[Entity], topic: str) -> list[Entity]:
    """Keep entities whose name or any observation contains `topic` (case-insensitive)."""
    needle = topic.lower()
    return [
        entity
        for entity in entities
        if needle in entity.entity_name.lower()
        or any(needle in observation.lower() for observation in entity.observations)
    ]


def render_entity(entity: Entity, observations_per_entity: int) -> str:
    recent = entity.observations[-observations_per_entity:] if observations_per_entity > 0 else []
    return f"- {entity.entity_name} ({entity.entity_type}): {'; '.join(recent)}"


def render_relation(relation: Relation) -> str:
    return f"- {relation.from_entity} {relation.relation_type} {relation.to_entity}"


class ContextAssembler:
    """
    Turns stored memory into text for the system prompt.

    Selection is deliberately crude: recency order from the store, an optional
    lexical topic filter, and hard caps on entities and relations.
    """

    def __init__(
        self,
        store: "MemoryStore",
        max_entities: int | None = None,
        max_relations: int | None = None,
        observations_per_entity: int | None = None,
    ):
        self.store = store
        self.max_entities = max_entities if max_entities is not None else settings.memory_context_max_entities
        self.max_relations = max_relations if max_relations is not None else settings.memory_context_max_relations
        self.observations_per_entity = (
            observations_per_entity
            if observations_per_entity is not None
            else settings.memory_context_observations_per_entity
        )

    def render(self, entities: list[Entity], relations: list[Relation], topic: str | None = None) -> str:
        """Pure rendering step; no I/O."""
        if topic:
            entities = filter_by_topic(entities, topic)

        entity_lines = [render_entity(e, self.observations_per_entity) for e in entities[: self.max_entities]]
        relation_lines = [render_relation(r) for r in relations[: self.max_relations]]

        if not entity_lines and not relation_lines:
            return FIRST_CONVERSATION

        parts = [MEMORY_HEADER]
        if entity_lines:
            parts.append("\n".join([ENTITY_SECTION_LABEL, *entity_lines]))
        if relation_lines:
            parts.append("\n".join([RELATION_SECTION_LABEL, *relation_lines]))
        return "\n\n".join(parts)

    async def assemble(self, db: AsyncSession, user_id: str, topic: str | None = None) -> MemoryContext:
        """
        Build the memory context for a user.

        Memory is off the critical path: any failure yields a degraded result
        carrying the first-conversation text instead of an exception.
        """
        try:
            entities = await self.store.get_entities(db, user_id)
            relations = await self.store.get_relations(db, user_id)
            return MemoryContext(text=self.render(entities, relations, topic))
        except Exception as e:
            logger.exception("Memory context assembly failed for user_id=%s", user_id)
            return MemoryContext(
                text=FIRST_CONVERSATION,
                degraded=True,
                reason=f"{type(e).__name__}: {e}",
            )
