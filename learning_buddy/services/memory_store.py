"""Per-user semantic memory: entities, relations, and conversation logs."""

import json
import logging
from collections.abc import Sequence
from uuid import UUID

from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from learning_buddy.db.models import ConversationLog, MemoryEntity, MemoryRelation, utcnow
from learning_buddy.schemas.chat import ChatTurn
from learning_buddy.schemas.memory import Entity, MemoryContext, Relation

logger = logging.getLogger(__name__)


def decode_json_list(raw: str | None, *, field: str, row_id: object) -> list:
    """
    Decode a JSON array column.

    Malformed or non-list values are logged and read as an empty list so a
    single bad row never aborts the surrounding request.
    """
    if not raw:
        return []
    try:
        value = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning("Malformed JSON in %s for row %s, treating as empty", field, row_id)
        return []
    if not isinstance(value, list):
        logger.warning("Expected JSON array in %s for row %s, got %s", field, row_id, type(value).__name__)
        return []
    return value


def _to_entity(row: MemoryEntity) -> Entity:
    return Entity(
        id=row.id,
        user_id=row.user_id,
        entity_name=row.entity_name,
        entity_type=row.entity_type,
        observations=[str(o) for o in decode_json_list(row.observations, field="observations", row_id=row.id)],
        confidence=row.confidence,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _to_relation(row: MemoryRelation) -> Relation:
    return Relation(
        id=row.id,
        user_id=row.user_id,
        from_entity=row.from_entity,
        to_entity=row.to_entity,
        relation_type=row.relation_type,
        strength=row.strength,
        evidence=[str(e) for e in decode_json_list(row.evidence, field="evidence", row_id=row.id)],
        created_at=row.created_at,
    )


class MemoryStore:
    """
    Durable per-user knowledge graph of concepts and relations.

    Storage errors (SQLAlchemyError) propagate unchanged; not-found is
    None or an empty list.
    """

    async def create_entity(
        self,
        db: AsyncSession,
        user_id: str,
        name: str,
        entity_type: str,
        observations: Sequence[str] = (),
    ) -> Entity:
        """Insert a new entity. Never deduplicates by name."""
        now = utcnow()
        row = MemoryEntity(
            user_id=user_id,
            entity_name=name,
            entity_type=entity_type,
            observations=json.dumps(list(observations)),
            created_at=now,
            updated_at=now,
        )
        db.add(row)
        await db.commit()
        await db.refresh(row)
        return _to_entity(row)

    async def get_entity(self, db: AsyncSession, user_id: str, name: str) -> Entity | None:
        """Most recently updated entity with exactly this name, if any."""
        row = await self._find_entity_row(db, user_id, name)
        return _to_entity(row) if row is not None else None

    async def add_observations(
        self,
        db: AsyncSession,
        user_id: str,
        name: str,
        new_observations: Sequence[str],
    ) -> Entity:
        """
        Append observations to an entity, creating a "concept" entity if absent.

        Read-then-write without a lock: two concurrent calls for the same
        entity can each write their own full list and one append is lost.
        """
        row = await self._find_entity_row(db, user_id, name)
        if row is None:
            return await self.create_entity(db, user_id, name, "concept", new_observations)

        existing = decode_json_list(row.observations, field="observations", row_id=row.id)
        row.observations = json.dumps(existing + list(new_observations))
        row.updated_at = utcnow()
        await db.commit()
        await db.refresh(row)
        return _to_entity(row)

    async def create_relation(
        self,
        db: AsyncSession,
        user_id: str,
        from_entity: str,
        to_entity: str,
        relation_type: str,
        strength: float = 0.5,
        evidence: Sequence[str] = (),
    ) -> Relation:
        """Create a relation, replacing any existing one with the same key."""
        await db.execute(
            delete(MemoryRelation).where(
                MemoryRelation.user_id == user_id,
                MemoryRelation.from_entity == from_entity,
                MemoryRelation.to_entity == to_entity,
                MemoryRelation.relation_type == relation_type,
            )
        )
        row = MemoryRelation(
            user_id=user_id,
            from_entity=from_entity,
            to_entity=to_entity,
            relation_type=relation_type,
            strength=strength,
            evidence=json.dumps(list(evidence)),
            created_at=utcnow(),
        )
        db.add(row)
        await db.commit()
        await db.refresh(row)
        return _to_relation(row)

    async def get_entities(
        self,
        db: AsyncSession,
        user_id: str,
        entity_type: str | None = None,
        name_contains: str | None = None,
    ) -> list[Entity]:
        """List entities, most recently updated first."""
        stmt = select(MemoryEntity).where(MemoryEntity.user_id == user_id)
        if entity_type:
            stmt = stmt.where(MemoryEntity.entity_type == entity_type)
        if name_contains:
            stmt = stmt.where(MemoryEntity.entity_name.contains(name_contains, autoescape=True))
        stmt = stmt.order_by(MemoryEntity.updated_at.desc())

        result = await db.execute(stmt)
        return [_to_entity(row) for row in result.scalars()]

    async def get_relations(
        self,
        db: AsyncSession,
        user_id: str,
        name: str | None = None,
    ) -> list[Relation]:
        """List relations, optionally those touching `name` at either end."""
        stmt = select(MemoryRelation).where(MemoryRelation.user_id == user_id)
        if name:
            stmt = stmt.where(
                or_(MemoryRelation.from_entity == name, MemoryRelation.to_entity == name)
            )
        stmt = stmt.order_by(MemoryRelation.created_at.desc())

        result = await db.execute(stmt)
        return [_to_relation(row) for row in result.scalars()]

    async def build_memory_context(
        self,
        db: AsyncSession,
        user_id: str,
        topic: str | None = None,
    ) -> str:
        """Prompt-ready memory summary. Never raises."""
        context = await self.assemble_memory_context(db, user_id, topic)
        return context.text

    async def assemble_memory_context(
        self,
        db: AsyncSession,
        user_id: str,
        topic: str | None = None,
    ) -> MemoryContext:
        """Like build_memory_context but keeps the degraded flag for the caller."""
        from learning_buddy.services.context_assembler import ContextAssembler

        return await ContextAssembler(self).assemble(db, user_id, topic)

    # -------------------------------------------------------------------------
    # Conversation log
    # -------------------------------------------------------------------------

    async def log_conversation(
        self,
        db: AsyncSession,
        user_id: str,
        messages: list[ChatTurn],
        module_context: str,
        content_context: dict | None = None,
    ) -> UUID:
        """Persist one chat exchange and return its id."""
        row = ConversationLog(
            user_id=user_id,
            messages=json.dumps([m.model_dump() for m in messages]),
            module_context=module_context,
            content_context=json.dumps(content_context) if content_context is not None else None,
            created_at=utcnow(),
        )
        db.add(row)
        await db.commit()
        await db.refresh(row)
        return row.id

    async def get_recent_conversations(
        self,
        db: AsyncSession,
        user_id: str,
        limit: int = 5,
    ) -> list[tuple[ConversationLog, list[ChatTurn]]]:
        """Most recent exchanges first, each with its decoded messages."""
        stmt = (
            select(ConversationLog)
            .where(ConversationLog.user_id == user_id)
            .order_by(ConversationLog.created_at.desc())
            .limit(limit)
        )
        result = await db.execute(stmt)

        conversations = []
        for row in result.scalars():
            turns = []
            for item in decode_json_list(row.messages, field="messages", row_id=row.id):
                if isinstance(item, dict) and "role" in item and "content" in item:
                    turns.append(ChatTurn(role=str(item["role"]), content=str(item["content"])))
            conversations.append((row, turns))
        return conversations

    async def _find_entity_row(self, db: AsyncSession, user_id: str, name: str) -> MemoryEntity | None:
        stmt = (
            select(MemoryEntity)
            .where(MemoryEntity.user_id == user_id, MemoryEntity.entity_name == name)
            .order_by(MemoryEntity.updated_at.desc())
            .limit(1)
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()


# Singleton instance
memory_store = MemoryStore()
