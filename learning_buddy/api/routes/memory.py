"""Semantic memory routes: entities, relations, and the rendered context."""

from fastapi import APIRouter, status

from learning_buddy.api.deps import CurrentUserId, DbSession
from learning_buddy.schemas.memory import (
    Entity,
    EntityCreateRequest,
    MemoryContext,
    ObservationsAddRequest,
    Relation,
    RelationCreateRequest,
)
from learning_buddy.services import memory_store

router = APIRouter(prefix="/memory", tags=["memory"])


@router.get("/entities", response_model=list[Entity])
async def list_entities(
    user_id: CurrentUserId,
    db: DbSession,
    entity_type: str | None = None,
    q: str | None = None,
) -> list[Entity]:
    """
    List the current user's memory entities, most recently updated first.

    Filters:
    - entity_type: Exact entity type
    - q: Substring of the entity name
    """
    return await memory_store.get_entities(db, user_id, entity_type=entity_type, name_contains=q)


@router.post("/entities", response_model=Entity, status_code=status.HTTP_201_CREATED)
async def create_entity(
    data: EntityCreateRequest,
    user_id: CurrentUserId,
    db: DbSession,
) -> Entity:
    """Create an entity. Always inserts, even if the name already exists."""
    return await memory_store.create_entity(db, user_id, data.name, data.entity_type, data.observations)


@router.post("/entities/observations", response_model=Entity)
async def add_observations(
    data: ObservationsAddRequest,
    user_id: CurrentUserId,
    db: DbSession,
) -> Entity:
    """Append observations to an entity, creating a concept entity if absent."""
    return await memory_store.add_observations(db, user_id, data.name, data.observations)


@router.get("/relations", response_model=list[Relation])
async def list_relations(
    user_id: CurrentUserId,
    db: DbSession,
    name: str | None = None,
) -> list[Relation]:
    """List relations, optionally only those with `name` at either end."""
    return await memory_store.get_relations(db, user_id, name=name)


@router.post("/relations", response_model=Relation, status_code=status.HTTP_201_CREATED)
async def create_relation(
    data: RelationCreateRequest,
    user_id: CurrentUserId,
    db: DbSession,
) -> Relation:
    """Create a relation, replacing any existing one with the same endpoints and type."""
    return await memory_store.create_relation(
        db,
        user_id,
        data.from_entity,
        data.to_entity,
        data.relation_type,
        strength=data.strength,
        evidence=data.evidence,
    )


@router.get("/context", response_model=MemoryContext)
async def get_memory_context(
    user_id: CurrentUserId,
    db: DbSession,
    topic: str | None = None,
) -> MemoryContext:
    """The memory summary that would be injected into the next chat prompt."""
    return await memory_store.assemble_memory_context(db, user_id, topic)
