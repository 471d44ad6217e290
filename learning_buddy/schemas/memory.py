"""Pydantic schemas for semantic memory records and requests."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from learning_buddy.schemas.base import BaseSchema, CreatedAtMixin


# Records returned by the memory store
class Entity(BaseSchema, CreatedAtMixin):
    """A concept a teacher has discussed, with decoded observations."""

    id: UUID
    user_id: str
    entity_name: str
    entity_type: str
    observations: list[str] = Field(default_factory=list)
    confidence: float = 1.0
    updated_at: datetime


class Relation(BaseSchema, CreatedAtMixin):
    """A typed, weighted edge between two entity names."""

    id: UUID
    user_id: str
    from_entity: str
    to_entity: str
    relation_type: str
    strength: float = 0.5
    evidence: list[str] = Field(default_factory=list)


class MemoryContext(BaseModel):
    """
    Rendered memory context for prompt injection.

    degraded=False is the normal result; degraded=True means assembly failed
    and `text` holds the neutral fallback, with `reason` describing why.
    """

    text: str
    degraded: bool = False
    reason: str | None = None


class ExtractedConcept(BaseModel):
    """A concept found in conversation text by a concept extractor."""

    name: str
    type: str
    confidence: float
    method: str


# Request schemas
class EntityCreateRequest(BaseModel):
    """Request to create an entity (always inserts)."""

    name: str = Field(..., min_length=1, max_length=255)
    entity_type: str = Field(default="concept", min_length=1, max_length=100)
    observations: list[str] = Field(default_factory=list)


class ObservationsAddRequest(BaseModel):
    """Request to append observations to an entity, creating it if needed."""

    name: str = Field(..., min_length=1, max_length=255)
    observations: list[str] = Field(..., min_length=1)


class RelationCreateRequest(BaseModel):
    """Request to create or replace a relation."""

    from_entity: str = Field(..., min_length=1, max_length=255)
    to_entity: str = Field(..., min_length=1, max_length=255)
    relation_type: str = Field(..., min_length=1, max_length=100)
    strength: float = Field(default=0.5, ge=0.0, le=1.0)
    evidence: list[str] = Field(default_factory=list)
