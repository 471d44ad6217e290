"""
SQLAlchemy 2.0 Models for the Learning Buddy.

Uses modern declarative syntax with Mapped[] type annotations.
List-valued fields (observations, evidence, keywords, messages) are stored as
JSON-encoded TEXT and decoded only by the service layer.
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from learning_buddy.db.base import Base


def utcnow() -> datetime:
    """Timezone-aware current time with microsecond resolution."""
    return datetime.now(timezone.utc)


# =============================================================================
# SEMANTIC MEMORY
# =============================================================================


class MemoryEntity(Base):
    """
    A named concept a teacher has discussed, with free-text observations.

    (user_id, entity_name) is NOT unique: duplicate suppression belongs to callers.
    """

    __tablename__ = "memory_entities"
    __table_args__ = (
        Index("idx_memory_entities_user_name", "user_id", "entity_name"),
        Index("idx_memory_entities_user_updated", "user_id", "updated_at"),
    )

    id: Mapped[UUID] = mapped_column(Uuid(), primary_key=True, default=uuid4)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    entity_name: Mapped[str] = mapped_column(String(255), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(100), nullable=False, default="concept")
    observations: Mapped[str] = mapped_column(Text, nullable=False, default="[]")  # JSON array
    confidence: Mapped[float] = mapped_column(Float, nullable=False, default=1.0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


class MemoryRelation(Base):
    """
    Weighted directed edge between two entity names for one user.

    No foreign keys to memory_entities: endpoints may name entities that do
    not exist yet, or the literal "user".
    """

    __tablename__ = "memory_relations"
    __table_args__ = (
        UniqueConstraint(
            "user_id", "from_entity", "to_entity", "relation_type", name="unique_user_relation"
        ),
        Index("idx_memory_relations_user_id", "user_id"),
    )

    id: Mapped[UUID] = mapped_column(Uuid(), primary_key=True, default=uuid4)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    from_entity: Mapped[str] = mapped_column(String(255), nullable=False)
    to_entity: Mapped[str] = mapped_column(String(255), nullable=False)
    relation_type: Mapped[str] = mapped_column(String(100), nullable=False)
    strength: Mapped[float] = mapped_column(Float, nullable=False, default=0.5)
    evidence: Mapped[str] = mapped_column(Text, nullable=False, default="[]")  # JSON array
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


class ConversationLog(Base):
    """One chat exchange (user message + assistant reply) with its video context."""

    __tablename__ = "conversations"
    __table_args__ = (Index("idx_conversations_user_created", "user_id", "created_at"),)

    id: Mapped[UUID] = mapped_column(Uuid(), primary_key=True, default=uuid4)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    messages: Mapped[str] = mapped_column(Text, nullable=False, default="[]")  # JSON array of {role, content}
    module_context: Mapped[str] = mapped_column(String(100), nullable=False, default="basic_ai_literacy")
    content_context: Mapped[Optional[str]] = mapped_column(Text, nullable=True)  # JSON object
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


# =============================================================================
# VIDEO CONTENT
# =============================================================================


class VideoContentChunk(Base):
    """
    A time-bounded span of a video transcript.

    Covers the half-open interval [start_time, end_time) in whole seconds.
    Chunks for one video are meant to tile the timeline; gaps are tolerated.
    """

    __tablename__ = "video_content_chunks"
    __table_args__ = (
        Index("idx_video_chunks_video_time", "video_id", "start_time", "end_time"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    video_id: Mapped[str] = mapped_column(String(64), nullable=False)
    start_time: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    end_time: Mapped[int] = mapped_column(Integer, nullable=False, default=60)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    topic: Mapped[str] = mapped_column(String(255), nullable=False, default="Video Content")
    keywords: Mapped[str] = mapped_column(Text, nullable=False, default="[]")  # JSON array
    confidence: Mapped[float] = mapped_column(Float, nullable=False, default=0.8)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


class VideoTranscript(Base):
    """Transcript load status per video."""

    __tablename__ = "youtube_videos"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    video_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    title: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    transcript_status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    chunk_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    transcript_loaded_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


class VideoProgress(Base):
    """Playback position of a user in a video."""

    __tablename__ = "user_video_progress"
    __table_args__ = (
        UniqueConstraint("user_id", "video_id", name="unique_user_video_progress"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    video_id: Mapped[str] = mapped_column(String(64), nullable=False)
    current_position: Mapped[float] = mapped_column(Float, nullable=False)
    duration: Mapped[float] = mapped_column(Float, nullable=False)
    progress_percentage: Mapped[float] = mapped_column(Float, nullable=False)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    last_updated: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
