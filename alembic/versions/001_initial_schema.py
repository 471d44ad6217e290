"""Initial schema with all tables.

Revision ID: 001_initial
Revises:
Create Date: 2026-10-18

This migration creates the complete Learning Buddy database schema:
- Memory: memory_entities, memory_relations, conversations
- Video: video_content_chunks, youtube_videos, user_video_progress
- Indexes: per-user lookups and timestamp range lookups

Portable between SQLite and PostgreSQL: list columns are JSON-encoded TEXT.
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ==========================================================================
    # MEMORY_ENTITIES TABLE
    # ==========================================================================
    op.create_table(
        "memory_entities",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("entity_name", sa.String(255), nullable=False),
        sa.Column("entity_type", sa.String(100), nullable=False, server_default="concept"),
        sa.Column("observations", sa.Text(), nullable=False, server_default="[]"),
        sa.Column("confidence", sa.Float(), nullable=False, server_default="1.0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_memory_entities_user_name", "memory_entities", ["user_id", "entity_name"])
    op.create_index("idx_memory_entities_user_updated", "memory_entities", ["user_id", "updated_at"])

    # ==========================================================================
    # MEMORY_RELATIONS TABLE
    # ==========================================================================
    op.create_table(
        "memory_relations",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("from_entity", sa.String(255), nullable=False),
        sa.Column("to_entity", sa.String(255), nullable=False),
        sa.Column("relation_type", sa.String(100), nullable=False),
        sa.Column("strength", sa.Float(), nullable=False, server_default="0.5"),
        sa.Column("evidence", sa.Text(), nullable=False, server_default="[]"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "user_id", "from_entity", "to_entity", "relation_type", name="unique_user_relation"
        ),
    )
    op.create_index("idx_memory_relations_user_id", "memory_relations", ["user_id"])

    # ==========================================================================
    # CONVERSATIONS TABLE
    # ==========================================================================
    op.create_table(
        "conversations",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("messages", sa.Text(), nullable=False, server_default="[]"),
        sa.Column("module_context", sa.String(100), nullable=False, server_default="basic_ai_literacy"),
        sa.Column("content_context", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_conversations_user_created", "conversations", ["user_id", "created_at"])

    # ==========================================================================
    # VIDEO_CONTENT_CHUNKS TABLE
    # ==========================================================================
    op.create_table(
        "video_content_chunks",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("video_id", sa.String(64), nullable=False),
        sa.Column("start_time", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("end_time", sa.Integer(), nullable=False, server_default="60"),
        sa.Column("content", sa.Text(), nullable=False, server_default=""),
        sa.Column("topic", sa.String(255), nullable=False, server_default="Video Content"),
        sa.Column("keywords", sa.Text(), nullable=False, server_default="[]"),
        sa.Column("confidence", sa.Float(), nullable=False, server_default="0.8"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "idx_video_chunks_video_time", "video_content_chunks", ["video_id", "start_time", "end_time"]
    )

    # ==========================================================================
    # YOUTUBE_VIDEOS TABLE
    # ==========================================================================
    op.create_table(
        "youtube_videos",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("video_id", sa.String(64), nullable=False),
        sa.Column("title", sa.String(255), nullable=True),
        sa.Column("transcript_status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("chunk_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("transcript_loaded_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("video_id"),
    )

    # ==========================================================================
    # USER_VIDEO_PROGRESS TABLE
    # ==========================================================================
    op.create_table(
        "user_video_progress",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("video_id", sa.String(64), nullable=False),
        sa.Column("current_position", sa.Float(), nullable=False),
        sa.Column("duration", sa.Float(), nullable=False),
        sa.Column("progress_percentage", sa.Float(), nullable=False),
        sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("last_updated", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "video_id", name="unique_user_video_progress"),
    )


def downgrade() -> None:
    op.drop_table("user_video_progress")
    op.drop_table("youtube_videos")
    op.drop_index("idx_video_chunks_video_time", table_name="video_content_chunks")
    op.drop_table("video_content_chunks")
    op.drop_index("idx_conversations_user_created", table_name="conversations")
    op.drop_table("conversations")
    op.drop_index("idx_memory_relations_user_id", table_name="memory_relations")
    op.drop_table("memory_relations")
    op.drop_index("idx_memory_entities_user_updated", table_name="memory_entities")
    op.drop_index("idx_memory_entities_user_name", table_name="memory_entities")
    op.drop_table("memory_entities")
