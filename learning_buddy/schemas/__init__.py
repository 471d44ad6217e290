"""Pydantic schemas for API request/response validation."""

from learning_buddy.schemas.chat import (
    ChatMessageRequest,
    ChatMessageResponse,
    ChatTurn,
    ContentReference,
    ConversationListResponse,
    ConversationResponse,
    TimestampSuggestion,
)
from learning_buddy.schemas.memory import (
    Entity,
    EntityCreateRequest,
    ExtractedConcept,
    MemoryContext,
    ObservationsAddRequest,
    Relation,
    RelationCreateRequest,
)
from learning_buddy.schemas.video import (
    ChunkDraft,
    ContentChunk,
    ProgressResponse,
    ProgressUpdateRequest,
    TranscriptLoadResponse,
    TranscriptSegment,
    TranscriptStatusResponse,
    VideoContext,
    VideoContextRequest,
)

__all__ = [
    # Chat
    "ChatMessageRequest",
    "ChatMessageResponse",
    "ChatTurn",
    "ContentReference",
    "ConversationListResponse",
    "ConversationResponse",
    "TimestampSuggestion",
    # Memory
    "Entity",
    "EntityCreateRequest",
    "ExtractedConcept",
    "MemoryContext",
    "ObservationsAddRequest",
    "Relation",
    "RelationCreateRequest",
    # Video
    "ChunkDraft",
    "ContentChunk",
    "ProgressResponse",
    "ProgressUpdateRequest",
    "TranscriptLoadResponse",
    "TranscriptSegment",
    "TranscriptStatusResponse",
    "VideoContext",
    "VideoContextRequest",
]
