"""Pydantic schemas for chat operations."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from learning_buddy.schemas.base import BaseSchema, CreatedAtMixin


# Request schemas
class ChatMessageRequest(BaseModel):
    """Request to send a chat message, optionally while watching a video."""

    message: str = Field(..., min_length=1, max_length=10000)
    module_context: str = "basic_ai_literacy"
    grade_level: str | None = None
    video_id: str | None = Field(default=None, max_length=64)
    timestamp: float | None = Field(default=None, ge=0)

    @model_validator(mode="after")
    def _video_fields_together(self) -> "ChatMessageRequest":
        if (self.video_id is None) != (self.timestamp is None):
            raise ValueError("video_id and timestamp must be provided together")
        return self


# Response schemas
class TimestampSuggestion(BaseModel):
    """A jump the assistant proposed inside its reply."""

    action: str = "jump_to_timestamp"
    timestamp: int


class ContentReference(BaseModel):
    """The on-screen topic the reply referred to."""

    referenced_content: str
    timestamp: float


class ChatMessageResponse(BaseModel):
    """Assistant reply plus memory side effects."""

    response: str
    conversation_id: UUID
    memory_updates: list[str] = Field(default_factory=list)
    memory_degraded: bool = False
    content_reference: ContentReference | None = None
    suggestion: TimestampSuggestion | None = None


class ChatTurn(BaseModel):
    """A single role-tagged message."""

    role: str
    content: str


class ConversationResponse(BaseSchema, CreatedAtMixin):
    """A stored chat exchange."""

    id: UUID
    user_id: str
    module_context: str
    messages: list[ChatTurn]


class ConversationListResponse(BaseModel):
    """List of conversations."""

    conversations: list[ConversationResponse]
    total: int
