"""Pydantic schemas for video content awareness."""

from datetime import datetime

from pydantic import BaseModel, Field

from learning_buddy.schemas.base import BaseSchema, CreatedAtMixin


class TranscriptSegment(BaseModel):
    """A raw speech span from a transcript source."""

    start_time: float = Field(..., ge=0)
    text: str = ""
    duration: float | None = Field(default=None, ge=0)


class ChunkDraft(BaseModel):
    """A merged transcript window ready to be persisted."""

    start_time: int
    end_time: int
    content: str
    topic: str
    keywords: list[str] = Field(default_factory=list)
    confidence: float = 0.85
    segment_count: int = 0


class ContentChunk(BaseSchema, CreatedAtMixin):
    """A stored chunk covering [start_time, end_time) of a video."""

    id: int
    video_id: str
    start_time: int
    end_time: int
    content: str
    topic: str
    keywords: list[str] = Field(default_factory=list)
    confidence: float = 0.8


class TranscriptFetchResult(BaseModel):
    """Segments from the transcript source, or the fixed fallback."""

    video_id: str
    segments: list[TranscriptSegment]
    is_fallback: bool = False


class Suggestion(BaseModel):
    """A nudge shown alongside the video context."""

    type: str
    message: str
    action: str


class SurroundingChunk(BaseModel):
    """Short form of a neighbouring chunk."""

    start_time: int
    end_time: int
    topic: str


class UserLearningContext(BaseModel):
    """What memory says about the viewer, for suggestions."""

    recent_concepts: list[str] = Field(default_factory=list)
    struggling_with: list[str] = Field(default_factory=list)
    interested_in: list[str] = Field(default_factory=list)


class VideoContext(BaseModel):
    """Everything known about what is on screen at a timestamp."""

    video_id: str
    timestamp: float
    chunk: ContentChunk | None = None
    surrounding: list[SurroundingChunk] = Field(default_factory=list)
    user_context: UserLearningContext = Field(default_factory=UserLearningContext)
    suggestions: list[Suggestion] = Field(default_factory=list)
    message: str | None = None


# Request / response schemas
class VideoContextRequest(BaseModel):
    """Request the content context for a playback position."""

    video_id: str = Field(..., min_length=1, max_length=64)
    timestamp: float = Field(..., ge=0)


class TranscriptLoadResponse(BaseModel):
    """Result of a transcript fetch-and-store."""

    video_id: str
    status: str
    chunk_count: int
    message: str


class TranscriptStatusResponse(BaseModel):
    """Transcript availability for a video."""

    video_id: str
    has_transcript: bool
    chunk_count: int
    status: str
    loaded_at: datetime | None = None


class ProgressUpdateRequest(BaseModel):
    """Report a playback position."""

    video_id: str = Field(..., min_length=1, max_length=64)
    current_position: float = Field(..., ge=0)
    duration: float = Field(..., gt=0)
    completed: bool = False


class ProgressResponse(BaseSchema):
    """Stored playback position."""

    video_id: str
    current_position: float = 0.0
    duration: float = 0.0
    progress_percentage: float = 0.0
    completed: bool = False
    last_updated: datetime | None = None
