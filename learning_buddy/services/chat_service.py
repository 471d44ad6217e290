"""Chat service: prompt assembly, LLM calls, and content-aware reply handling."""

import logging
import re
from pathlib import Path

from anthropic import APIError, AsyncAnthropic

from learning_buddy.config import get_settings
from learning_buddy.schemas.chat import ChatTurn, ContentReference, TimestampSuggestion
from learning_buddy.schemas.video import VideoContext
from learning_buddy.services.errors import LLMUnavailableError

logger = logging.getLogger(__name__)
settings = get_settings()

_JUMP_PATTERN = re.compile(r"\{\s*action:\s*['\"]jump_to_timestamp['\"],\s*timestamp:\s*(\d+)\s*\}")


def _load_persona() -> str:
    """Load the PERSONA.md file for the system prompt."""
    persona_path = Path(__file__).parent.parent.parent / "PERSONA.md"
    try:
        return persona_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        logger.warning("PERSONA.md not found at %s, using fallback persona", persona_path)
        return "You are an AI Learning Buddy helping K-12 teachers learn about AI in education."


# Load once at module import
_PERSONA_PROMPT = _load_persona()


def build_video_section(video_context: VideoContext | None) -> str:
    """Prompt text describing what the teacher is watching, or '' when nothing is known."""
    if video_context is None or video_context.chunk is None:
        return ""

    chunk = video_context.chunk
    timestamp = int(video_context.timestamp)
    section = f"""## Current Content Context

The teacher is watching a video about "{chunk.topic}" at timestamp {timestamp} seconds.

Current video content: "{chunk.content}"

You can reference this content directly and suggest timestamps to review, for example
"Would you like to jump back to {max(0, timestamp - 30)} where they first introduced this concept?"
When suggesting a timestamp jump, format it exactly as: {{action: 'jump_to_timestamp', timestamp: 123}}"""

    if video_context.suggestions:
        lines = "\n".join(f"- {s.message}" for s in video_context.suggestions)
        section += f"\n\nSuggestions based on their learning history:\n{lines}"
    return section


def build_system_prompt(memory_context: str, video_context: VideoContext | None = None) -> str:
    """Persona + memory + optional on-screen content."""
    parts = [_PERSONA_PROMPT.strip(), f"## Memory & Relationship Context\n\n{memory_context}"]
    video_section = build_video_section(video_context)
    if video_section:
        parts.append(video_section)
    return "\n\n---\n\n".join(parts)


def process_response(
    text: str,
    video_context: VideoContext | None = None,
) -> tuple[str, TimestampSuggestion | None, ContentReference | None]:
    """Strip a jump suggestion out of the reply and note which on-screen topic it referenced."""
    suggestion = None
    match = _JUMP_PATTERN.search(text)
    if match:
        suggestion = TimestampSuggestion(timestamp=int(match.group(1)))
        text = (text[: match.start()] + text[match.end():]).strip()

    reference = None
    if video_context is not None and video_context.chunk is not None and video_context.chunk.topic in text:
        reference = ContentReference(
            referenced_content=video_context.chunk.topic,
            timestamp=video_context.timestamp,
        )
    return text, suggestion, reference


class ChatService:
    """Service for LLM chat with memory and video context."""

    def __init__(self, client: AsyncAnthropic | None = None):
        """Initialize Anthropic client."""
        self.client = client or AsyncAnthropic(api_key=settings.anthropic_api_key)

    @staticmethod
    def _messages(history: list[ChatTurn], user_message: str) -> list[dict]:
        messages = [{"role": turn.role, "content": turn.content} for turn in history]
        return messages + [{"role": "user", "content": user_message}]

    async def get_full_response(
        self,
        user_message: str,
        conversation_history: list[ChatTurn],
        system_prompt: str,
    ) -> str:
        """
        Get a single completion.

        Raises:
            LLMUnavailableError: on any API or transport failure (no retries).
        """
        try:
            message = await self.client.messages.create(
                model=settings.llm_model,
                max_tokens=settings.llm_max_tokens,
                temperature=settings.llm_temperature,
                system=system_prompt,
                messages=self._messages(conversation_history, user_message),
            )
        except APIError as e:
            logger.exception("LLM request failed")
            raise LLMUnavailableError() from e

        text = "".join(block.text for block in message.content if getattr(block, "type", "text") == "text")
        if not text:
            raise LLMUnavailableError("AI service returned an empty response")
        return text

    async def stream_response(
        self,
        user_message: str,
        conversation_history: list[ChatTurn],
        system_prompt: str,
    ):
        """
        Stream Claude response using async generator.

        Yields:
            Text chunks from the streaming response

        Raises:
            LLMUnavailableError: when the stream cannot be opened or breaks.
        """
        try:
            async with self.client.messages.stream(
                model=settings.llm_model,
                max_tokens=settings.llm_max_tokens,
                temperature=settings.llm_temperature,
                system=system_prompt,
                messages=self._messages(conversation_history, user_message),
            ) as stream:
                async for text in stream.text_stream:
                    yield text
        except APIError as e:
            logger.exception("LLM streaming failed")
            raise LLMUnavailableError() from e


# Singleton instance
chat_service = ChatService()
