"""Services for memory, video content, and LLM integrations."""

from learning_buddy.services.memory_store import memory_store
from learning_buddy.services.memory_updater import memory_updater
from learning_buddy.services.video_content import video_content_service
from learning_buddy.services.chat_service import chat_service

__all__ = ["memory_store", "memory_updater", "video_content_service", "chat_service"]
