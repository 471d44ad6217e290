"""API routes package."""

from learning_buddy.api.routes import chat, memory, videos

__all__ = [
    "chat",
    "memory",
    "videos",
]
