"""Domain errors raised at integration boundaries."""


class LLMUnavailableError(Exception):
    """The chat-completion API could not produce a reply."""

    def __init__(self, message: str = "AI service temporarily unavailable"):
        super().__init__(message)


class TranscriptUnavailableError(Exception):
    """The external transcript source failed or returned an unusable payload."""


class EmbeddingBackendError(Exception):
    """The embedding endpoint is unreachable or returned an unusable payload."""
