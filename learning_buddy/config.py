"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic import computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application
    app_name: str = "AI Learning Buddy"
    environment: Literal["development", "test", "staging", "production"] = "development"
    debug: bool = False
    log_level: str = "INFO"

    # Database
    # Embedded SQLite by default; set database_url_override for Postgres (e.g., Neon)
    database_url_override: str | None = None
    sqlite_path: str = "./learning_buddy.db"

    @computed_field
    @property
    def database_url(self) -> str:
        """Get async database URL. Uses override if provided, otherwise the local SQLite file."""
        if self.database_url_override:
            url = self.database_url_override
            # Replace scheme for async driver
            if url.startswith("postgresql://"):
                url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
            elif url.startswith("postgres://"):
                url = url.replace("postgres://", "postgresql+asyncpg://", 1)
            # Strip query params - asyncpg doesn't accept them via URL
            if url.startswith("postgresql+asyncpg://") and "?" in url:
                url = url.split("?")[0]
            return url
        return f"sqlite+aiosqlite:///{self.sqlite_path}"

    @computed_field
    @property
    def database_url_sync(self) -> str:
        """Get sync database URL (for Alembic)."""
        if self.database_url_override:
            url = self.database_url_override
            if url.startswith("postgres://"):
                url = url.replace("postgres://", "postgresql://", 1)
            elif url.startswith("postgresql+asyncpg://"):
                url = url.replace("postgresql+asyncpg://", "postgresql://", 1)
            elif url.startswith("sqlite+aiosqlite://"):
                url = url.replace("sqlite+aiosqlite://", "sqlite://", 1)
            return url
        return f"sqlite:///{self.sqlite_path}"

    # Auth / JWT (tokens are issued by the auth service; we only verify them)
    jwt_secret_key: str  # Required - no default, must be set in .env
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 60 * 24 * 7  # 7 days

    # CORS
    cors_origins: list[str] = ["http://localhost:3000"]

    # Anthropic API
    anthropic_api_key: str

    # LLM Configuration
    llm_model: str = "claude-sonnet-4-20250514"
    llm_max_tokens: int = 1000
    llm_temperature: float = 0.7

    # Embeddings (OpenAI-compatible /embeddings endpoint). Unset = keyword extraction only.
    embedding_api_url: str | None = None
    embedding_api_key: str | None = None
    embedding_model: str = "text-embedding-3-small"
    embedding_similarity_threshold: float = 0.75
    embedding_timeout_seconds: float = 10.0

    # Transcript source
    transcript_api_url: str = "https://youtube-transcript-api.herokuapp.com/api/transcript"
    transcript_timeout_seconds: float = 15.0

    # Memory context limits
    memory_context_max_entities: int = 10
    memory_context_max_relations: int = 5
    memory_context_observations_per_entity: int = 2

    # Chat history replay
    history_conversation_window: int = 3
    history_message_window: int = 8

    # Transcript chunking policy (seconds unless noted)
    chunk_target_seconds: float = 75
    chunk_min_seconds: float = 45
    chunk_max_seconds: float = 90
    chunk_max_segments: int = 20
    chunk_default_segment_seconds: float = 3
    chunk_max_keywords: int = 8

    # Video context window around the current chunk
    video_surrounding_seconds: int = 60
    video_surrounding_limit: int = 3


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def sanitize_error(error: Exception, *, generic_message: str = "An internal error occurred.") -> str:
    """
    Return a user-safe error message.

    In development, returns the full exception string for debugging.
    In staging/production, returns a generic message to avoid leaking internals.
    """
    settings = get_settings()
    if settings.environment == "development":
        return str(error)
    return generic_message
