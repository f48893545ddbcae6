"""Configuration management for the Daybook assistant."""

from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file (only if accessible)
try:
    load_dotenv()
except (PermissionError, OSError):
    # In sandboxed environments, .env might not be accessible
    pass


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # Supabase configuration (required)
    SUPABASE_URL: str = Field(..., description="Supabase project URL")
    SUPABASE_SERVICE_ROLE_KEY: str = Field(..., description="Supabase service role key")

    # Model providers (required)
    OPENAI_API_KEY: str = Field(..., description="OpenAI API key (embeddings, transcription)")
    ANTHROPIC_API_KEY: str = Field(..., description="Anthropic API key (intent inference)")

    # Environment
    ASSISTANT_ENV: str = Field(default="dev", description="Environment: dev, staging, prod")

    # Embedding configuration
    EMBEDDING_MODEL: str = Field(
        default="text-embedding-3-small", description="OpenAI embedding model"
    )
    EMBEDDING_DIM: int = Field(default=1536, description="Embedding vector dimension")

    # Transcription stage
    TRANSCRIBE_AUDIO_MODEL: str = Field(
        default="gpt-4o-audio-preview", description="Audio-capable model for voice transcripts"
    )
    TRANSCRIBE_IMAGE_MODEL: str = Field(
        default="gpt-4o-mini", description="Vision model for image OCR"
    )
    MAX_MEDIA_BYTES: int = Field(
        default=10_000_000, description="Max decoded size of an audio or image attachment"
    )

    # Retrieval stage
    MATCH_THRESHOLD: float = Field(default=0.5, description="Minimum similarity for a citation")
    MATCH_COUNT: int = Field(default=5, description="Max citations per turn")

    # Intent inference stage
    INTENT_MODEL: str = Field(
        default="claude-sonnet-4-5-20250929", description="Model for intent inference"
    )
    INTENT_TEMPERATURE: float = Field(default=0.0, description="Sampling temperature for inference")
    INTENT_MAX_TOKENS: int = Field(default=2048, description="Max output tokens for inference")
    HISTORY_TURNS: int = Field(default=3, description="Recent turns sent to the model")
    MAX_ACTIONS: int = Field(default=10, description="Max actions accepted from one turn")
    ASSISTANT_REPLY_LANGUAGE: str | None = Field(
        default=None,
        description="Force reply language (e.g. 'Persian (Farsi)'); default mirrors the user",
    )
    ASSISTANT_TIMEZONE: str = Field(
        default="UTC", description="IANA timezone used to resolve 'today'"
    )

    # Retry policy for upstream model calls
    RETRY_MAX_ATTEMPTS: int = Field(default=3, description="Attempts for overloaded upstreams")
    RETRY_INITIAL_DELAY: float = Field(default=1.0, description="First backoff delay in seconds")

    # Per-stage deadline
    STAGE_TIMEOUT_SECONDS: float = Field(default=45.0, description="Deadline for each stage")

    # Browser clients call the endpoint directly
    CORS_ALLOW_ORIGINS: list[str] = Field(
        default=["*"], description="Allowed CORS origins (JSON list in the environment)"
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings instance

    Raises:
        ValidationError: If required environment variables are missing
    """
    return Settings()
