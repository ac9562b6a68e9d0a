"""Typed settings configuration - single source of truth."""

from functools import lru_cache

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Backend API
    api_base_url: str = "http://localhost:5002/api"
    api_token: SecretStr | None = None

    # Timeouts (seconds)
    request_timeout_s: float = 30.0
    upload_timeout_s: float = 120.0

    # Ingestion polling
    poll_max_attempts: int = 60
    poll_interval_ms: int = 2000

    # Generic retry budget (search, health)
    retry_max_retries: int = 2
    retry_base_delay_ms: int = 1000

    # Per-operation retry budgets
    status_retry_max_retries: int = 1
    status_retry_base_delay_ms: int = 500
    upload_max_retries: int = 2
    associate_max_retries: int = 4

    # Context assembly
    rag_max_chunks: int = 10
    rag_max_context_chars: int = 24000

    # Conversations
    default_conversation_title: str = "Nova Conversa"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
