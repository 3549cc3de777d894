"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Environment
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False

    # Database (Supabase PostgreSQL)
    database_url: str
    db_pool_size: int = 5
    db_max_overflow: int = 5
    # Supavisor/pgbouncer in transaction mode cannot hold prepared statements
    db_transaction_pooler: bool = False

    # Redis
    redis_url: str = "redis://localhost:6379/0"
    redis_key_prefix: str = "healthle"

    # Supabase project (auth API and public storage)
    supabase_url: str
    supabase_anon_key: str
    supabase_jwt_secret: str

    # Operations API key for the status endpoint
    healthle_ops_api_key: str

    # AI endpoints
    assistant_url: str
    suggestions_url: str = ""
    questionnaire_url: str = ""
    system_prompt_url: str = ""
    ai_request_timeout_seconds: float = 60.0
    ai_stream_timeout_seconds: float = 180.0

    # Chat suggestions are fetched at most once per window per consultation
    suggestion_debounce_ms: int = 1500

    # Dashboard example rotation
    example_rotation_seconds: int = 5

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # CORS
    cors_origins: str = "http://localhost:3000"

    # Settings page links
    site_url: str = "https://healthle.jp"
    interview_url: str = "https://timerex.net/s/wataru.sato_a334_a73a/88fdf23c"
    contact_url: str = "https://lin.ee/AlseMHV"

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def storage_public_url(self) -> str:
        """Base URL of the public image bucket."""
        return f"{self.supabase_url.rstrip('/')}/storage/v1/object/public/Healthle_image"

    @property
    def ai_endpoints_configured(self) -> dict[str, bool]:
        """Which AI endpoints have a URL; only the assistant is required."""
        return {
            "assistant": bool(self.assistant_url),
            "suggestions": bool(self.suggestions_url),
            "questionnaire": bool(self.questionnaire_url),
            "system_prompt": bool(self.system_prompt_url),
        }

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
