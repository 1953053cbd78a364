"""Application configuration using Pydantic Settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database (defaults to SQLite for local dev, use PostgreSQL in production)
    database_url: str = "sqlite:///./form_builder.db"

    # Logging
    log_level: str = "INFO"

    # Template lifecycle policy
    activate_templates_on_create: bool = False
    version_create_retries: int = 3

    # Registry defaults
    default_text_max_length: int = 255

    class Config:
        env_file = ".env"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
