"""Configuration management for the Wizard-of-Oz writing assistant."""

from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file (only if accessible)
try:
    load_dotenv()
except (PermissionError, OSError):
    # In sandboxed environments, .env might not be accessible
    # Environment variables should be set directly
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
    SUPABASE_ANON_KEY: str = Field(..., description="Supabase anonymous API key")

    # LLM configuration (required)
    LLM_API_KEY: str = Field(..., description="API key for the hosted completion service")
    LLM_BASE_URL: str = Field(
        default="https://api.deepseek.com", description="OpenAI-compatible API base URL"
    )
    LLM_MODEL: str = Field(default="deepseek-v3", description="Completion model")
    LLM_TEMPERATURE: float = Field(default=0.7, description="Sampling temperature")

    # Environment
    WOZ_ENV: str = Field(default="dev", description="Environment: dev, staging, prod")

    # Writer surface
    SNAPSHOT_INTERVAL_SECONDS: float = Field(
        default=10.0, description="Interval between writing snapshots"
    )

    # Realtime bridge used by the SSE endpoint: "memory" or "supabase"
    REALTIME_BACKEND: str = Field(default="memory", description="Change feed backend")


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
