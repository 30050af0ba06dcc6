"""Environment configuration for the Markdown slide generator."""

from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

load_dotenv()


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API Keys
    openai_api_key: Optional[str] = Field(
        default=None, description="OpenAI API key (may also be passed per request)"
    )

    # Provider Configuration
    openai_base_url: str = Field(
        default="https://api.openai.com/v1", description="Base URL of the LLM API"
    )
    openai_model: str = Field(
        default="gpt-3.5-turbo", description="Default model for slide generation"
    )

    # HTTP / Retry Configuration
    request_timeout: float = Field(
        default=30.0, gt=0, description="Per-attempt HTTP timeout in seconds"
    )
    retry_attempts: int = Field(
        default=2, ge=0, description="Additional attempts for retryable failures"
    )
    retry_delay: float = Field(
        default=1.0, gt=0, description="Base delay in seconds for exponential backoff"
    )
    max_retry_delay: float = Field(
        default=60.0, gt=0, description="Upper bound for a single backoff delay"
    )

    # Logging
    log_level: str = Field(default="WARNING", description="Root log level for the CLI")

    class Config:
        """Pydantic configuration."""

        env_file = ".env"
        case_sensitive = False


# Global settings instance - lazy loaded
_settings = None


def get_settings() -> Settings:
    """Get or create the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next access re-reads the environment."""
    global _settings
    _settings = None

