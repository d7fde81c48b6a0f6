"""
Application settings loaded from environment variables.

Uses pydantic-settings for validation and type safety.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from functools import lru_cache


class Settings(BaseSettings):
    """
    Application settings.

    All values loaded from .env file or environment variables.
    Validation happens automatically on startup.
    """

    model_config = SettingsConfigDict(
        env_file=(".env", "../.env"),  # Check current dir, then parent
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"  # Ignore extra env vars
    )

    # ===================
    # SUPABASE
    # ===================
    supabase_url: str = Field(
        ...,
        description="Supabase project URL"
    )
    supabase_key: str = Field(
        ...,
        description="Supabase anon/public key"
    )

    # ===================
    # TASK LIFECYCLE
    # ===================
    cancel_reason_min_length: int = Field(
        default=5,
        ge=1,
        le=200,
        description="Minimum characters required in a cancellation reason"
    )
    default_task_priority: int = Field(
        default=3,
        ge=1,
        le=5,
        description="Priority for tasks created without order or explicit priority"
    )

    # ===================
    # PLANNING
    # ===================
    planning_warning_days: int = Field(
        default=30,
        ge=1,
        le=365,
        description="Planned windows longer than this produce a warning"
    )
    suggestion_count: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Number of alternative windows to suggest on overlap"
    )
    free_slot_search_days: int = Field(
        default=14,
        ge=1,
        le=90,
        description="How many days ahead to search for free planning slots"
    )
    optimal_plan_history_limit: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Completed tasks considered when estimating a plan"
    )

    # ===================
    # CLIENT
    # ===================
    api_base_url: str = Field(
        default="http://localhost:8000",
        description="Base URL used by the production API client"
    )
    request_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        le=120,
        description="Timeout for client HTTP requests"
    )
    poll_interval_seconds: float = Field(
        default=30.0,
        ge=1,
        le=3600,
        description="Refresh interval for queue/dashboard polling"
    )

    # ===================
    # APP SETTINGS
    # ===================
    environment: str = Field(
        default="development",
        pattern="^(development|staging|production)$",
        description="Application environment"
    )
    debug: bool = Field(
        default=True,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Logging level"
    )
    api_host: str = Field(
        default="0.0.0.0",
        description="API host"
    )
    api_port: int = Field(
        default=8000,
        ge=1000,
        le=65535,
        description="API port"
    )

    # ===================
    # COMPUTED PROPERTIES
    # ===================
    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == "production"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload.

    Returns:
        Settings: Application settings

    Raises:
        ValidationError: If required env vars are missing or invalid
    """
    return Settings()


# For convenient imports: from config.settings import settings
settings = get_settings()
