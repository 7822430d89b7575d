"""Application configuration using Pydantic Settings.

Reads configuration from environment variables with sensible defaults.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # =========================================================================
    # Application
    # =========================================================================
    environment: Literal["prod", "staging", "dev"] = Field(
        default="dev",
        description="Environment name",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )

    # =========================================================================
    # Catalog backend API
    # =========================================================================
    backend_url: str = Field(
        default="http://localhost:4000",
        description="Catalog backend URL (taxonomy and tenant category endpoints)",
    )
    backend_timeout: float = Field(
        default=15.0,
        description="Backend request timeout in seconds",
    )

    # =========================================================================
    # Taxonomy search
    # =========================================================================
    search_debounce_ms: int = Field(
        default=300,
        ge=0,
        description="Delay after the last keystroke before a search is issued",
    )
    search_min_query_length: int = Field(
        default=2,
        ge=1,
        description="Minimum trimmed query length that triggers a search",
    )
    search_result_limit: int = Field(
        default=20,
        ge=1,
        le=1000,
        description="Maximum number of taxonomy matches requested per search",
    )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def search_debounce_seconds(self) -> float:
        """Debounce delay in seconds."""
        return self.search_debounce_ms / 1000

    # =========================================================================
    # Assignment sessions
    # =========================================================================
    recent_categories_limit: int = Field(
        default=8,
        ge=1,
        description="How many recently assigned categories to remember per tenant",
    )
    session_ttl_seconds: float = Field(
        default=1800,
        description="Idle time after which an assignment session is discarded",
    )
    session_sweep_interval_seconds: float = Field(
        default=60,
        description="Interval between expired-session sweeps",
    )

    # =========================================================================
    # Logging
    # =========================================================================
    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR)",
    )
    log_json: bool = Field(
        default=True,
        description="Output logs as JSON",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Singleton instance for convenience
settings = get_settings()
