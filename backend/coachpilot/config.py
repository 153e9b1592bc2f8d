"""
CoachPilot AI - Configuration Management

Loads and validates environment variables for storage, engine tuning and tracing.
"""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application Settings
    environment: str = Field(
        default="development",
        alias="ENVIRONMENT"
    )
    debug: bool = Field(
        default=True,
        alias="DEBUG"
    )
    log_level: str = Field(
        default="INFO",
        alias="LOG_LEVEL"
    )

    # Opik Settings
    opik_api_key: str = Field(
        default="",
        alias="OPIK_API_KEY",
        description="Comet Opik API key for observability"
    )
    opik_project_name: str = Field(
        default="coachpilot",
        alias="OPIK_PROJECT_NAME"
    )

    # Storage Settings
    storage_path: Optional[str] = Field(
        default=None,
        alias="STORAGE_PATH",
        description="JSON file backing the key-value store; in-memory when unset"
    )
    storage_key_prefix: str = Field(
        default="coachpilot_",
        alias="STORAGE_KEY_PREFIX"
    )

    # Engine Settings
    insight_expiry_hours: float = Field(
        default=24,
        gt=0,
        alias="INSIGHT_EXPIRY_HOURS",
        description="Default lifetime of an insight without an explicit expires_at"
    )
    max_insights_returned: int = Field(
        default=10,
        ge=1,
        alias="MAX_INSIGHTS_RETURNED",
        description="How many ranked insights a generation pass hands back"
    )

    # API Settings
    api_host: str = Field(default="0.0.0.0", alias="API_HOST")
    api_port: int = Field(default=8000, alias="API_PORT")

    # CORS Settings (for frontend communication)
    cors_origins: list[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"],
        alias="CORS_ORIGINS"
    )

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"
        populate_by_name = True

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def uses_persistent_storage(self) -> bool:
        return bool(self.storage_path)

    def storage_key(self, name: str) -> str:
        """Build a namespaced storage key, e.g. 'coachpilot_ai_insights'."""
        return f"{self.storage_key_prefix}{name}"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
