"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

from date_planner.domain.recommendations import Location

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    admin_token: str
    recommendation_backend: str = "edge_function"
    recommendation_function_url: str | None = None
    openai_api_key: str | None = None
    openai_model: str = "gpt-5.2"
    openai_reasoning_effort: str | None = None
    session_ttl_hours: int = 24
    log_level: str = "INFO"
    default_latitude: float = 37.7749
    default_longitude: float = -122.4194
    default_address: str | None = "San Francisco, CA"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

    @property
    def resolved_recommendation_url(self) -> str:
        """Return the recommendation function URL."""
        if self.recommendation_function_url:
            return self.recommendation_function_url
        base_url = self.supabase_url.rstrip("/")
        return f"{base_url}/functions/v1/analyze-compatibility"

    @property
    def default_location(self) -> Location:
        """Return the fallback location used when callers send none."""
        return Location(
            latitude=self.default_latitude,
            longitude=self.default_longitude,
            address=self.default_address,
        )
