"""Application configuration and settings management."""

from typing import Any, Literal

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="FLEETROUTING_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Fleet Routing API"
    api_prefix: str = "/api"
    osrm_base_url: str = Field(
        default="https://router.project-osrm.org",
        description="Base URL for the OSRM routing service (e.g., http://localhost:5000).",
    )
    osrm_profile: Literal["driving", "driving-hgv", "walking", "cycling"] = Field(
        default="driving",
        description="OSRM profile to use when computing routes and matrices.",
    )
    osrm_timeout_seconds: float = Field(default=10.0, gt=0.0)
    osrm_min_request_interval_seconds: float = Field(
        default=1.1,
        ge=0.0,
        description="Minimum spacing between outbound OSRM requests (public server allows ~1 req/s).",
    )
    osrm_max_coordinates_per_request: int = Field(default=100, ge=2)
    osrm_max_retries: int = Field(default=0, ge=0)
    osrm_backoff_seconds: float = Field(default=1.0, ge=0.0)
    route_cache_capacity: int = Field(default=100, ge=1)
    route_cache_precision: int = Field(default=5, ge=0, le=10)
    fallback_average_speed_kmh: float = Field(default=40.0, gt=0.0)
    fallback_interpolation_steps: int = Field(default=20, ge=1)
    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    @field_validator("osrm_base_url", mode="before")
    @classmethod
    def _strip_trailing_slash(cls, value: Any) -> str:
        return str(value).rstrip("/")

    @field_validator("frontend_allowed_origins", mode="before")
    @classmethod
    def _parse_str_tuple_from_env(cls, value: Any) -> tuple[str, ...]:
        """Parse string tuple from environment variable (comma-separated or JSON array)."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(str(item) for item in value)
        if isinstance(value, str):
            # Try JSON first
            try:
                parsed = json.loads(value)
                if isinstance(parsed, list):
                    return tuple(str(item) for item in parsed)
            except (json.JSONDecodeError, TypeError):
                pass
            if "," in value:
                return tuple(item.strip() for item in value.split(",") if item.strip())
            if value.strip():
                return (value.strip(),)
        return tuple()


settings = Settings()
