"""Application configuration and settings management."""

from typing import Any, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="FRA_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Fleet Route Risk Advisory API"
    api_prefix: str = "/api"

    # Supply depletion
    medium_risk_threshold: float = Field(default=40.0, ge=0.0, le=100.0)
    high_risk_threshold: float = Field(default=20.0, ge=0.0, le=100.0)
    electric_consumption_rate: float = Field(
        default=0.30,
        ge=0.0,
        description="Percent of battery capacity consumed per km for electric vehicles.",
    )
    combustion_consumption_rate: float = Field(
        default=0.22,
        ge=0.0,
        description="Percent of tank capacity consumed per km for combustion vehicles.",
    )
    buffer_distance_km: float = Field(default=25.0, ge=0.0)
    max_deviation_km: float = Field(
        default=100.0,
        ge=0.0,
        description="Largest detour (km) accepted for a suggested refuel/recharge stop.",
    )
    station_search_radius_km: float = Field(default=100.0, gt=0.0)

    # Weather hazards
    weather_sample_count: int = Field(default=5, ge=1)
    openweathermap_base_url: str = Field(default="https://api.openweathermap.org/data/2.5")
    openweathermap_api_key: Optional[str] = Field(
        default=None,
        description="OpenWeatherMap API key used for 3-hour forecasts.",
    )

    # Station lookups
    openchargemap_base_url: str = Field(default="https://api.openchargemap.io/v3")
    openchargemap_api_key: Optional[str] = Field(default=None)
    overpass_url: str = Field(default="https://overpass.private.coffee/api/interpreter")
    ev_max_distance_km: float = Field(default=50.0, gt=0.0)
    ev_cache_ttl_seconds: float = Field(default=300.0, ge=0.0)
    ev_cache_max_entries: int = Field(default=200, ge=1)
    gas_cache_ttl_seconds: float = Field(default=600.0, ge=0.0)
    gas_cache_max_entries: int = Field(default=100, ge=1)

    # Outbound HTTP and fan-out
    http_timeout_seconds: float = Field(default=12.0, gt=0.0)
    http_max_retries: int = Field(default=1, ge=0)
    http_backoff_seconds: float = Field(default=0.5, ge=0.0)
    max_parallel_requests: int = Field(default=8, ge=1)
    analysis_timeout_seconds: float = Field(default=30.0, gt=0.0)

    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

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
