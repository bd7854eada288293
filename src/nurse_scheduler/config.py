"""Application configuration and settings management."""

from pathlib import Path
from typing import Any, Literal, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="NS_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Nurse Route Scheduler API"
    api_prefix: str = "/api"
    log_level: str = "INFO"
    data_root: Path = Field(default=Path("data"), description="Root directory for local data files.")
    workers_file: Path = Field(
        default=Path("data/nurses.csv"),
        description="Worker directory used when Supabase is not configured.",
    )
    stops_file: Path = Field(
        default=Path("data/patients.csv"),
        description="Stop directory used when Supabase is not configured.",
    )

    osrm_base_url: str = Field(
        default="http://localhost:5000",
        description="Base URL for the OSRM routing service.",
    )
    osrm_profile: Literal["driving", "cycling", "walking"] = Field(
        default="driving",
        description="OSRM profile used for trip and route requests.",
    )
    osrm_timeout_seconds: float = Field(default=30.0, gt=0.0)
    route_roundtrip: bool = Field(
        default=True,
        description="Return to the worker's start location at the end of a route.",
    )
    snap_tolerance_meters: float = Field(
        default=250.0,
        ge=0.0,
        description="Snapped waypoints farther than this from their input produce a warning.",
    )

    nominatim_base_url: str = Field(
        default="http://localhost:8080",
        description="Base URL for the Nominatim geocoding service.",
    )
    nominatim_user_agent: str = "NurseScheduling/1.0"
    geocoder_timeout_seconds: float = Field(default=10.0, gt=0.0)

    stop_listing_limit: int = Field(default=30, ge=1)
    schedule_speed_kmh: float = Field(default=50.0, gt=0.0)
    display_speed_kmh: float = Field(default=40.0, gt=0.0)
    default_origin_latitude: float = Field(default=33.9137, ge=-90.0, le=90.0)
    default_origin_longitude: float = Field(default=-98.4934, ge=-180.0, le=180.0)
    map_center_latitude: float = 33.9383
    map_center_longitude: float = -98.5329
    map_default_zoom: int = Field(default=10, ge=0, le=18)
    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    # Supabase configuration
    supabase_url: Optional[str] = Field(
        default=None,
        description="Supabase project URL (e.g., https://xxx.supabase.co).",
    )
    supabase_key: Optional[str] = Field(
        default=None,
        description="Supabase service role key for backend operations.",
    )
    workers_table: str = "nurses"
    stops_table: str = "patients"
    schedules_table: str = "nurse_schedules"

    @field_validator("data_root", "workers_file", "stops_file", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Path:
        path_value = value if isinstance(value, Path) else Path(str(value))
        return path_value.expanduser().resolve()

    @field_validator("frontend_allowed_origins", mode="before")
    @classmethod
    def _parse_str_tuple_from_env(cls, value: Any) -> tuple[str, ...]:
        """Parse string tuple from environment variable (comma-separated or JSON array)."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(str(item) for item in value)
        if isinstance(value, str):
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

    @property
    def default_origin(self) -> tuple[float, float]:
        return (self.default_origin_latitude, self.default_origin_longitude)

    @property
    def map_center(self) -> tuple[float, float]:
        return (self.map_center_latitude, self.map_center_longitude)


settings = Settings()
