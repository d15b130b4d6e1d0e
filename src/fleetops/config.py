"""Application configuration and settings management."""

from pathlib import Path
from typing import Any, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="FLEETOPS_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Fleet Field Operations API"
    api_prefix: str = "/api"
    data_root: Path = Field(default=Path("data"), description="Root directory for local data and run outputs.")
    local_store_path: Path = Field(
        default=Path("data/fleetops.sqlite3"),
        description="SQLite database holding the telemetry queue and offline POD queue.",
    )

    # Fleet backend
    api_base_url: str = Field(
        default="https://fleet.milesxp.com",
        description="Base URL of the fleet backend receiving GPS updates.",
    )
    telemetry_path: str = "/api/gps/update"
    driver_status_path: str = "/api/gps/status"
    http_timeout_seconds: float = Field(default=15.0, gt=0.0)

    # Google providers
    google_maps_api_key: Optional[str] = Field(default=None, description="Fallback key for all Google APIs.")
    google_geocoding_api_key: Optional[str] = None
    google_routes_api_key: Optional[str] = None
    geocoding_base_url: str = "https://maps.googleapis.com/maps/api/geocode/json"
    routes_base_url: str = "https://routes.googleapis.com/directions/v2:computeRoutes"
    max_waypoints: int = Field(default=25, ge=1, description="Waypoint cap of the route optimization provider.")
    address_country_suffix: str = "Malta"
    provider_max_retries: int = Field(default=2, ge=0)
    provider_backoff_seconds: float = Field(default=0.5, ge=0.0)
    geocoding_max_workers: int = Field(default=8, ge=1)
    average_speed_kmh: float = Field(default=40.0, gt=0.0)

    # Location capture
    capture_task_name: str = "background-location-task"
    capture_throttle_seconds: float = Field(default=3.0, gt=0.0)
    supervisor_interval_seconds: float = Field(default=10.0, gt=0.0)
    restart_cooldown_seconds: float = Field(default=3.0, ge=0.0)
    foreground_service_title: str = "Fleet Service Active"
    foreground_service_body: str = "Route optimization running"

    # Telemetry upload
    uploader_interval_seconds: float = Field(default=1.0, gt=0.0)
    upload_batch_size: int = Field(default=10, ge=1)
    upload_max_retries: int = Field(default=3, ge=0)
    queue_max_size: Optional[int] = Field(
        default=None,
        ge=1,
        description="High-water mark for pending samples. Oldest samples are evicted beyond it; unbounded when unset.",
    )

    frontend_allowed_origins: tuple[str, ...] = Field(
        default=("http://localhost:8081", "http://127.0.0.1:8081"),
        description="Permitted web origins for browser clients (CORS).",
    )

    # Supabase configuration
    supabase_url: Optional[str] = Field(
        default=None,
        description="Supabase project URL (e.g., https://xxx.supabase.co).",
    )
    supabase_key: Optional[str] = Field(
        default=None,
        description="Supabase key used for POD storage uploads and inserts.",
    )
    pod_storage_bucket: str = "booking-pods"
    pod_table: str = "biz_booking_pods"
    pod_captured_by: Optional[str] = Field(
        default=None,
        description="Driver id recorded as captured_by when the API replays queued POD bundles.",
    )

    @field_validator("data_root", "local_store_path", mode="before")
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
    def geocoding_key(self) -> Optional[str]:
        return self.google_geocoding_api_key or self.google_maps_api_key

    @property
    def routes_key(self) -> Optional[str]:
        return self.google_routes_api_key or self.google_maps_api_key


settings = Settings()
