"""Application configuration and settings management."""

from typing import Any, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_FUEL_RATES_PER_KM: dict[str, float] = {
    "MOTORCYCLE": 0.05,
    "CAR": 0.08,
    "VAN": 0.12,
    "TRUCK_SMALL": 0.15,
    "TRUCK_MEDIUM": 0.20,
    "TRUCK_LARGE": 0.25,
}


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="FLEETROUTE_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "FleetRoute Dispatch API"
    api_prefix: str = "/api/v1"
    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:3000",
            "http://127.0.0.1:3000",
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    # Mapping providers. Presence of a credential selects the provider.
    google_maps_api_key: Optional[str] = Field(
        default=None,
        description="Google Maps Directions API key (primary provider).",
    )
    mapbox_access_token: Optional[str] = Field(
        default=None,
        description="Mapbox access token (secondary provider).",
    )
    google_directions_url: str = "https://maps.googleapis.com/maps/api/directions/json"
    mapbox_directions_url: str = "https://api.mapbox.com/directions/v5/mapbox/driving"
    provider_timeout_seconds: float = Field(default=10.0, gt=0.0)
    fallback_speed_kmh: float = Field(
        default=50.0,
        gt=0.0,
        description="Average speed used by the straight-line fallback provider.",
    )

    # Cost model
    fuel_rates_per_km: dict[str, float] = Field(default_factory=lambda: dict(DEFAULT_FUEL_RATES_PER_KM))
    default_fuel_rate: float = Field(default=0.10, ge=0.0)
    toll_threshold_km: float = Field(default=50.0, ge=0.0)
    toll_rate_per_km: float = Field(default=0.02, ge=0.0)

    # Order price quotes
    order_rate_per_km: float = Field(default=5.0, ge=0.0)
    order_rate_per_kg: float = Field(default=0.5, ge=0.0)
    peak_multiplier: float = Field(default=1.2, ge=1.0)
    peak_hour_windows: tuple[tuple[int, int], ...] = Field(
        default=((7, 9), (17, 19)),
        description="Inclusive (first_hour, last_hour) windows where the peak multiplier applies.",
    )

    # Transporter search
    nearby_radius_km: float = Field(default=10.0, gt=0.0)

    # Synthetic traffic signal
    traffic_heavy_probability: float = Field(default=0.3, ge=0.0, le=1.0)
    traffic_max_delay_min: int = Field(default=15, ge=1)

    # Supabase configuration
    supabase_url: Optional[str] = Field(
        default=None,
        description="Supabase project URL (e.g., https://xxx.supabase.co).",
    )
    supabase_key: Optional[str] = Field(
        default=None,
        description="Supabase service role key for backend operations.",
    )

    @field_validator("google_maps_api_key", "mapbox_access_token", mode="before")
    @classmethod
    def _blank_credential_is_none(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        value = str(value).strip()
        return value or None

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
            # Try comma-separated
            if "," in value:
                return tuple(item.strip() for item in value.split(",") if item.strip())
            # Single value
            if value.strip():
                return (value.strip(),)
        # Return empty tuple if value is None or empty
        return tuple()

    @field_validator("fuel_rates_per_km", mode="before")
    @classmethod
    def _normalize_rate_keys(cls, value: Any) -> dict[str, float]:
        if isinstance(value, str):
            value = json.loads(value)
        return {str(key).upper(): float(rate) for key, rate in dict(value).items()}


settings = Settings()
