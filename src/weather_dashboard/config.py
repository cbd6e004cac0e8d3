"""Typed settings loader for the weather dashboard."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import AnyUrl, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigError


class Settings(BaseSettings):
    """Application settings loaded from environment variables and `.env`."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_env: Literal["dev", "staging", "prod"] = Field(default="dev", alias="APP_ENV")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", alias="LOG_LEVEL"
    )

    openweather_api_key: str | None = Field(
        default=None, alias="OPENWEATHER_API_KEY", repr=False
    )
    openweather_base_url: AnyUrl = Field(
        default=AnyUrl("https://api.openweathermap.org"),
        alias="OPENWEATHER_BASE_URL",
    )
    openweather_units: Literal["metric", "imperial", "standard"] = Field(
        default="metric", alias="OPENWEATHER_UNITS"
    )
    weather_proxy_url: AnyUrl | None = Field(default=None, alias="WEATHER_PROXY_URL")
    weather_timeout_seconds: float = Field(default=10.0, alias="WEATHER_TIMEOUT_SECONDS")

    search_result_limit: int = Field(default=5, alias="SEARCH_RESULT_LIMIT")
    search_debounce_seconds: float = Field(default=0.3, alias="SEARCH_DEBOUNCE_SECONDS")
    search_min_query_length: int = Field(default=2, alias="SEARCH_MIN_QUERY_LENGTH")

    geolocation_timeout_seconds: float = Field(
        default=10.0, alias="GEOLOCATION_TIMEOUT_SECONDS"
    )
    location_lat: float | None = Field(default=None, alias="LOCATION_LAT")
    location_lon: float | None = Field(default=None, alias="LOCATION_LON")
    default_city: str = Field(default="San Francisco", alias="DEFAULT_CITY")

    rate_limit_enabled: bool = Field(default=False, alias="RATE_LIMIT_ENABLED")
    rate_limit_max_calls: int = Field(default=10, alias="RATE_LIMIT_MAX_CALLS")
    rate_limit_window_seconds: int = Field(default=3600, alias="RATE_LIMIT_WINDOW_SECONDS")

    hourly_forecast_slots: int = Field(default=8, alias="HOURLY_FORECAST_SLOTS")
    daily_forecast_days: int = Field(default=5, alias="DAILY_FORECAST_DAYS")

    state_file: Path = Field(default=Path("./data/state.json"), alias="STATE_FILE")

    @field_validator(
        "openweather_api_key",
        "weather_proxy_url",
        "location_lat",
        "location_lon",
        mode="before",
    )
    @classmethod
    def empty_string_to_none(cls, value: Any) -> Any:
        """Treat empty env-string values as unset optional fields."""
        if isinstance(value, str) and value.strip() == "":
            return None
        return value

    @model_validator(mode="after")
    def validate_limits(self) -> Settings:
        """Reject nonsensical quotas, timeouts and coordinates."""
        if self.weather_timeout_seconds <= 0:
            raise ValueError("WEATHER_TIMEOUT_SECONDS must be > 0.")
        if self.geolocation_timeout_seconds <= 0:
            raise ValueError("GEOLOCATION_TIMEOUT_SECONDS must be > 0.")
        if self.search_result_limit <= 0:
            raise ValueError("SEARCH_RESULT_LIMIT must be > 0.")
        if self.search_debounce_seconds < 0:
            raise ValueError("SEARCH_DEBOUNCE_SECONDS must be >= 0.")
        if self.search_min_query_length < 1:
            raise ValueError("SEARCH_MIN_QUERY_LENGTH must be >= 1.")
        if self.rate_limit_max_calls <= 0:
            raise ValueError("RATE_LIMIT_MAX_CALLS must be > 0.")
        if self.rate_limit_window_seconds <= 0:
            raise ValueError("RATE_LIMIT_WINDOW_SECONDS must be > 0.")
        if self.hourly_forecast_slots <= 0:
            raise ValueError("HOURLY_FORECAST_SLOTS must be > 0.")
        if self.daily_forecast_days <= 0:
            raise ValueError("DAILY_FORECAST_DAYS must be > 0.")
        if not self.default_city.strip():
            raise ValueError("DEFAULT_CITY must not be blank.")
        if (self.location_lat is None) != (self.location_lon is None):
            raise ValueError("LOCATION_LAT and LOCATION_LON must be set together.")
        if self.location_lat is not None and not (-90 <= self.location_lat <= 90):
            raise ValueError(f"Invalid LOCATION_LAT {self.location_lat}; expected -90..90.")
        if self.location_lon is not None and not (-180 <= self.location_lon <= 180):
            raise ValueError(f"Invalid LOCATION_LON {self.location_lon}; expected -180..180.")
        return self

    def safe_summary(self) -> dict[str, Any]:
        """Return config summary safe for logging (no credentials)."""
        return {
            "app_env": self.app_env,
            "provider_base_url": str(self.openweather_base_url),
            "provider_key_configured": bool(self.openweather_api_key),
            "proxy_url": str(self.weather_proxy_url) if self.weather_proxy_url else None,
            "units": self.openweather_units,
            "timeout_seconds": self.weather_timeout_seconds,
            "default_city": self.default_city,
            "location_configured": self.location_lat is not None,
            "rate_limit_enabled": self.rate_limit_enabled,
            "rate_limit_max_calls": self.rate_limit_max_calls,
            "rate_limit_window_seconds": self.rate_limit_window_seconds,
            "state_file": str(self.state_file),
        }


def load_settings() -> Settings:
    """Load and validate settings, raising ConfigError on failure."""
    try:
        settings = Settings()
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"Failed reading environment/.env: {exc}") from exc

    settings.state_file.parent.mkdir(parents=True, exist_ok=True)
    return settings
