from pathlib import Path
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # Load .env from the project root and accept env keys in any case
    _env_file = Path(__file__).resolve().parent.parent / ".env"
    model_config = SettingsConfigDict(env_file=str(_env_file), extra="ignore", case_sensitive=False)

    app_name: str = "Circuit Weather Core"
    app_version: str = "0.1.0"
    debug: bool = False
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])
    port: int = 8000

    # Forecast provider
    forecast_base_url: str = Field(
        default="https://api.open-meteo.com/v1",
        description="Base URL for the Open-Meteo forecast API.",
    )
    weather_user_agent: str = Field(
        default="CircuitWeatherCore/0.1.0 (support@example.com)",
        description="User-Agent sent to the upstream forecast provider.",
    )
    weather_request_timeout: float = Field(default=8.0, ge=1.0, description="Timeout in seconds for forecast HTTP calls")
    weather_cache_ttl: int = Field(default=600, ge=0, description="In-memory cache duration (seconds) for forecasts")
    forecast_days: int = Field(default=7, ge=1, le=16, description="Number of daily forecast entries requested")
    hourly_forecast_hours: int = Field(default=72, ge=1, description="Number of hourly points kept per forecast")

    # Offline (durable) circuit cache
    offline_cache_db: str = Field(
        default="data/offline_cache.sqlite",
        description="SQLite database path backing the offline circuit cache.",
    )
    offline_stale_after_minutes: float = Field(
        default=30.0,
        ge=0.0,
        description="Age in minutes after which offline cached data is flagged as stale.",
    )
    offline_max_circuits: int = Field(
        default=10,
        ge=1,
        description="Number of recently viewed circuits retained by the offline cache.",
    )

    # Weather alert notifications
    alerts_notifications_enabled: bool = Field(
        default=True,
        description="Forward severe and extreme weather alerts to the notification sink.",
    )
    alerts_history_limit: int = Field(
        default=200,
        ge=10,
        description="Max number of dispatched alert notifications retained in memory.",
    )
    alerts_webhook_url: str | None = Field(
        default=None,
        description="Optional webhook endpoint that receives weather alert notifications.",
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def normalize_cors(cls, v):
        if isinstance(v, str):
            s = v.strip()
            if s.startswith("["):
                import json
                return json.loads(s)
            if s in ("", "*"):
                return ["*"]
            return [p.strip() for p in s.split(",")]
        return v

settings = Settings()
