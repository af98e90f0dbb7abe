from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class MTAConfig(BaseSettings):
    """Configuration for the schedule database, GTFS-RT feed and caches.

    Automatically loads from environment variables and .env file.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)

    db_path: Path = Field(default=Path("data/gtfs.db"), alias="MTA_DB_PATH")
    api_key: str | None = Field(default=None, alias="MTA_API_KEY")
    trip_updates_url: str = Field(
        default="https://api-endpoint.mta.info/Dataservice/mtagtfsfeeds/nyct%2Fgtfs",
        alias="MTA_TRIP_UPDATES_URL",
    )

    # static schedule changes rarely, live feed every few seconds
    static_cache_ttl_seconds: int = Field(default=300, alias="MTA_STATIC_CACHE_TTL")
    realtime_cache_ttl_seconds: int = Field(default=30, alias="MTA_REALTIME_CACHE_TTL")
    http_timeout_seconds: float = Field(default=10.0, alias="MTA_HTTP_TIMEOUT")

    timezone: str = Field(default="America/New_York", alias="MTA_TIMEZONE")

    # route map widget
    widget_script_url: str = Field(
        default="https://mta.vanshaj.dev/map.js", alias="MTA_WIDGET_SCRIPT_URL"
    )


@lru_cache
def get_config() -> MTAConfig:
    """Get configuration (cached singleton).

    Returns:
        MTAConfig with values from .env file or environment variables.
    """
    return MTAConfig()
