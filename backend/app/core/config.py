"""
Environment configuration — single source of truth for all settings.

Uses pydantic-settings for type-safe config with .env file support.
All values have sensible defaults for local development; the only value
that usually needs to be supplied is FIRMS_API_KEY (NASA FIRMS map key).

Usage:
    from backend.app.core.config import settings
    print(settings.TSUNAMI_FEED_URL)
"""

from __future__ import annotations

from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application-wide settings loaded from environment variables or .env file.

    Precedence: env var > .env file > default value
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ── Application ──
    APP_NAME: str = "Disaster Relief Hazard Feed"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"  # development | staging | production
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"  # DEBUG | INFO | WARNING | ERROR | CRITICAL

    # ── CORS ──
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:8000",
    ]
    CORS_ALLOW_ALL: bool = True  # False in production

    # ── Upstream feeds ──
    USGS_EARTHQUAKE_FEED_BASE: str = "https://earthquake.usgs.gov/earthquakes/feed/v1.0/summary"
    # Tried in order until one answers
    USGS_EARTHQUAKE_FEEDS: List[str] = [
        "all_hour.geojson",
        "all_day.geojson",
        "significant_week.geojson",
    ]
    TSUNAMI_FEED_URL: str = "https://www.tsunami.gov/events/xml/PAAQAtom.xml"
    FIRMS_AREA_URL: str = (
        "https://firms.modaps.eosdis.nasa.gov/api/area/csv/{api_key}/VIIRS_SNPP_NRT/world/1"
    )
    FIRMS_API_KEY: Optional[str] = None
    NWS_ALERTS_URL: str = "https://api.weather.gov/alerts/active?status=actual&message_type=alert"
    USGS_WATER_SERVICES_URL: str = (
        "https://waterservices.usgs.gov/nwis/iv/"
        "?format=json&parameterCd=00065&siteStatus=active"
        "&stateCd=CA,OR,WA,TX,FL,LA&period=P1D"
    )
    UPSTREAM_USER_AGENT: str = "DisasterTracker/1.0"
    UPSTREAM_TIMEOUT: float = 20.0  # seconds

    # ── Hazard feed ──
    # Base URL the fetchers use to reach the proxy relays.
    # None → route the relays in-process through the ASGI app.
    PROXY_BASE_URL: Optional[str] = None
    HAZARD_RESULT_LIMIT: int = 100  # per-source record cap
    HAZARD_REFRESH_ENABLED: bool = False
    HAZARD_REFRESH_INTERVAL_SECONDS: int = 900  # 15 min

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def earthquake_feed_urls(self) -> List[str]:
        base = self.USGS_EARTHQUAKE_FEED_BASE.rstrip("/")
        return [f"{base}/{name}" for name in self.USGS_EARTHQUAKE_FEEDS]


@lru_cache()
def get_settings() -> Settings:
    """Cached settings singleton."""
    return Settings()


settings = get_settings()
