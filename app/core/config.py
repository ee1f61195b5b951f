# app/core/config.py
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables (.env file).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )

    APP_NAME: str = "Trip Fare Engine API"
    APP_VERSION: str = "0.1.0"
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Primary (region-specialised) geocoder: Mappls / MapmyIndia.
    # Left unconfigured when no token is set; lookups then go straight to Nominatim.
    MAPPLS_BASE_URL: str = "https://atlas.mappls.com/api/places"
    MAPPLS_ACCESS_TOKEN: Optional[str] = None

    # Secondary geocoder: Nominatim (OSM). Usage policy needs a User-Agent and
    # at most ~1 request/second, so calls are spaced by SECONDARY_MIN_INTERVAL_MS.
    NOMINATIM_BASE_URL: str = "https://nominatim.openstreetmap.org"
    NOMINATIM_USER_AGENT: str = "UrbanCabz/1.0"
    SECONDARY_MIN_INTERVAL_MS: int = 700

    # Routing provider
    OSRM_BASE_URL: str = "https://router.project-osrm.org"

    COUNTRY_CODE: str = "in"
    COUNTRY_NAME: str = "India"

    PROVIDER_TIMEOUT_SECONDS: float = 5.0
    SUGGESTION_LIMIT: int = 10

    GEOCODE_CACHE_TTL_SECONDS: int = 60 * 60 * 24
    ROUTE_CACHE_TTL_SECONDS: int = 60 * 60 * 12
    SESSION_STORE_MAX_BYTES: int = 5 * 1024 * 1024

    # Straight-line estimate used when the routing provider is unavailable
    FALLBACK_SPEED_KMH: float = 45.0
    FALLBACK_MIN_DURATION_MIN: int = 15
    # Straight-line estimates are served from memory for this long, then the router is retried
    ESTIMATE_CACHE_TTL_SECONDS: int = 300

    # Pricing defaults, used when PRICING_SETTINGS_URL is not set
    PRICING_SETTINGS_URL: Optional[str] = None
    PRICING_SETTINGS_TTL_SECONDS: int = 300
    MIN_KM_THRESHOLD: float = 100.0
    MIN_KM_AIRPORT_APPLY: bool = False
    MIN_KM_ONEWAY_APPLY: bool = False
    MIN_KM_ROUNDTRIP_APPLY: bool = False
    DEFAULT_PRICE_PER_KM: float = 12.0


settings = Settings()
