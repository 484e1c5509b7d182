import os

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

load_dotenv()


class Settings(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # Campus Controller API
    campus_base_url: str = Field(
        default="https://localhost:443/management", alias="CAMPUS_BASE_URL"
    )
    campus_api_token: str = Field(default="", alias="CAMPUS_API_TOKEN")
    campus_verify_tls: bool = Field(default=True, alias="CAMPUS_VERIFY_TLS")
    request_timeout: float = Field(default=5.0, alias="REQUEST_TIMEOUT")
    sites_request_timeout: float = Field(default=10.0, alias="SITES_REQUEST_TIMEOUT")

    # Resolver caches
    cache_freshness_seconds: int = Field(default=300, alias="CACHE_FRESHNESS_SECONDS")
    cache_max_load_attempts: int = Field(default=3, alias="CACHE_MAX_LOAD_ATTEMPTS")
    cache_debug: bool = Field(default=False, alias="CACHE_DEBUG")

    # Traffic aggregation
    traffic_fallback_cap: int = Field(default=20, alias="TRAFFIC_FALLBACK_CAP")
    traffic_fallback_concurrency: int = Field(
        default=10, alias="TRAFFIC_FALLBACK_CONCURRENCY"
    )

    # Query context
    context_traffic_limit: int = Field(default=50, alias="CONTEXT_TRAFFIC_LIMIT")
    context_refresh_interval_minutes: int = Field(
        default=5, alias="CONTEXT_REFRESH_INTERVAL_MINUTES"
    )

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")


def load_settings() -> Settings:
    """Build settings from the process environment (and .env, if present)."""
    return Settings.model_validate(dict(os.environ))
