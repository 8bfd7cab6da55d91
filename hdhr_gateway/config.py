"""
Configuration management for the HDHomeRun gateway.
Uses pydantic-settings for environment variable loading.
"""
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Add-on identity
    app_name: str = "HDHomerun Live TV"
    app_version: str = "1.1.0"
    addon_id: str = "org.titleos.hdhomerun"
    verbose: bool = False

    # Server Configuration
    host: str = "0.0.0.0"
    port: int = 7000
    # Externally reachable address of this service, used to build artwork links
    public_base_url: str = "http://localhost:7000"

    # CORS Configuration
    # Stremio web clients run on their own origin
    cors_origins: list[str] = ["*"]

    # Rate Limiting
    rate_limit_per_minute: int = 120

    # Tuner device
    hdhomerun_ip: str = "192.168.1.100"
    tuner_timeout_seconds: float = 3.0
    health_timeout_seconds: float = 1.5

    # Streaming proxy (mediaflow-proxy)
    mediaflow_url: str = "http://localhost:8888"
    mediaflow_pass: str = ""

    # Cloud guide
    guide_api_base: str = "https://api.hdhomerun.com"
    guide_timeout_seconds: float = 2.0

    # Artwork sources
    logo_repo_base: str = "https://raw.githubusercontent.com/tv-logo/tv-logos/main/countries/united-states"
    avatar_service_base: str = "https://ui-avatars.com/api/"
    artwork_check_timeout_seconds: float = 1.5

    # Client protocol constants
    id_prefix: str = "hdhr_"
    item_type: str = "tv"
    type_aliases: list[str] = ["channel"]  # Deprecated, still accepted
    catalog_id: str = "hdhr_ota"

    # Pydantic V2 configuration
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
