"""Configuration management using pydantic-settings."""
from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # LiveTest API configuration
    api_base_url: str = "http://localhost:5000/api"
    api_timeout_seconds: float = 15.0

    # Cache settings (TTL values in milliseconds)
    cache_default_ttl_ms: int = 5 * 60 * 1000
    cache_sweep_interval_seconds: float = 5 * 60
    cache_key_prefix: str = "cache_"

    # Durable tier: "memory" keeps records for the process only,
    # "sql" persists them through SQLAlchemy
    cache_backend: Literal["memory", "sql"] = "sql"
    cache_database_url: str = "sqlite:///./livetest_cache.db"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
