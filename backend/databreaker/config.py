"""Application configuration."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # App
    app_name: str = "Data Breaker"
    debug: bool = False
    api_prefix: str = "/api/v1"
    log_level: str = "INFO"

    # Database
    database_url: str = "sqlite+aiosqlite:///./data-breaker.db"

    # Broker registry feed
    registry_url: str = "https://raw.githubusercontent.com/bombfork/data-breaker-registry/main/brokers.json"

    # Connectors
    connector_timeout_seconds: float = 30.0
    scan_concurrency: int = 5  # Max concurrent connector calls per pass
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )

    # Email opt-outs (Resend)
    resend_api_key: str = ""
    from_email: str = "noreply@databreaker.local"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
