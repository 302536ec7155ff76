"""Application settings with environment variable support."""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import SecretStr
from pathlib import Path


# Compute base_dir at module level
_BASE_DIR = Path(__file__).parent.parent.parent.resolve()


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="ARL_",  # ARL_DATABASE_URL, ARL_SESSION_SECRET, etc.
    )

    # Paths - computed from base_dir
    base_dir: Path = _BASE_DIR
    data_dir: Path = _BASE_DIR / "data"
    sources_file: Path = _BASE_DIR / "config" / "news_sources.json"

    # Database
    database_url: str = f"sqlite:///{_BASE_DIR / 'data' / 'arl_news.db'}"

    # Fetching
    fetch_timeout_seconds: int = 15
    fetch_max_retries: int = 2
    user_agent: str = "Mozilla/5.0 (compatible; ARL-Intranet-News-Aggregator/1.0)"
    fetch_interval_minutes: int = 60

    # Retention
    retention_days: int = 30

    # API paging
    default_page_size: int = 20
    max_page_size: int = 50
    page_size_html: int = 12

    # Admin session
    session_secret: SecretStr = SecretStr("change-me")
    session_max_age_seconds: int = 8 * 60 * 60
    admin_username: str = "admin"
    admin_password: SecretStr = SecretStr("admin")


settings = Settings()
