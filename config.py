"""Configuration management via pydantic-settings."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Discord
    discord_bot_token: str | None = None
    discord_admin_id: int | None = None

    # Database
    database_path: Path = Field(default=Path("./data/saudaghar.db"))

    # Search caps
    recent_page_size: int = 12
    browse_page_size: int = 50
    search_limit: int = 50
    candidate_window: int = 200
    featured_limit: int = 6

    # Stale listing reminders
    stale_listing_days: int = 30
    stale_check_interval_hours: int = 24

    # Logging
    log_level: str = "INFO"
    log_dir: Path = Field(default=Path("./logs"))

    @property
    def log_file(self) -> Path:
        return self.log_dir / "saudaghar.log"


settings = Settings()
