"""Bot configuration using Pydantic Settings"""

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

BOT_DIR = Path(__file__).parent
BACKEND_DIR = BOT_DIR.parent.parent

MIN_REFRESH_INTERVAL_MS = 10_000


class BotSettings(BaseSettings):
    """PlexMate settings, read from the environment and ``backend/.env``"""

    model_config = SettingsConfigDict(
        env_file=BACKEND_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Discord
    discord_token: str = Field(default="", description="Discord bot token")
    discord_guild_id: int | None = Field(
        default=None, description="Guild for fast slash-command sync (optional)"
    )
    admin_channel_id: int = Field(..., description="The only channel accepting dashboard commands")
    command_prefix: str = Field(default="!", description="Prefix for text commands")

    # Database
    database_url: str = Field(..., description="PostgreSQL database URL")

    # Dashboard
    dashboard_update_interval: int = Field(
        default=60_000, description="Dashboard refresh interval in milliseconds"
    )

    # Live sources
    tautulli_url: str = Field(default="", description="Tautulli base URL")
    tautulli_api_key: str = Field(default="", description="Tautulli API key")
    sonarr_url: str = Field(default="", description="Sonarr base URL")
    sonarr_api_key: str = Field(default="", description="Sonarr API key")
    radarr_url: str = Field(default="", description="Radarr base URL")
    radarr_api_key: str = Field(default="", description="Radarr API key")

    # Download client
    download_client: str = Field(default="", description="qbittorrent, sabnzbd or empty")
    qbittorrent_url: str = Field(default="")
    qbittorrent_username: str = Field(default="")
    qbittorrent_password: str = Field(default="")
    sabnzbd_url: str = Field(default="")
    sabnzbd_api_key: str = Field(default="")

    log_level: str = Field(default="INFO", description="Logging level")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            logger.warning(f"Invalid log level '{v}', defaulting to INFO")
            return "INFO"
        return v_upper

    @field_validator("dashboard_update_interval")
    @classmethod
    def validate_interval(cls, v: int) -> int:
        if v < MIN_REFRESH_INTERVAL_MS:
            logger.warning(
                f"DASHBOARD_UPDATE_INTERVAL {v}ms is below the Discord-friendly minimum, "
                f"using {MIN_REFRESH_INTERVAL_MS}ms"
            )
            return MIN_REFRESH_INTERVAL_MS
        return v

    @field_validator(
        "tautulli_url", "sonarr_url", "radarr_url", "qbittorrent_url", "sabnzbd_url"
    )
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.strip().rstrip("/")

    @field_validator("download_client")
    @classmethod
    def normalize_download_client(cls, v: str) -> str:
        return v.strip().lower()


@lru_cache
def get_settings() -> BotSettings:
    """Get cached settings instance"""
    return BotSettings()  # type: ignore[call-arg]
