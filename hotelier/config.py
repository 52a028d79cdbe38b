"""
Configuration settings for the HOTELIER server.

Uses Pydantic Settings to load environment variables (and an optional `.env`
file) for the listening socket, cache flush cadence, multicast notifications,
record store locations, and logging.
"""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Listening socket
    host: str = Field("0.0.0.0", alias="SERVER_HOST")
    port: int = Field(9999, alias="SERVER_PORT")
    accept_backlog: int = Field(50, alias="ACCEPT_BACKLOG")
    accept_poll_interval: float = Field(0.5, alias="ACCEPT_POLL_INTERVAL")

    # Lifecycle (seconds)
    idle_timeout_seconds: float = Field(600.0, alias="SERVER_IDLE_TIMEOUT")
    watchdog_interval: float = Field(60.0, gt=0, alias="WATCHDOG_INTERVAL")
    shutdown_wait_seconds: float = Field(10.0, alias="SHUTDOWN_WAIT")
    final_flush: bool = Field(True, alias="FINAL_FLUSH")

    # Write-back caches (seconds)
    credential_flush_interval: float = Field(30.0, gt=0, alias="USER_FLUSH_INTERVAL")
    catalog_flush_interval: float = Field(60.0, gt=0, alias="HOTEL_FLUSH_INTERVAL")

    # Ranking notifications
    multicast_group: str = Field("239.255.32.32", alias="MULTICAST_ADDR")
    multicast_port: int = Field(4446, alias="MULTICAST_PORT")
    multicast_ttl: int = Field(1, alias="MULTICAST_TTL")

    # Record stores
    accounts_path: Path = Field(Path("data/accounts.json"), alias="ACCOUNTS_FILE")
    venues_path: Path = Field(Path("data/hotels.json"), alias="HOTELS_FILE")
    atomic_writes: bool = Field(True, alias="ATOMIC_WRITES")

    # Application
    app_env: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    json_logs: bool = Field(False, alias="JSON_LOGS")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


__all__ = ["Settings", "get_settings"]
