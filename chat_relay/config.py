from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import DEFAULT_PORT


class Settings(BaseSettings):
    """Runtime settings loaded from the environment.

    Every field can be overridden with a ``CHAT_RELAY_`` prefixed variable or
    through a local ``.env`` file.
    """

    model_config = SettingsConfigDict(
        env_prefix="CHAT_RELAY_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT

    db_url: str = "sqlite://chat_relay.db"
    generate_schemas: bool = True

    # Upper bound for every call into the room / chat stores
    store_timeout_seconds: float = 5.0
    # Upper bound for delivering one frame to one fan-out recipient
    send_timeout_seconds: float = 5.0

    # Reply with an error to frames whose "type" is missing or unknown
    # instead of dropping them.
    reject_unknown_types: bool = False

    log_level: str = "INFO"


@lru_cache()
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()


__all__ = ["Settings", "get_settings"]
