"""Configuration management using pydantic-settings."""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_parse_none_str="null",
    )

    # Server settings
    host: str = "0.0.0.0"
    port: int = 8765  # WebSocket port
    http_port: int = 3000  # Query API port

    # WebSocket path clients must connect to
    ws_path: str = "/ws"

    # Validation limits
    max_username_length: int = Field(default=20, gt=0)
    max_message_length: int = Field(default=1000, gt=0)

    # Per-room history bound (FIFO eviction). None keeps every message;
    # set ROOM_HISTORY_LIMIT=null in the environment for that.
    room_history_limit: Optional[int] = Field(default=1000, gt=0)

    # What to do when a connection that already joined sends another join:
    # "leave" leaves the previous room first, "reject" answers with an error.
    rejoin_policy: Literal["leave", "reject"] = "leave"

    # Outbound queue size per connection; events beyond it are dropped
    outbox_size: int = Field(default=256, gt=0)

    # Idle connection checks
    recv_timeout: float = 25.0  # Seconds without a frame before pinging
    pong_timeout: float = 10.0  # Seconds to wait for the pong

    # Shutdown settings
    shutdown_timeout: float = 5.0  # Seconds to wait for connections to close gracefully

    log_level: str = "INFO"

    @property
    def history_is_bounded(self) -> bool:
        """Check if room logs evict old messages."""
        return self.room_history_limit is not None


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
