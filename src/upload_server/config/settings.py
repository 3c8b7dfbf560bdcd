# src/upload_server/config/settings.py
import logging
from functools import lru_cache
from typing import Tuple

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Single source of truth for all application settings.

    Configuration precedence:
    1. Explicit overrides (CLI options, keyword arguments)
    2. Environment variables
    3. .env file (if exists)
    4. Default values in this class (lowest priority)

    Usage:
        from upload_server.config.settings import get_settings
        settings = get_settings()
        storage_dir = settings.storage_dir
    """

    app_name: str = Field(
        default="upload-server",
        description="Application name"
    )

    # Server Settings
    server_address: str = Field(
        default="localhost:3000",
        description="The address where the server should bind to, as host:port"
    )

    # Storage Configuration
    storage_dir: str = Field(
        default="./uploads",
        description="Folder where uploads are stored at"
    )

    download_chunk_size: int = Field(
        default=64 * 1024,
        gt=0,
        description="Bytes read per chunk when streaming uploads and downloads"
    )

    # Logging
    verbose: bool = Field(
        default=False,
        description="Log error sources and tracebacks"
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )

    @field_validator("server_address")
    @classmethod
    def validate_server_address(cls, v: str) -> str:
        """Validate the address is host:port with a usable port."""
        host, sep, port = v.rpartition(":")
        if not sep or not host:
            raise ValueError(f"Invalid server_address: {v}. Must be of the form host:port")
        if not port.isdigit() or not 0 <= int(port) <= 65535:
            raise ValueError(f"Invalid port in server_address: {v}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Invalid log_level: {v}")
        return level

    @property
    def host(self) -> str:
        return self._split_address()[0]

    @property
    def port(self) -> int:
        return self._split_address()[1]

    def _split_address(self) -> Tuple[str, int]:
        host, _, port = self.server_address.rpartition(":")
        # allow bracketed IPv6 literals such as [::1]:3000
        return host.strip("[]"), int(port)

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    This ensures we only create one Settings instance per process.
    """
    return Settings()
