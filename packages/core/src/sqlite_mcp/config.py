"""Configuration for sqlite-mcp."""

import os
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _get_env_files() -> list[Path]:
    """Get list of .env files to load, in priority order.

    Priority (later files override earlier):
    1. Current directory .env (if exists)
    2. File named by SQLITE_MCP_ENV_FILE (if set and exists)
    """
    env_files = []

    cwd_env = Path(".env")
    if cwd_env.exists():
        env_files.append(cwd_env)

    explicit = os.environ.get("SQLITE_MCP_ENV_FILE", "")
    if explicit and Path(explicit).exists():
        env_files.append(Path(explicit))

    return env_files


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="SQLITE_MCP_",
        env_file=_get_env_files(),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ==========================================================================
    # Connection cache
    # ==========================================================================

    max_connections: int = Field(
        default=50,
        ge=1,
        description="Maximum number of cached database connections",
    )
    idle_timeout_seconds: float = Field(
        default=30 * 60,
        gt=0,
        description="Connections idle longer than this are evicted first when the cache is full",
    )
    idle_sweep_interval_seconds: float = Field(
        default=0,
        ge=0,
        description="Period of the background idle sweep (0 disables it)",
    )
    busy_timeout_seconds: float | None = Field(
        default=None,
        description="How long a statement waits on a locked database (None: driver default)",
    )

    # ==========================================================================
    # MCP server
    # ==========================================================================

    mcp_transport: Literal["stdio", "http"] = Field(
        default="stdio",
        description="MCP transport: 'stdio' for local, 'http' for remote",
    )
    mcp_host: str = Field(
        default="0.0.0.0",
        description="Host to bind MCP HTTP server",
    )
    mcp_port: int = Field(
        default=8000,
        description="Port for MCP HTTP server",
    )
    mcp_path: str = Field(
        default="/mcp",
        description="Path for MCP HTTP endpoint",
    )

    # ==========================================================================
    # Observability
    # ==========================================================================

    log_level: str = Field(
        default_factory=lambda: os.environ.get("LOG_LEVEL", "INFO"),
        description="Root log level",
    )
    traces_dir: str = Field(
        default="",
        description="Directory for JSONL span export (empty disables it)",
    )

    @field_validator("log_level")
    @classmethod
    def _upper(cls, value: str) -> str:
        return value.upper()

    def get_traces_path(self) -> Path | None:
        """Trace directory, or None when trace export is disabled."""
        if not self.traces_dir:
            return None
        return Path(self.traces_dir).expanduser()


_settings: Settings | None = None


def get_settings() -> Settings:
    """Get cached settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Reset cached settings (useful for testing)."""
    global _settings
    _settings = None
