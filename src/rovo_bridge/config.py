"""Configuration management for the Rovo bridge."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
import shlex
from typing import Annotated

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class BridgeSettings(BaseSettings):
    """Runtime configuration sourced from environment variables and optional .env file."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore", populate_by_name=True
    )

    cli_command: str = Field(default="acli", validation_alias="ROVO_CLI_COMMAND")
    cli_args: Annotated[tuple[str, ...], NoDecode] = Field(
        default=("rovodev", "run"), validation_alias="ROVO_CLI_ARGS"
    )
    workspace_root: Path | None = Field(default=None, validation_alias="ROVO_WORKSPACE_ROOT")
    sessions_root: Path = Field(
        default=Path("~/.rovodev/sessions"), validation_alias="ROVO_SESSIONS_ROOT"
    )
    session_match_tolerance: float = Field(
        default=120.0, validation_alias="ROVO_SESSION_MATCH_TOLERANCE"
    )
    session_locate_timeout: float = Field(
        default=120.0, validation_alias="ROVO_SESSION_LOCATE_TIMEOUT"
    )
    session_locate_interval: float = Field(
        default=0.1, validation_alias="ROVO_SESSION_LOCATE_INTERVAL"
    )
    session_poll_interval: float = Field(
        default=1.0, validation_alias="ROVO_SESSION_POLL_INTERVAL"
    )
    terminal_cols: int = Field(default=100, validation_alias="ROVO_TERMINAL_COLS")
    terminal_rows: int = Field(default=100, validation_alias="ROVO_TERMINAL_ROWS")
    transcript_limit: int = Field(default=1000, validation_alias="ROVO_TRANSCRIPT_LIMIT")
    log_level: str = Field(default="INFO", validation_alias="ROVO_LOG_LEVEL")

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}:
            raise ValueError(
                "ROVO_LOG_LEVEL must be one of CRITICAL, ERROR, WARNING, INFO, DEBUG"
            )
        return normalized

    @field_validator("cli_args", mode="before")
    @classmethod
    def _parse_cli_args(cls, value):
        if value is None:
            return ()
        if isinstance(value, (list, tuple)):
            return tuple(str(item) for item in value)
        if isinstance(value, str):
            return tuple(shlex.split(value))
        raise TypeError("ROVO_CLI_ARGS must be a list of arguments or a space-separated string")

    @field_validator("workspace_root", mode="before")
    @classmethod
    def _blank_workspace_is_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator(
        "session_match_tolerance",
        "session_locate_timeout",
        "session_locate_interval",
        "session_poll_interval",
    )
    @classmethod
    def _validate_positive_seconds(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("Session intervals, tolerance and timeout must be > 0 seconds")
        return value

    @field_validator("terminal_cols", "terminal_rows", "transcript_limit")
    @classmethod
    def _validate_positive_count(cls, value: int) -> int:
        if value < 1:
            raise ValueError("Terminal dimensions and transcript limit must be >= 1")
        return value


@lru_cache(maxsize=1)
def get_settings() -> BridgeSettings:
    """Return cached settings instance."""

    settings = BridgeSettings()
    settings.sessions_root = settings.sessions_root.expanduser()
    if settings.workspace_root is not None:
        settings.workspace_root = settings.workspace_root.expanduser().resolve()
    return settings


__all__ = ["BridgeSettings", "get_settings"]
