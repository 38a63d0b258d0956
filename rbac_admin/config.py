"""
Configuration Management for the RBAC admin engine

Single source of truth using Pydantic BaseSettings.
All settings can be overridden via environment variables with RBAC_ prefix.

Usage:
    from rbac_admin.config import get_settings

    settings = get_settings()
    print(settings.state_path)
"""

import logging
from pathlib import Path
from typing import Literal
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RBACSettings(BaseSettings):
    """
    Unified configuration for the RBAC admin engine

    Example: RBAC_LOG_LEVEL=DEBUG
    """

    model_config = SettingsConfigDict(
        env_prefix="RBAC_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ============================================
    # SYSTEM SETTINGS
    # ============================================

    environment: Literal["development", "production", "testing"] = Field(
        default="development",
        description="Application environment"
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    structured_logging: bool = Field(
        default=False,
        description="Emit JSON log lines instead of plain text"
    )

    # ============================================
    # STATE PERSISTENCE
    # ============================================

    data_dir: Path = Field(
        default_factory=lambda: Path.cwd() / ".rbac_data",
        description="Directory holding the persisted snapshot"
    )

    state_file: str = Field(
        default="rbac_state.json",
        description="Snapshot file name inside data_dir"
    )

    seed_defaults: bool = Field(
        default=True,
        description="Start from the default dataset when no state file exists"
    )

    autosave: bool = Field(
        default=False,
        description="Persist the snapshot after every committed mutation"
    )

    # ============================================
    # AUTHORIZATION
    # ============================================

    log_denials: bool = Field(
        default=True,
        description="Log denied authorization checks at INFO with their reason"
    )

    @field_validator("log_level", mode="after")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Only standard logging level names are accepted"""
        level = v.upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"Unknown log level: {v}")
        return level

    @property
    def state_path(self) -> Path:
        return self.data_dir / self.state_file


@lru_cache()
def get_settings() -> RBACSettings:
    """
    Get cached settings instance

    Returns:
        RBACSettings: Application settings
    """
    return RBACSettings()
