"""
Centralized configuration for featuregen.

Uses Pydantic BaseSettings for environment variable integration
and validation.

Configuration sources (in order of precedence):
1. Explicit constructor arguments (CLI options)
2. Environment variables (FEATUREGEN_*)
3. .env file
4. Default values

Example:
    from featuregen.config import get_config

    config = get_config(install_dir="/opt/wlp")
    print(config.resolved_server_dir)  # /opt/wlp/usr/servers/defaultServer
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class FeaturegenConfig(BaseSettings):
    """
    Central configuration for featuregen.

    All settings can be overridden via environment variables
    prefixed with FEATUREGEN_.

    Example:
        export FEATUREGEN_INSTALL_DIR=/opt/wlp
        export FEATUREGEN_SCANNER=acme_scanner:scan
    """

    model_config = SettingsConfigDict(
        env_prefix="FEATUREGEN_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Project
    project_dir: str = Field(
        default=".",
        description="Project directory containing pom.xml",
    )
    config_dir: Optional[str] = Field(
        default=None,
        description="Source server configuration directory (defaults to src/main/liberty/config)",
    )

    # Liberty installation
    install_dir: Optional[str] = Field(
        default=None,
        description="Liberty installation directory (wlp)",
    )
    user_dir: Optional[str] = Field(
        default=None,
        description="Liberty user directory (defaults to <install_dir>/usr)",
    )
    server_name: str = Field(
        default="defaultServer",
        description="Name of the server to generate features for",
    )
    server_dir: Optional[str] = Field(
        default=None,
        description="Server directory (defaults to <user_dir>/servers/<server_name>)",
    )

    # Scanner
    scanner: Optional[str] = Field(
        default=None,
        description="Scanner plugin: module:callable, file.py:callable or entry point name",
    )
    locale: Optional[str] = Field(
        default=None,
        description="Locale passed to the scanner for its messages",
    )

    ignore_case: bool = Field(
        default=False,
        description="Compare dependency features with installed features case-insensitively",
    )

    # Logging
    log_level: Literal["debug", "info", "warning", "error"] = Field(
        default="info",
        description="Logging level",
    )
    log_format: Literal["json", "text"] = Field(
        default="text",
        description="Event output format",
    )

    @field_validator("project_dir", "config_dir", "install_dir", "user_dir", "server_dir")
    @classmethod
    def expand_path(cls, v: Optional[str]) -> Optional[str]:
        """Expand ~ and environment variables in paths."""
        if v is None:
            return v
        return os.path.expanduser(os.path.expandvars(v))

    @property
    def resolved_config_dir(self) -> Path:
        if self.config_dir:
            return Path(self.config_dir)
        return Path(self.project_dir) / "src" / "main" / "liberty" / "config"

    @property
    def resolved_user_dir(self) -> Optional[Path]:
        if self.user_dir:
            return Path(self.user_dir)
        if self.install_dir:
            return Path(self.install_dir) / "usr"
        return None

    @property
    def resolved_server_dir(self) -> Optional[Path]:
        if self.server_dir:
            return Path(self.server_dir)
        user_dir = self.resolved_user_dir
        if user_dir is None:
            return None
        return user_dir / "servers" / self.server_name


# Global singleton
_config: Optional[FeaturegenConfig] = None


def get_config(**overrides) -> FeaturegenConfig:
    """
    Get the global configuration instance.

    Creates a singleton on first call. Subsequent calls return
    the same instance unless overrides are provided.
    """
    global _config

    if overrides or _config is None:
        _config = FeaturegenConfig(**overrides)

    return _config


def reset_config() -> None:
    """Reset the global configuration (for testing)."""
    global _config
    _config = None
