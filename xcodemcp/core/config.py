"""Configuration management for the Xcode MCP server."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

ENV_PROJECTS_BASE_DIR = "PROJECTS_BASE_DIR"
ENV_DEBUG = "DEBUG"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _default_logs_dir() -> Path:
    """Get default logs directory."""
    return Path.home() / ".xcode-mcp" / "logs"


class ServerConfig(BaseModel):
    """Main server configuration."""
    projects_base_dir: Optional[Path] = Field(
        default=None,
        description="Directory containing Xcode projects; granted read/write access",
    )
    log_level: str = Field(default="INFO", description="Level for the rotating log file")
    logs_dir: Optional[Path] = Field(
        default_factory=_default_logs_dir,
        description="Directory for log files (None disables file logging)",
    )
    command_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Seconds before an osascript/xcodebuild call is abandoned",
    )
    debug: bool = Field(default=False, description="Verbose logging")

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        level = value.upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"Unknown log level: {value}")
        return level

    @property
    def effective_log_level(self) -> str:
        return "DEBUG" if self.debug else self.log_level

    def with_env_overrides(self, environ: Optional[Mapping[str, str]] = None) -> "ServerConfig":
        """Apply PROJECTS_BASE_DIR and DEBUG from the environment."""
        env = os.environ if environ is None else environ
        updates: dict[str, Any] = {}
        base_dir = env.get(ENV_PROJECTS_BASE_DIR)
        if base_dir:
            updates["projects_base_dir"] = Path(os.path.expandvars(base_dir)).expanduser()
        if env.get(ENV_DEBUG, "").lower() == "true":
            updates["debug"] = True
        if not updates:
            return self
        return self.model_copy(update=updates)


class ConfigManager:
    """Manages the server configuration file."""

    DEFAULT_CONFIG_DIR = Path.home() / ".xcode-mcp"
    CONFIG_FILENAME = "config.yaml"

    def __init__(self, config_dir: Optional[Path] = None):
        """
        Initialize the configuration manager.

        Args:
            config_dir: Custom configuration directory. Defaults to ~/.xcode-mcp
        """
        self.config_dir = Path(config_dir) if config_dir else self.DEFAULT_CONFIG_DIR
        self.config_path = self.config_dir / self.CONFIG_FILENAME
        self._config: Optional[ServerConfig] = None

    @property
    def config(self) -> ServerConfig:
        """Get the current configuration, loading if necessary."""
        if self._config is None:
            self._config = self.load()
        return self._config

    def ensure_directories(self) -> None:
        """Create configuration directory structure if it doesn't exist."""
        self.config_dir.mkdir(parents=True, exist_ok=True)
        if self.config.logs_dir is not None:
            self.config.logs_dir.mkdir(parents=True, exist_ok=True)

    def load(self) -> ServerConfig:
        """
        Load configuration from file.

        Returns:
            ServerConfig: Loaded configuration, or defaults if the file is
            missing or broken.
        """
        if not self.config_path.exists():
            return ServerConfig()

        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
            if not isinstance(data, dict):
                raise ValueError("top level must be a mapping")
            return ServerConfig(**data)
        except (yaml.YAMLError, ValueError) as e:
            logger.warning("Failed to load config from %s: %s", self.config_path, e)
            return ServerConfig()

    def load_effective(self, environ: Optional[Mapping[str, str]] = None) -> ServerConfig:
        """File configuration with environment overrides applied."""
        self._config = self.config.with_env_overrides(environ)
        return self._config

    def save(self, config: Optional[ServerConfig] = None) -> None:
        """
        Save configuration to file.

        Args:
            config: Configuration to save. Uses current config if not provided.
        """
        if config is not None:
            self._config = config

        if self._config is None:
            self._config = ServerConfig()

        self.config_dir.mkdir(parents=True, exist_ok=True)

        data = self._config.model_dump(mode="json")
        with open(self.config_path, "w", encoding="utf-8") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)

    def set(self, key: str, value: Any) -> None:
        """
        Set a configuration value, re-validating the whole config. Call
        save() to persist it.

        Raises:
            KeyError: if *key* is not a configuration field.
        """
        if key not in ServerConfig.model_fields:
            raise KeyError(f"Configuration key not found: {key}")
        data = self.config.model_dump()
        data[key] = value
        self._config = ServerConfig(**data)

    def reset(self) -> ServerConfig:
        """Reset configuration to defaults."""
        self._config = ServerConfig()
        return self._config
