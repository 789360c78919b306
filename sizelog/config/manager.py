"""Configuration management."""

import os
from pathlib import Path
from typing import Any

import toml
from pydantic import ValidationError

from ..core.exceptions import ConfigError
from .models import LoggerConfig

ENV_PREFIX = "SIZELOG_"
ENV_FIELDS = (
    "directory",
    "prefix",
    "extension",
    "limit_size",
    "level",
    "header",
    "file_mode",
    "color",
)


class ConfigManager:
    """Loads and saves the logger configuration file."""

    def __init__(self, config_dir: Path | None = None):
        self.config_dir = config_dir or self._get_default_config_dir()
        self.config_file = self.config_dir / "config.toml"
        self._config: LoggerConfig | None = None

    @staticmethod
    def _get_default_config_dir() -> Path:
        """Get the default configuration directory for the current platform."""
        if os.name == "nt":  # Windows
            base = Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
        elif os.environ.get("XDG_CONFIG_HOME"):  # Linux/Unix with XDG
            base = Path(os.environ["XDG_CONFIG_HOME"])
        else:  # macOS and other Unix
            base = Path.home() / ".config"

        return base / "sizelog"

    @staticmethod
    def env_overrides(environ: dict[str, str] | None = None) -> dict[str, Any]:
        """Collect SIZELOG_* settings from the environment."""
        environ = dict(os.environ) if environ is None else environ
        overrides: dict[str, Any] = {}
        for field in ENV_FIELDS:
            value = environ.get(ENV_PREFIX + field.upper())
            if value is not None and value != "":
                overrides[field] = value
        if "color" in overrides:
            overrides["color"] = overrides["color"].lower() in ("1", "true", "yes")
        return overrides

    def load_config(self, **overrides: Any) -> LoggerConfig:
        """Load configuration from file, environment and keyword overrides."""
        data: dict[str, Any] = {}

        if self.config_file.exists():
            try:
                with open(self.config_file, encoding="utf-8") as f:
                    data = toml.load(f)
            except (OSError, toml.TomlDecodeError) as e:
                raise ConfigError(
                    f"Error loading config file: {e}",
                    details={"path": str(self.config_file)},
                ) from e

        data.update(self.env_overrides())
        data.update({k: v for k, v in overrides.items() if v is not None})

        try:
            self._config = LoggerConfig(**data)
        except ValidationError as e:
            raise ConfigError(
                f"Invalid configuration: {e}", details={"errors": e.errors()}
            ) from e

        return self._config

    def save_config(self, config: LoggerConfig | None = None) -> None:
        """Save configuration to file."""
        if config is not None:
            self._config = config
        elif self._config is None:
            raise ValueError("No config to save")

        config_dict = self._config.model_dump(exclude_none=True, mode="json")

        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
            with open(self.config_file, "w", encoding="utf-8") as f:
                toml.dump(config_dict, f)
        except OSError as e:
            raise ConfigError(f"Failed to save config: {e}") from e

    def reset_to_defaults(self) -> None:
        """Reset configuration to defaults."""
        self._config = LoggerConfig()
        self.save_config()
