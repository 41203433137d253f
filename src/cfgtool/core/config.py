"""Configuration management for cfgtool."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional

import platformdirs
import yaml

from .errors import ConfigError

APP_NAME = "cfgtool"

DEFAULT_CONFIG: Dict[str, Any] = {
    "home_dir": None,
    "store_dir": None,
    "remote_name": "origin",
    "branch": "main",
    "log_file": None,
    "debug": False,
}


def default_store_dir() -> Path:
    """Return ``<user data dir>/cfgtool/repo``."""
    return Path(platformdirs.user_data_dir(APP_NAME, appauthor=False)) / "repo"


def default_config_file() -> Path:
    """Return ``<user config dir>/cfgtool/config.yaml``."""
    return Path(platformdirs.user_config_dir(APP_NAME, appauthor=False)) / "config.yaml"


class Config:
    """Configuration class for cfgtool.

    Values start from ``DEFAULT_CONFIG``, then a YAML file and finally explicit
    overrides are merged on top. Home and store directories are resolved here
    once and handed to the orchestrator, never looked up by deeper code.
    """

    def __init__(self, **overrides: Any) -> None:
        """Initialize configuration."""
        self.config: Dict[str, Any] = {}
        self.home_dir: Path = Path.home()
        self.store_dir: Path = default_store_dir()
        self.remote_name: str = "origin"
        self.branch: str = "main"
        self.log_file: Optional[str] = None
        self.debug: bool = False
        self._merge_config(DEFAULT_CONFIG)
        if overrides:
            self._merge_config({k: v for k, v in overrides.items() if v is not None})

    @classmethod
    def from_file(cls, config_file: Optional[Path] = None, **overrides: Any) -> "Config":
        """Build a configuration from a YAML file plus overrides.

        When ``config_file`` is None the default location is used if it exists.
        """
        config = cls()
        if config_file is None:
            candidate = default_config_file()
            config_file = candidate if candidate.exists() else None
        if config_file is not None:
            config.load_config(config_file)
        if overrides:
            config._merge_config({k: v for k, v in overrides.items() if v is not None})
        return config

    def load_config(self, config_file: Path) -> None:
        """Load configuration from file.

        Raises:
            ConfigError: If the file cannot be read or parsed.
        """
        try:
            with open(config_file, "r") as f:
                user_config = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Error loading config file {config_file}: {e}") from e
        if user_config:
            self._merge_config(user_config)

    def _merge_config(self, config: Dict[str, Any]) -> None:
        """Merge configuration with current configuration."""
        if not isinstance(config, dict):
            raise ConfigError("Configuration must be a dictionary")

        unknown = set(config) - set(DEFAULT_CONFIG)
        if unknown:
            raise ConfigError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")

        self.config.update(config)

        if config.get("home_dir") is not None:
            if not isinstance(config["home_dir"], (str, Path)):
                raise ConfigError("home_dir must be a path")
            self.home_dir = Path(config["home_dir"]).expanduser()

        if config.get("store_dir") is not None:
            if not isinstance(config["store_dir"], (str, Path)):
                raise ConfigError("store_dir must be a path")
            self.store_dir = Path(config["store_dir"]).expanduser()

        if "remote_name" in config:
            if not isinstance(config["remote_name"], str) or not config["remote_name"]:
                raise ConfigError("remote_name must be a non-empty string")
            self.remote_name = config["remote_name"]

        if "branch" in config:
            if config["branch"] != "main":
                raise ConfigError("branch must be 'main', other branches are not supported")
            self.branch = config["branch"]

        if config.get("log_file") is not None:
            if not isinstance(config["log_file"], (str, Path)):
                raise ConfigError("log_file must be a path")
            self.log_file = str(config["log_file"])

        if "debug" in config:
            if not isinstance(config["debug"], bool):
                raise ConfigError("debug must be a boolean")
            self.debug = config["debug"]

    def validate(self) -> List[str]:
        """Validate configuration."""
        errors = []

        if not self.home_dir.is_dir():
            errors.append(f"home_dir {self.home_dir} is not a directory")

        if self.store_dir.exists() and not self.store_dir.is_dir():
            errors.append(f"store_dir {self.store_dir} exists and is not a directory")

        if self.store_dir.resolve() == self.home_dir.resolve():
            errors.append("store_dir must not be the home directory itself")

        return errors

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value.

        Args:
            key: The configuration key to get.
            default: The default value to return if the key is not found.

        Returns:
            The configuration value, or the default if not found.
        """
        value = self.config.get(key)
        return default if value is None else value
