"""Persistent user configuration."""
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Awaitable, Callable, Iterable, Optional, Union

from pydantic import BaseModel, Field, ValidationError

from ..store.jsonl_store import LOG_FILENAME

logger = logging.getLogger(__name__)

APP_NAME = "nodebook"
CONFIG_FILENAME = "config.json"
CONFIG_PATH_ENV = "NODEBOOK_CONFIG_PATH"


class ConfigValidationError(Exception):
    """A configuration value is invalid."""

    def __init__(self, message: str, field: str):
        super().__init__(message)
        self.field = field


class Settings(BaseModel):
    """Application settings stored in the config file."""

    data_dir: str = Field("./data", min_length=1, description="Directory holding the node log")
    model: str = Field("phi4-mini", min_length=1, description="Ollama model used for tagging")
    auto_tag: bool = Field(True, description="Generate tags for nodes created without tags")


def get_config_dir() -> Path:
    """Platform directory for the config file."""
    if sys.platform == "win32":
        base = os.environ.get("APPDATA") or str(Path.home() / "AppData" / "Roaming")
        return Path(base) / APP_NAME
    return Path.home() / ".config" / APP_NAME


def get_config_path() -> Path:
    """Config file path, ``NODEBOOK_CONFIG_PATH`` taking precedence."""
    override = os.environ.get(CONFIG_PATH_ENV)
    if override:
        return Path(override)
    return get_config_dir() / CONFIG_FILENAME


def validate_data_dir(path: Union[str, Path]) -> Path:
    """Check that a data directory exists or can be created and is writable.

    Args:
        path: Directory path

    Returns:
        Path: The directory

    Raises:
        ConfigValidationError: If the directory is unusable
    """
    directory = Path(path)
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ConfigValidationError(f"Cannot create data directory {directory}: {e}", "data_dir") from e
    if not directory.is_dir():
        raise ConfigValidationError(f"Data path {directory} is not a directory", "data_dir")
    if not os.access(directory, os.W_OK):
        raise ConfigValidationError(f"Data directory {directory} is not writable", "data_dir")
    return directory


def validate_model(model: str, available: Optional[Iterable[str]] = None) -> str:
    """Check a model name, optionally against the models a backend serves.

    A name matches an available model exactly or by its base name before
    ``:`` (``phi4-mini`` matches ``phi4-mini:latest``).

    Raises:
        ConfigValidationError: If the name is empty or not available
    """
    if not model or not model.strip():
        raise ConfigValidationError("Model name must not be empty", "model")
    if available is not None:
        names = list(available)
        if model not in names and model not in {name.split(":")[0] for name in names}:
            raise ConfigValidationError(
                f"Model {model} is not available. Available models: {', '.join(names) or 'none'}",
                "model",
            )
    return model


class ConfigManager:
    """Loads, validates and saves the JSON config file."""

    def __init__(self, config_path: Optional[Union[str, Path]] = None):
        self.config_path = Path(config_path) if config_path else get_config_path()
        self._settings = Settings()

    def initialize(self) -> Settings:
        """Load the config file, creating it with defaults if missing.

        Stored values override the defaults. A file that cannot be parsed or
        holds invalid values is replaced by the defaults.
        """
        if not self.config_path.exists():
            logger.info(f"No config file at {self.config_path}, writing defaults")
            self.save()
            return self.get_config()

        try:
            data = json.loads(self.config_path.read_text(encoding="utf-8"))
            if not isinstance(data, dict):
                raise ValueError("config root must be an object")
            self._settings = Settings.model_validate({**Settings().model_dump(), **data})
        except (ValueError, ValidationError) as e:
            logger.warning(f"Invalid config file {self.config_path}, resetting to defaults: {e}")
            self._settings = Settings()
            self.save()
        except OSError as e:
            raise ConfigValidationError(f"Cannot read config file {self.config_path}: {e}", "config_path") from e

        return self.get_config()

    def save(self, settings: Optional[Settings] = None) -> None:
        """Write settings (the current ones by default) to the config file."""
        settings = settings or self._settings
        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            self.config_path.write_text(json.dumps(settings.model_dump(), indent=2), encoding="utf-8")
        except OSError as e:
            raise ConfigValidationError(f"Cannot write config file {self.config_path}: {e}", "config_path") from e

    def get_config(self) -> Settings:
        """Copy of the current settings."""
        return self._settings.model_copy()

    def update_config(self, **updates: Any) -> Settings:
        """Validate, save and apply changed settings.

        Raises:
            ConfigValidationError: For unknown keys or invalid values; the
                current settings are kept
        """
        for key in updates:
            if key not in Settings.model_fields:
                raise ConfigValidationError(f"Unknown configuration key: {key}", key)
        try:
            settings = Settings.model_validate({**self._settings.model_dump(), **updates})
        except ValidationError as e:
            field = str(e.errors()[0]["loc"][0]) if e.errors() else "config"
            raise ConfigValidationError(f"Invalid configuration: {e}", field) from e

        self.save(settings)
        self._settings = settings
        logger.info(f"Updated configuration: {', '.join(sorted(updates))}")
        return self.get_config()

    def get_data_dir(self) -> str:
        return self._settings.data_dir

    def get_model(self) -> str:
        return self._settings.model

    def set_model(self, model: str, available: Optional[Iterable[str]] = None) -> Settings:
        """Change the tagging model after validating the name."""
        validate_model(model, available)
        return self.update_config(model=model)

    async def set_data_dir(
        self,
        path: Union[str, Path],
        migrate: Optional[Callable[[Path], Awaitable[Any]]] = None,
    ) -> Settings:
        """Point the configuration at another data directory.

        Args:
            path: New data directory
            migrate: Coroutine function copying existing nodes into the new
                directory, usually ``NodeManager.migrate``

        Returns:
            Settings: Updated settings

        Raises:
            ConfigValidationError: If the directory is unusable or the config
                file cannot be written; nothing is migrated then
            Exception: Whatever ``migrate`` raises; the previous data
                directory is restored in the config file
        """
        directory = validate_data_dir(path)
        previous = self.get_config()
        settings = self.update_config(data_dir=str(path))
        if migrate is not None:
            try:
                await migrate(directory)
            except Exception:
                logger.error(f"Migration to {directory} failed, restoring data_dir {previous.data_dir}")
                self.save(previous)
                self._settings = previous
                raise
        return settings

    def get_data_path(self) -> Path:
        """Path of the node log in the configured data directory."""
        return Path(self._settings.data_dir) / LOG_FILENAME
