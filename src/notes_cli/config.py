"""Configuration module for notes-cli."""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Literal, Optional, Union

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

from notes_cli.exceptions import ConfigurationError, ErrorCode

# Load environment variables from the project root .env file.
# Anchored to __file__ so it works regardless of the process CWD.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
load_dotenv(_PROJECT_ROOT / ".env")


def _xdg_dir(env_var: str, fallback: str) -> Path:
    value = os.getenv(env_var)
    return Path(value) if value else Path.home() / fallback


def default_config_dir() -> Path:
    """Directory holding the user's ``config.yaml`` and ``.env``."""
    return _xdg_dir("XDG_CONFIG_HOME", ".config") / "notes"


def default_data_dir() -> Path:
    """Directory holding the notes file or database."""
    return _xdg_dir("XDG_DATA_HOME", ".local/share") / "notes"


# User-level env file, lives alongside config.yaml
load_dotenv(default_config_dir() / ".env")

logger = logging.getLogger(__name__)

BackendName = Literal["file", "sqlite"]


def _default_editor() -> str:
    return (
        os.getenv("NOTES_EDITOR")
        or os.getenv("VISUAL")
        or os.getenv("EDITOR")
        or "vi"
    )


class NotesConfig(BaseModel):
    """Configuration for notes-cli."""

    # Base directory for data files; relative paths below resolve against it
    data_dir: Path = Field(
        default_factory=lambda: Path(os.getenv("NOTES_DATA_DIR") or default_data_dir())
    )
    # Flat-file storage
    notes_file: Path = Field(
        default_factory=lambda: Path(os.getenv("NOTES_FILE", "notes.json"))
    )
    # SQLite storage
    database_path: Path = Field(
        default_factory=lambda: Path(os.getenv("NOTES_DATABASE_PATH", "notes.db"))
    )
    backend: BackendName = Field(
        default_factory=lambda: os.getenv("NOTES_BACKEND", "file").lower()
    )
    # Program used by `new --editor` when no program is given
    editor: str = Field(default_factory=_default_editor)
    # Logging
    log_dir: Optional[Path] = Field(
        default_factory=lambda: (
            Path(os.getenv("NOTES_LOG_DIR")) if os.getenv("NOTES_LOG_DIR") else None
        )
    )
    log_level: str = Field(
        default_factory=lambda: os.getenv("NOTES_LOG_LEVEL", "WARNING").upper()
    )

    # validate_default so values taken from the environment are checked too
    model_config = {"validate_assignment": True, "validate_default": True, "extra": "forbid"}

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate that the level is one the logging module knows."""
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level

    @field_validator("editor")
    @classmethod
    def validate_editor(cls, v: str) -> str:
        """Validate that the editor command is not blank."""
        if not v.strip():
            raise ValueError("Editor cannot be empty")
        return v

    def get_absolute_path(self, path: Path) -> Path:
        """Convert a relative path to an absolute path based on data_dir."""
        if path.is_absolute():
            return path
        return self.data_dir / path

    def get_notes_path(self) -> Path:
        """Get the absolute path of the flat notes file."""
        return self.get_absolute_path(self.notes_file)

    def get_db_url(self) -> str:
        """Get the database URL for SQLite."""
        db_path = self.get_absolute_path(self.database_path)
        db_path.parent.mkdir(parents=True, exist_ok=True)
        return f"sqlite:///{db_path}"

    def get_log_dir(self) -> Path:
        """Get the directory for rotating log files."""
        if self.log_dir is None:
            return self.data_dir / "logs"
        return self.get_absolute_path(self.log_dir)


def _build_config(overrides: Dict[str, Any], source: str) -> NotesConfig:
    try:
        return NotesConfig(**overrides)
    except ValidationError as e:
        first = e.errors()[0]
        key = ".".join(str(loc) for loc in first.get("loc", ())) or None
        raise ConfigurationError(
            f"Invalid configuration in {source}: {first.get('msg', 'invalid value')}",
            config_key=key,
        ) from e


def load_config(path: Optional[Union[str, Path]] = None) -> NotesConfig:
    """Build a configuration, overlaying values from a YAML file.

    Environment variables provide the defaults; keys present in the YAML
    file (``~/.config/notes/config.yaml`` unless ``path`` is given) win.
    A missing default file is not an error.

    Raises:
        ConfigurationError: If an explicitly given file does not exist, if
            the file is not valid YAML or not a mapping, or if a value from
            the file or the environment is invalid.
    """
    if path is None:
        config_path = default_config_dir() / "config.yaml"
        if not config_path.exists():
            return _build_config({}, "environment")
    else:
        config_path = Path(path)
        if not config_path.exists():
            raise ConfigurationError(
                f"Config file not found: {config_path.name}",
                config_key="config",
                code=ErrorCode.CONFIG_MISSING,
            )

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(
            f"Could not read config file: {config_path.name}"
        ) from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Config file must contain a mapping: {config_path.name}"
        )

    overrides: Dict[str, Any] = dict(data)
    loaded = _build_config(overrides, config_path.name)
    logger.debug(f"Loaded configuration overrides from {config_path}: {sorted(overrides)}")
    return loaded
