"""Settings loading and management for gifclip.

Settings live in ``~/.gifclip/settings.json`` (or ``$GIFCLIP_HOME``). A
missing file means defaults; a broken one is a ConfigurationError.
"""

from __future__ import annotations

import json
import os
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from gifclip.errors import ConfigurationError

HOME_ENV_VAR = "GIFCLIP_HOME"


class ToolSource(str, Enum):
    """Where yt-dlp and ffmpeg come from."""

    SYSTEM = "system"  # Found on PATH
    MANAGED = "managed"  # Installed into ~/.gifclip/tools


class Settings(BaseModel):
    """Persistent user settings."""

    tool_source: ToolSource = ToolSource.SYSTEM
    # Defaults for the clip command; CLI options override these
    format: str = "gif"
    width: int = Field(default=480, gt=0)
    fps: int = Field(default=15, gt=0)
    quality: int = Field(default=80, ge=1, le=100)
    lang: str = "en"


def config_dir() -> Path:
    """Get the gifclip configuration directory."""
    override = os.environ.get(HOME_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".gifclip"


def settings_path() -> Path:
    """Get the path to the settings file."""
    return config_dir() / "settings.json"


def tools_dir() -> Path:
    """Get the directory holding managed tool binaries."""
    return config_dir() / "tools"


def load_settings(path: Path | None = None) -> Settings:
    """Load settings from JSON.

    Args:
        path: Settings file (defaults to ``settings_path()``)

    Returns:
        Settings object, defaults if the file does not exist

    Raises:
        ConfigurationError: If the file is unreadable, invalid JSON or invalid settings
    """
    path = path or settings_path()
    if not path.exists():
        return Settings()

    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(
            f"Failed to read settings from {path}",
            context={"error": str(e)},
        ) from e

    try:
        return Settings(**data)
    except (TypeError, ValidationError) as e:
        raise ConfigurationError(
            f"Invalid settings in {path}",
            context={"error": str(e)},
        ) from e


def save_settings(settings: Settings, path: Path | None = None) -> Path:
    """Save settings to JSON with atomic write.

    Args:
        settings: Settings to save
        path: Settings file (defaults to ``settings_path()``)

    Returns:
        Path to the saved settings file
    """
    path = path or settings_path()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = path.with_name(path.name + ".tmp")

        # Atomic write: write to temp file, then rename
        with open(temp_path, "w", encoding="utf-8") as f:
            json.dump(settings.model_dump(mode="json"), f, indent=2)

        temp_path.replace(path)
    except OSError as e:
        raise ConfigurationError(
            f"Failed to write settings to {path}",
            context={"error": str(e)},
        ) from e
    return path
