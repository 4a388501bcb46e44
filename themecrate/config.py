"""
Configuration loading and saving for ThemeCrate.
"""
import json
import os
import stat
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from .errors import ConfigValidationError
from .models import Settings

APP_NAME = "themecrate"
CONFIG_FILE = "config.json"

def get_config_dir(home: Optional[Path] = None) -> Path:
    """Returns the XDG configuration directory, creating it if needed."""
    xdg_config = os.getenv("XDG_CONFIG_HOME")
    if xdg_config:
        base_dir = Path(xdg_config)
    else:
        base_dir = (home or Path.home()) / ".config"

    config_dir = base_dir / APP_NAME
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir

def get_config_path(home: Optional[Path] = None) -> Path:
    return get_config_dir(home) / CONFIG_FILE

def apply_secure_permissions(path: Path) -> None:
    """Owner read/write only."""
    path.chmod(stat.S_IRUSR | stat.S_IWUSR)

def load_settings(home: Optional[Path] = None) -> Settings:
    """Load settings from disk; a missing file means defaults."""
    path = get_config_path(home)
    if not path.exists():
        return Settings()

    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
        return Settings(**data)
    except (OSError, ValueError, TypeError, ValidationError) as e:
        raise ConfigValidationError(f"Failed to load settings from '{path}': {e}") from e

def save_settings(settings: Settings, home: Optional[Path] = None) -> Path:
    path = get_config_path(home)
    with path.open("w", encoding="utf-8") as f:
        f.write(settings.model_dump_json(indent=2))
    apply_secure_permissions(path)
    return path

def expand_user_path(raw: str, home: Path) -> Path:
    """Expand '~' against the invoking user's home rather than the process's."""
    if raw == "~":
        return home
    if raw.startswith("~/"):
        return home / raw[2:]
    return Path(raw).resolve()

def resolve_backup_root(settings: Settings, home: Path) -> Path:
    return expand_user_path(settings.backup_root, home)
