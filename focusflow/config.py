"""Application configuration management."""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from focusflow.models import AppConfig, StrictModeSettings, TimerPreset

log = logging.getLogger(__name__)


def _is_android() -> bool:
    """Return True when running inside an Android (p4a) environment."""
    return "ANDROID_ARGUMENT" in os.environ or hasattr(sys, "getandroidapilevel")


def _android_data_dir() -> Path:
    """Return the writable app-private directory on Android."""
    # p4a sets ANDROID_PRIVATE / ANDROID_APP_PATH; fall back to cwd
    for var in ("ANDROID_PRIVATE", "ANDROID_APP_PATH"):
        val = os.environ.get(var)
        if val:
            return Path(val)
    return Path(".")  # last resort


if _is_android():
    _DATA_DIR = _android_data_dir() / "data"
    _CONFIG_DIR = _DATA_DIR / "config"
    _DB_DIR = _DATA_DIR / "db"
else:
    _CONFIG_DIR = Path.home() / ".config" / "focusflow"
    _DB_DIR = Path.home() / ".local" / "share" / "focusflow"

_CONFIG_FILE = _CONFIG_DIR / "config.json"


def load_config() -> AppConfig:
    """Load config from disk, returning defaults if none exists."""
    if _CONFIG_FILE.exists():
        try:
            data = json.loads(_CONFIG_FILE.read_text())
            return AppConfig(**data)
        except (json.JSONDecodeError, ValidationError, TypeError):
            log.warning("Ignoring unreadable config file %s", _CONFIG_FILE)
    return AppConfig()


def save_config(config: AppConfig) -> Path:
    """Write config to disk. Returns the config file path."""
    _CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    _CONFIG_FILE.write_text(config.model_dump_json(indent=2))
    return _CONFIG_FILE


def get_db_path() -> Path:
    """Resolve the database path from config (or default)."""
    config = load_config()
    if config.db_path is not None:
        p = Path(config.db_path)
        p.parent.mkdir(parents=True, exist_ok=True)
        return p
    _DB_DIR.mkdir(parents=True, exist_ok=True)
    return _DB_DIR / "focusflow.db"


def set_db_path(path: str) -> AppConfig:
    """Set a custom database path and save config."""
    resolved = Path(path).expanduser().resolve()
    # Ensure it ends with a filename
    if resolved.is_dir():
        resolved = resolved / "focusflow.db"
    resolved.parent.mkdir(parents=True, exist_ok=True)
    config = load_config()
    config.db_path = str(resolved)
    save_config(config)
    return config


def reset_db_path() -> AppConfig:
    """Reset to the default local database path."""
    config = load_config()
    config.db_path = None
    save_config(config)
    return config


def set_preset(preset: TimerPreset) -> AppConfig:
    config = load_config()
    config.preset = preset
    save_config(config)
    return config


def load_strict_settings(now: Optional[datetime] = None) -> StrictModeSettings:
    """Strict-mode settings with any due scheduled disable applied (and saved)."""
    config = load_config()
    settings = config.strict_mode
    if settings.apply_scheduled_disable(now or datetime.now()):
        log.info("Scheduled strict-mode disable took effect.")
        save_config(config)
    return settings


def save_strict_settings(settings: StrictModeSettings) -> AppConfig:
    config = load_config()
    config.strict_mode = settings
    save_config(config)
    return config
