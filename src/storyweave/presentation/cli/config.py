"""CLI configuration helpers for options persistence."""
from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Dict

logger = logging.getLogger(__name__)

_DEFAULT_LOG_LEVEL = "WARNING"
_DEFAULT_LAYOUT_COLUMNS = 5
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

LOG_LEVEL_ENV = "STORYWEAVE_LOG_LEVEL"


def get_user_data_dir() -> Path:
    """Return the per-user data directory."""
    if os.name == "nt":
        base = os.environ.get("APPDATA")
        if base:
            return Path(base) / "Storyweave"
        return Path.home() / "Storyweave"
    return Path.home() / ".config" / "storyweave"


def get_default_config_path() -> Path:
    return get_user_data_dir() / "config.json"


def get_save_dir() -> Path:
    """Return the per-user save directory."""
    return get_user_data_dir() / "saves"


def default_config() -> Dict[str, object]:
    return {"log_level": _DEFAULT_LOG_LEVEL, "layout_columns": _DEFAULT_LAYOUT_COLUMNS, "seed": None}


def _normalize(raw: Dict[str, object]) -> Dict[str, object]:
    config = default_config()
    level = raw.get("log_level")
    if isinstance(level, str) and level.upper() in _LOG_LEVELS:
        config["log_level"] = level.upper()
    columns = raw.get("layout_columns")
    if isinstance(columns, int) and not isinstance(columns, bool) and columns > 0:
        config["layout_columns"] = columns
    seed = raw.get("seed")
    if isinstance(seed, int) and not isinstance(seed, bool):
        config["seed"] = seed
    return config


def load_config(path: Path | None = None) -> Dict[str, object]:
    """Load config from disk or return defaults.

    Missing or unreadable files fall back to the defaults; invalid values are
    replaced individually.
    """
    config_path = path or get_default_config_path()
    try:
        raw = json.loads(config_path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return default_config()
    except (OSError, ValueError) as exc:
        logger.warning("Ignoring unreadable config %s: %s", config_path, exc)
        return default_config()
    if not isinstance(raw, dict):
        return default_config()
    return _normalize(raw)


def save_config(config: Dict[str, object], path: Path | None = None) -> None:
    """Persist config to disk."""
    config_path = path or get_default_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(json.dumps(_normalize(config), indent=2, sort_keys=True), encoding="utf-8")


def resolve_log_level(config: Dict[str, object]) -> str:
    """Environment wins over the config file."""
    env_level = os.getenv(LOG_LEVEL_ENV)
    if env_level and env_level.upper() in _LOG_LEVELS:
        return env_level.upper()
    level = config.get("log_level")
    return level if isinstance(level, str) else _DEFAULT_LOG_LEVEL
