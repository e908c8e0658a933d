"""Configuration loading.

Settings live in an optional config.json at the repository root. Values
found there are merged over DEFAULT_SETTINGS; anything missing falls back
to the defaults.
"""
import copy
import json
import logging
import os
from pathlib import Path
from typing import Optional


DEFAULT_SETTINGS: dict = {
    "scheduler": {
        "default_easiness_factor": 2.5,
        "min_easiness_factor": 1.3,
        # Days to wait, indexed by correct streak. The last entry is the cap.
        "base_intervals": [1, 3, 7, 14, 30, 60, 90, 180, 270, 365, 540, 730, 1095],
        "lapse_multipliers": [[10, 0.7], [6, 0.6], [3, 0.5]],
    },
    "judge": {
        "base_url": "http://localhost:8787/grade",
        "timeout": 30,
        "api_key": "",
    },
    "logging": {
        "level": "INFO",
    },
}


def _config_dir() -> str:
    return os.path.dirname(os.path.abspath(__file__))


def _merge_dict(base: dict, override: dict) -> dict:
    merged = dict(base)
    for key, value in override.items():
        base_value = merged.get(key)
        if isinstance(base_value, dict) and isinstance(value, dict):
            merged[key] = _merge_dict(base_value, value)
        else:
            merged[key] = value
    return merged


def load_settings(path: Optional[Path] = None) -> dict:
    """Load config.json merged over the defaults."""
    config_path = Path(path) if path else Path(_config_dir()) / "config.json"
    if not config_path.exists():
        return copy.deepcopy(DEFAULT_SETTINGS)
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            user_cfg = json.load(f)
    except (OSError, json.JSONDecodeError):
        return copy.deepcopy(DEFAULT_SETTINGS)
    if not isinstance(user_cfg, dict):
        return copy.deepcopy(DEFAULT_SETTINGS)
    return _merge_dict(copy.deepcopy(DEFAULT_SETTINGS), user_cfg)


def configure_logging(settings: dict) -> None:
    """Apply the configured log level. Meant for entry points only."""
    level_name = str(settings.get("logging", {}).get("level", "INFO")).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
