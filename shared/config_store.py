"""Centralized configuration store for the tool suite.

Reads and writes per-tool JSON config files in data/config/.
Each tool gets a single JSON file keyed by tool name (e.g. "inspection-forms.json").
Tools always pass their hardcoded defaults, so a missing or corrupt file
never breaks them.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

CONFIG_DIR = Path(__file__).resolve().parent.parent / "data" / "config"


def load_config(tool_name: str) -> dict | None:
    """Load a tool's JSON config. None if the file is missing or unreadable."""
    path = CONFIG_DIR / f"{tool_name}.json"
    if not path.exists():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError):
        return None
    return data if isinstance(data, dict) else None


def save_config(tool_name: str, config: dict) -> None:
    """Write a tool's config to JSON. Creates dir if needed."""
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    path = CONFIG_DIR / f"{tool_name}.json"
    path.write_text(json.dumps(config, indent=2, ensure_ascii=False), encoding="utf-8")


def get_config_value(tool_name: str, key: str, default: Any) -> Any:
    """Get a single key from a tool's config, with fallback to default."""
    config = load_config(tool_name)
    if config is None:
        return default
    return config.get(key, default)


def set_config_value(tool_name: str, key: str, value: Any) -> None:
    """Set a single key in a tool's config, preserving other keys."""
    config = load_config(tool_name) or {}
    config[key] = value
    save_config(tool_name, config)


def get_settings(tool_name: str, defaults: dict) -> dict:
    """*defaults* overlaid with the stored config.

    Dict-valued settings are merged one level deep so a partial override
    (e.g. a single logo flag) keeps the other default keys.
    """
    stored = load_config(tool_name) or {}
    merged = dict(defaults)
    for key, value in stored.items():
        if isinstance(value, dict) and isinstance(defaults.get(key), dict):
            merged[key] = {**defaults[key], **value}
        else:
            merged[key] = value
    return merged
