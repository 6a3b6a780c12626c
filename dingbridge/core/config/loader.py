"""Configuration loader — YAML file + env override."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml

from dingbridge.core.config.schema import Config

# Plain env names used by earlier bridge deployments → (section, field)
LEGACY_ENV: dict[str, tuple[str, str]] = {
    "DINGTALK_SIGN_KEY": ("dingtalk", "sign_key"),
    "DINGTALK_WEBHOOK_URL": ("dingtalk", "webhook_url"),
    "DINGTALK_KEYWORD": ("dingtalk", "keyword"),
    "MOLTBOT_PATH": ("agent", "path"),
    "PORT": ("server", "port"),
}


def load_config(config_path: str | Path | None = None) -> Config:
    """
    Load configuration.

    Resolution order for config file:
        1. Explicit ``config_path`` argument
        2. ``DINGBRIDGE_CONFIG`` env variable
        3. ``./config.yaml`` in cwd

    Legacy env names (``DINGTALK_WEBHOOK_URL``, ``MOLTBOT_PATH``, ...) are
    applied on top of the YAML values; ``DINGBRIDGE_*`` vars fill the rest.
    """
    data = _load_yaml(_resolve_path(config_path))
    _apply_legacy_env(data)
    return Config(**data)


def _resolve_path(config_path: str | Path | None = None) -> Path | None:
    """Resolve config file path."""
    if config_path:
        return Path(config_path)

    env = os.environ.get("DINGBRIDGE_CONFIG")
    if env:
        return Path(env)

    default = Path("config.yaml")
    return default if default.exists() else None


def _load_yaml(path: Path | None) -> dict[str, Any]:
    """Load YAML file, return empty dict if not found."""
    if not path or not path.exists():
        return {}
    with open(path) as f:
        return yaml.safe_load(f) or {}


def _apply_legacy_env(data: dict[str, Any]) -> None:
    for env_name, (section, field) in LEGACY_ENV.items():
        value = os.environ.get(env_name)
        if not value:
            continue  # empty = unset
        data[section] = {**(data.get(section) or {}), field: value}
