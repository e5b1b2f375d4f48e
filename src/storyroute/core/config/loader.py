from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from storyroute.core.config.schema import AppConfig


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    content = yaml.safe_load(path.read_text(encoding="utf-8"))
    if content is None:
        return {}
    if not isinstance(content, dict):
        raise ValueError(f"Config file must contain a mapping: {path}")
    return content


def _set_nested(target: dict[str, Any], keys: tuple[str, ...], value: Any) -> None:
    node = target
    for key in keys[:-1]:
        child = node.get(key)
        if not isinstance(child, dict):
            child = {}
            node[key] = child
        node = child
    node[keys[-1]] = value


_ENV_OVERRIDES: dict[str, tuple[str, ...]] = {
    "STORYROUTE_ENVIRONMENT": ("environment",),
    "STORYROUTE_LOG_LEVEL": ("telemetry", "log_level"),
    "AZURE_OPENAI_ENDPOINT": ("providers", "azure_openai", "endpoint"),
    "AZURE_OPENAI_API_VERSION": ("providers", "azure_openai", "api_version"),
    "GEMINI_STABLE_MODE_MODEL": ("providers", "gemini", "default_model"),
}


def load_app_config(
    defaults_path: str | Path = "config/defaults.yaml",
    instance_path: str | Path | None = None,
) -> AppConfig:
    defaults = _load_yaml(Path(defaults_path))

    explicit_instance = instance_path or os.getenv("STORYROUTE_CONFIG_FILE")
    instance = _load_yaml(Path(explicit_instance)) if explicit_instance else {}

    merged = _deep_merge(defaults, instance)

    for env_name, keys in _ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if value:
            _set_nested(merged, keys, value)

    try:
        return AppConfig.model_validate(merged)
    except ValidationError as exc:
        raise ValueError(f"Invalid storyroute configuration: {exc}") from exc
