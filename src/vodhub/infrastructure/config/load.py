from __future__ import annotations

from copy import deepcopy
from pathlib import Path
from typing import Any, Mapping

import yaml
from dotenv import load_dotenv

from .defaults import DEFAULT_CONFIG
from .schema import AppConfig, EnvOverrides

_SECTIONS: frozenset[str] = frozenset(
    {"http", "logging", "cache", "upstream", "sites", "images", "tmdb"}
)

_TOP_LEVEL_KEYS: tuple[str, ...] = (
    "app_name",
    "environment",
    "access_password",
    "enable_local_image_cache",
)

# Flat keys (env vars, CLI flags) -> (section, key)
_FLAT_KEYS: dict[str, tuple[str, str]] = {
    "http_follow_redirects": ("http", "follow_redirects"),
    "http_user_agent": ("http", "user_agent"),
    "log_level": ("logging", "level"),
    "log_format": ("logging", "format"),
    "cache_backend": ("cache", "backend"),
    "cache_dir": ("cache", "dir"),
    "cache_search_ttl_seconds": ("cache", "search_ttl_seconds"),
    "cache_detail_ttl_seconds": ("cache", "detail_ttl_seconds"),
    "search_timeout_seconds": ("upstream", "search_timeout_seconds"),
    "detail_timeout_seconds": ("upstream", "detail_timeout_seconds"),
    "image_timeout_seconds": ("upstream", "image_timeout_seconds"),
    "proxy_timeout_seconds": ("upstream", "proxy_timeout_seconds"),
    "sites_data_file": ("sites", "data_file"),
    "sites_template_file": ("sites", "template_file"),
    "remote_db_url": ("sites", "remote_url"),
    "remote_db_ttl_seconds": ("sites", "remote_ttl_seconds"),
    "image_cache_dir": ("images", "dir"),
    "image_cache_max_bytes": ("images", "max_bytes"),
    "tmdb_api_key": ("tmdb", "api_key"),
    "tmdb_proxy_url": ("tmdb", "proxy_url"),
    "tmdb_language": ("tmdb", "language"),
}


def _merge_into(target: dict[str, Any], layer: Mapping[str, Any]) -> dict[str, Any]:
    """Overlay ``layer`` onto ``target`` in place; nested mappings merge per key."""
    for key, value in layer.items():
        current = target.get(key)
        if isinstance(current, dict) and isinstance(value, Mapping):
            _merge_into(current, value)
        else:
            target[key] = value
    return target


def _sectioned(layer: Mapping[str, Any]) -> dict[str, Any]:
    """
    Bring one layer (defaults/YAML/ENV/CLI) into the sectioned shape.

    Accepts both already-sectioned blocks (``cache: {backend: ...}``) and
    flat keys (``cache_backend``); flat keys win within the same layer.
    Unknown keys are dropped.
    """
    out: dict[str, Any] = {
        key: dict(value)
        for key, value in layer.items()
        if key in _SECTIONS and isinstance(value, Mapping)
    }
    out.update({key: layer[key] for key in _TOP_LEVEL_KEYS if key in layer})

    for flat_key, (section, key) in _FLAT_KEYS.items():
        if flat_key in layer:
            out.setdefault(section, {})[key] = layer[flat_key]
    return out


def _yaml_layer(config_path: Path) -> dict[str, Any]:
    if not config_path.exists():
        raise FileNotFoundError(config_path)
    parsed = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    if parsed is None:
        return {}
    if not isinstance(parsed, dict):
        raise ValueError(f"Config YAML must be a mapping, got: {type(parsed)!r}")
    return parsed


def load_config(
    *,
    config_path: Path | None = None,
    dotenv_path: Path | None = None,
    cli_overrides: dict[str, Any] | None = None,
) -> AppConfig:
    """
    Build the validated AppConfig from four layers, later ones winning:
    defaults < YAML file < env vars (incl. .env) < cli overrides.

    Reads only; never creates files or directories.
    """
    # .env is folded into os.environ so it is part of the env layer.
    if dotenv_path is not None:
        if not dotenv_path.exists():
            raise FileNotFoundError(dotenv_path)
        load_dotenv(dotenv_path, override=False)

    layers: list[Mapping[str, Any]] = [deepcopy(DEFAULT_CONFIG)]
    if config_path is not None:
        layers.append(_yaml_layer(config_path))
    layers.append(EnvOverrides().to_update_dict())
    layers.append(cli_overrides or {})

    merged: dict[str, Any] = {}
    for layer in layers:
        _merge_into(merged, _sectioned(layer))

    return AppConfig.model_validate(merged)
