"""Hardcoded default configuration values."""

from __future__ import annotations

from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {
    "app_name": "vodhub",
    "environment": "dev",
    "http": {
        "follow_redirects": True,
        "user_agent": "vodhub/0.1.0",
    },
    "logging": {
        "level": "INFO",
        "format": None,  # Derived from environment in schema.py
    },
    "cache": {
        "backend": "json",
        "dir": ".",
        "search_ttl_seconds": 600,
        "detail_ttl_seconds": 3600,
    },
    "upstream": {
        "search_timeout_seconds": 8.0,
        "detail_timeout_seconds": 8.0,
        "image_timeout_seconds": 10.0,
        "proxy_timeout_seconds": 10.0,
    },
    "sites": {
        "data_file": "db.json",
        "template_file": "db.template.json",
        "remote_url": None,
        "remote_ttl_seconds": 300,
        "remote_timeout_seconds": 5.0,
    },
    "images": {
        "dir": "public/cache/images",
        "max_bytes": 1024 * 1024 * 1024,
        "trim_ratio": 0.9,
        "sweep_threshold": 50,
    },
    "tmdb": {
        "api_key": None,
        "proxy_url": None,
        "language": "zh-CN",
        "proxy_ttl_seconds": 36_000,
    },
    "access_password": None,
    "enable_local_image_cache": True,
}
