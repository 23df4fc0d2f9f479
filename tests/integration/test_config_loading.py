"""Integration tests for configuration loading with layered precedence.

Tests the real load_config() function with actual YAML files, environment
variables, and CLI overrides to verify precedence: defaults < YAML < ENV < CLI.
"""

from __future__ import annotations

import os
from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from vodhub.infrastructure.config.load import load_config

pytestmark = pytest.mark.integration

_ENV_VARS = (
    "VODHUB_LOG_LEVEL",
    "VODHUB_ENVIRONMENT",
    "VODHUB_CACHE_BACKEND",
    "VODHUB_SEARCH_TIMEOUT_SECONDS",
    "VODHUB_ENABLE_LOCAL_IMAGE_CACHE",
    "VODHUB_IMAGE_CACHE_DIR",
    "VODHUB_TMDB_API_KEY",
    "VODHUB_REMOTE_DB_URL",
    "VODHUB_ACCESS_PASSWORD",
    "CACHE_TYPE",
    "REMOTE_DB_URL",
    "TMDB_API_KEY",
    "TMDB_PROXY_URL",
    "ACCESS_PASSWORD",
    "VERCEL",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture()
def yaml_config(tmp_path: Path) -> Path:
    """Write a minimal YAML config and return its path."""
    config = {
        "app_name": "vodhub-test",
        "environment": "test",
        "http": {"user_agent": "TestAgent/1.0"},
        "logging": {"level": "DEBUG", "format": "console"},
        "cache": {"backend": "diskcache", "dir": str(tmp_path / "cache")},
        "upstream": {"search_timeout_seconds": 4.0},
        "sites": {"remote_url": "https://yaml.example.com/db.json"},
        "images": {"dir": str(tmp_path / "images"), "max_bytes": 1000},
    }
    path = tmp_path / "config.yaml"
    path.write_text(yaml.dump(config), encoding="utf-8")
    return path


class TestDefaultsOnly:
    """Load with no YAML, no ENV, no CLI."""

    def test_defaults_produce_valid_config(self) -> None:
        config = load_config()
        assert config.app_name == "vodhub"
        assert config.environment == "dev"
        assert config.log_level == "INFO"
        assert config.log_format == "console"  # dev -> console
        assert config.cache.backend == "json"
        assert config.cache.search_ttl_seconds == 600
        assert config.cache.detail_ttl_seconds == 3600
        assert config.upstream.search_timeout_seconds == 8.0
        assert config.images.directory == Path("public/cache/images")
        assert config.images.max_bytes == 1024**3
        assert config.tmdb.api_key is None
        assert config.access_password is None
        assert config.enable_local_image_cache is True

    def test_defaults_derive_log_format_from_environment(self) -> None:
        config = load_config(cli_overrides={"environment": "prod"})
        assert config.log_format == "json"

    def test_does_not_touch_filesystem(self, tmp_path: Path, monkeypatch) -> None:
        monkeypatch.chdir(tmp_path)
        load_config()
        assert list(tmp_path.iterdir()) == []


class TestYamlOverrides:
    def test_yaml_overrides_defaults(self, yaml_config: Path, tmp_path: Path) -> None:
        config = load_config(config_path=yaml_config)
        assert config.app_name == "vodhub-test"
        assert config.http_user_agent == "TestAgent/1.0"
        assert config.log_level == "DEBUG"
        assert config.cache.backend == "diskcache"
        assert config.cache.directory == tmp_path / "cache"
        assert config.upstream.search_timeout_seconds == 4.0
        assert config.sites.remote_url == "https://yaml.example.com/db.json"
        assert config.images.max_bytes == 1000

    def test_partial_section_preserves_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "partial.yaml"
        path.write_text(yaml.dump({"upstream": {"detail_timeout_seconds": 3.0}}))

        config = load_config(config_path=path)
        assert config.upstream.detail_timeout_seconds == 3.0
        assert config.upstream.search_timeout_seconds == 8.0
        assert config.http_follow_redirects is True

    def test_yaml_file_not_found_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(config_path=tmp_path / "nonexistent.yaml")

    def test_empty_yaml_is_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        assert load_config(config_path=path).app_name == "vodhub"

    def test_non_mapping_yaml_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ValueError, match="mapping"):
            load_config(config_path=path)


class TestEnvOverrides:
    def test_prefixed_env_overrides_yaml(
        self, yaml_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("VODHUB_LOG_LEVEL", "WARNING")
        monkeypatch.setenv("VODHUB_SEARCH_TIMEOUT_SECONDS", "2.5")

        config = load_config(config_path=yaml_config)
        assert config.log_level == "WARNING"
        assert config.upstream.search_timeout_seconds == 2.5
        assert config.app_name == "vodhub-test"

    @pytest.mark.parametrize(
        ("cache_type", "backend"),
        [("memory", "memory"), ("sqlite", "diskcache"), ("SQLite", "diskcache")],
    )
    def test_deployment_variables(
        self, monkeypatch: pytest.MonkeyPatch, cache_type: str, backend: str
    ) -> None:
        monkeypatch.setenv("CACHE_TYPE", cache_type)
        monkeypatch.setenv("REMOTE_DB_URL", "https://remote.example.com/db.json")
        monkeypatch.setenv("TMDB_API_KEY", "abc123")
        monkeypatch.setenv("TMDB_PROXY_URL", "https://tmdb-proxy.example.com")
        monkeypatch.setenv("ACCESS_PASSWORD", "s3cret")

        config = load_config()
        assert config.cache.backend == backend
        assert config.sites.remote_url == "https://remote.example.com/db.json"
        assert config.tmdb.api_key == "abc123"
        assert config.tmdb.proxy_url == "https://tmdb-proxy.example.com"
        assert config.access_password == "s3cret"

    def test_vercel_disables_local_image_cache(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("VERCEL", "1")
        assert load_config().enable_local_image_cache is False

    def test_explicit_flag_beats_vercel(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("VERCEL", "1")
        monkeypatch.setenv("VODHUB_ENABLE_LOCAL_IMAGE_CACHE", "true")
        assert load_config().enable_local_image_cache is True

    def test_invalid_backend_rejected(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("VODHUB_CACHE_BACKEND", "redis")
        with pytest.raises(ValidationError):
            load_config()

    def test_dotenv_file_participates_as_env(self, tmp_path: Path) -> None:
        dotenv = tmp_path / ".env"
        dotenv.write_text("VODHUB_LOG_LEVEL=ERROR\n", encoding="utf-8")
        try:
            assert load_config(dotenv_path=dotenv).log_level == "ERROR"
        finally:
            # load_dotenv writes straight into os.environ
            os.environ.pop("VODHUB_LOG_LEVEL", None)

    def test_missing_dotenv_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(dotenv_path=tmp_path / "missing.env")


class TestCliOverrides:
    def test_cli_beats_yaml_and_env(
        self, yaml_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("VODHUB_LOG_LEVEL", "WARNING")
        monkeypatch.setenv("VODHUB_CACHE_BACKEND", "json")

        config = load_config(
            config_path=yaml_config,
            cli_overrides={"log_level": "ERROR", "cache_backend": "none"},
        )
        assert config.log_level == "ERROR"
        assert config.cache.backend == "none"

    def test_sqlite_backend_alias_in_cli_and_sections(self) -> None:
        config = load_config(cli_overrides={"cache_backend": "sqlite"})
        assert config.cache.backend == "diskcache"
        config = load_config(cli_overrides={"cache": {"backend": "sqlite"}})
        assert config.cache.backend == "diskcache"

    def test_sectioned_cli_overrides(self) -> None:
        config = load_config(cli_overrides={"images": {"trim_ratio": 0.5}})
        assert config.images.trim_ratio == 0.5


class TestValidation:
    @pytest.mark.parametrize(
        "overrides",
        [
            {"upstream": {"search_timeout_seconds": 0}},
            {"images": {"trim_ratio": 1.5}},
            {"images": {"max_bytes": 0}},
            {"cache": {"search_ttl_seconds": -1}},
            {"log_level": "TRACE"},
        ],
    )
    def test_invalid_values_rejected(self, overrides: dict) -> None:
        with pytest.raises(ValidationError):
            load_config(cli_overrides=overrides)

    def test_sectioned_dump_round_trips(self, yaml_config: Path, tmp_path: Path) -> None:
        config = load_config(config_path=yaml_config)
        dumped = tmp_path / "dumped.yaml"
        dumped.write_text(yaml.dump(config.to_sectioned_dict()), encoding="utf-8")

        assert load_config(config_path=dumped) == config
