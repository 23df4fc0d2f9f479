"""Pydantic configuration models with validation."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import (
    AliasChoices,
    AliasPath,
    BaseModel,
    Field,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

Environment = Literal["dev", "test", "prod"]
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]
LogFormat = Literal["json", "console"]
CacheBackendName = Literal["memory", "json", "diskcache", "none"]

# Deployment name for the SQLite-backed cache.
_CACHE_BACKEND_ALIASES: dict[str, str] = {"sqlite": "diskcache"}


def _normalize_cache_backend(value: Any) -> Any:
    if isinstance(value, str):
        return _CACHE_BACKEND_ALIASES.get(value.strip().lower(), value)
    return value


def _normalize_path(value: Any) -> Path:
    """
    Normalize a path-like value without causing filesystem side-effects.

    This function MUST NOT create directories or files.
    """
    if isinstance(value, Path):
        return value.expanduser()
    if isinstance(value, str):
        return Path(value).expanduser()
    raise TypeError(f"Expected path-like value, got: {type(value)!r}")


class CacheConfig(BaseModel):
    """Search/detail cache configuration (backend-agnostic)."""

    backend: CacheBackendName = Field(
        default="json",
        description=(
            "Cache backend: 'json' (two JSON documents), 'diskcache' "
            "(SQLite, alias 'sqlite'), 'memory' (process-local) or 'none'."
        ),
    )
    directory: Path = Field(
        default=Path("."),
        validation_alias=AliasChoices("dir", "directory"),
        description="Directory holding cache_search.json/cache_detail.json or the diskcache DB.",
    )
    search_ttl_seconds: int = Field(
        default=600,
        description="TTL for cached search results (seconds).",
    )
    detail_ttl_seconds: int = Field(
        default=3600,
        description="TTL for cached detail records (seconds).",
    )
    max_concurrent: int = Field(
        default=10,
        description="Max parallel diskcache ops (semaphore limit).",
    )

    @field_validator("backend", mode="before")
    @classmethod
    def _validate_backend(cls, v: Any) -> Any:
        return _normalize_cache_backend(v)

    @field_validator("directory", mode="before")
    @classmethod
    def _validate_dir(cls, v: Any) -> Path:
        return _normalize_path(v)

    @field_validator("search_ttl_seconds", "detail_ttl_seconds")
    @classmethod
    def _validate_ttl(cls, v: int) -> int:
        if v < 0:
            raise ValueError("cache TTLs must be >= 0")
        return v


class UpstreamConfig(BaseModel):
    """Per-call timeouts for outgoing requests (seconds)."""

    search_timeout_seconds: float = 8.0
    detail_timeout_seconds: float = 8.0
    image_timeout_seconds: float = 10.0
    proxy_timeout_seconds: float = 10.0

    @field_validator("*")
    @classmethod
    def _validate_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("upstream timeouts must be > 0")
        return v


class SitesConfig(BaseModel):
    """Where the site directory document comes from."""

    data_file: Path = Field(
        default=Path("db.json"),
        description="Local site directory document.",
    )
    template_file: Optional[Path] = Field(
        default=Path("db.template.json"),
        description="Copied to data_file at startup when data_file is missing.",
    )
    remote_url: Optional[str] = Field(
        default=None,
        description="Optional remote directory document (preferred when reachable).",
    )
    remote_ttl_seconds: int = Field(
        default=300,
        description="How long a fetched remote document is reused (seconds).",
    )
    remote_timeout_seconds: float = Field(
        default=5.0,
        description="Timeout for the remote directory fetch (seconds).",
    )

    @field_validator("data_file", mode="before")
    @classmethod
    def _validate_data_file(cls, v: Any) -> Path:
        return _normalize_path(v)

    @field_validator("template_file", mode="before")
    @classmethod
    def _validate_template_file(cls, v: Any) -> Any:
        if v is None or v == "":
            return None
        return _normalize_path(v)

    @field_validator("remote_url", mode="before")
    @classmethod
    def _empty_url_is_none(cls, v: Any) -> Any:
        return v or None


class ImagesConfig(BaseModel):
    """Local poster/backdrop cache."""

    directory: Path = Field(
        default=Path("public/cache/images"),
        validation_alias=AliasChoices("dir", "directory"),
        description="Cache root; files live at <dir>/<size>/<filename>.",
    )
    max_bytes: int = Field(
        default=1024 * 1024 * 1024,
        description="Size budget that triggers eviction (bytes).",
    )
    trim_ratio: float = Field(
        default=0.9,
        description="Eviction trims the cache down to max_bytes * trim_ratio.",
    )
    sweep_threshold: int = Field(
        default=50,
        description="Number of stored images between two eviction sweeps.",
    )
    allowed_sizes: tuple[str, ...] = Field(
        default=("w300", "w342", "w500", "w780", "w1280", "original"),
        description="Size segments accepted by the image endpoint.",
    )
    upstream_base: str = Field(
        default="https://image.tmdb.org/t/p",
        description="Image CDN prefix.",
    )

    @field_validator("directory", mode="before")
    @classmethod
    def _validate_dir(cls, v: Any) -> Path:
        return _normalize_path(v)

    @field_validator("max_bytes", "sweep_threshold")
    @classmethod
    def _validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be > 0")
        return v

    @field_validator("trim_ratio")
    @classmethod
    def _validate_ratio(cls, v: float) -> float:
        if not 0 < v <= 1:
            raise ValueError("trim_ratio must be in (0, 1]")
        return v


class TmdbConfig(BaseModel):
    """TMDB credentials and proxy behaviour."""

    api_key: Optional[str] = Field(
        default=None,
        description="TMDB API key used server-side by /api/tmdb-proxy.",
    )
    proxy_url: Optional[str] = Field(
        default=None,
        description="Alternative TMDB endpoint advertised to clients.",
    )
    api_base: str = Field(default="https://api.themoviedb.org/3")
    language: str = Field(default="zh-CN")
    proxy_ttl_seconds: int = Field(
        default=36_000,
        description="TTL for cached proxy responses (seconds).",
    )

    @field_validator("api_key", "proxy_url", mode="before")
    @classmethod
    def _empty_is_none(cls, v: Any) -> Any:
        return v or None


class AppConfig(BaseModel):
    """
    Canonical application configuration (validated, final).

    Note:
    - YAML is expected to be sectioned (http/logging/cache/upstream/sites/images/tmdb).
    - Environment variables are handled by EnvOverrides(BaseSettings) to allow strict
      precedence control (defaults < YAML < ENV < CLI) in load.py.
    """

    # General
    app_name: str = Field(default="vodhub", description="Application name.")
    environment: Environment = Field(
        default="dev",
        description="Runtime environment (affects defaults like log format).",
    )

    # HTTP client (YAML section: http.*)
    http_follow_redirects: bool = Field(
        default=True,
        validation_alias=AliasChoices(
            "http_follow_redirects",
            AliasPath("http", "follow_redirects"),
        ),
        description="Whether the shared HTTP client follows redirects.",
    )
    http_user_agent: str = Field(
        default="vodhub/0.1.0",
        validation_alias=AliasChoices(
            "http_user_agent",
            AliasPath("http", "user_agent"),
        ),
        description="User-Agent for outgoing HTTP requests.",
    )

    # Logging (YAML section: logging.*)
    log_level: LogLevel = Field(
        default="INFO",
        validation_alias=AliasChoices(
            "log_level",
            AliasPath("logging", "level"),
        ),
        description="Log level.",
    )
    log_format: Optional[LogFormat] = Field(
        default=None,
        validation_alias=AliasChoices(
            "log_format",
            AliasPath("logging", "format"),
        ),
        description=(
            "Log renderer format (console/json). If unset, derived from environment."
        ),
    )

    cache: CacheConfig = Field(default_factory=CacheConfig)
    upstream: UpstreamConfig = Field(default_factory=UpstreamConfig)
    sites: SitesConfig = Field(default_factory=SitesConfig)
    images: ImagesConfig = Field(default_factory=ImagesConfig)
    tmdb: TmdbConfig = Field(default_factory=TmdbConfig)

    access_password: Optional[str] = Field(
        default=None,
        description="Shared password for the web UI (unset = open access).",
    )
    enable_local_image_cache: bool = Field(
        default=True,
        description="Advertise /api/images to clients (off on read-only hosts).",
    )

    @field_validator("access_password", mode="before")
    @classmethod
    def _empty_password_is_none(cls, v: Any) -> Any:
        return v or None

    @model_validator(mode="after")
    def _derive_defaults(self) -> "AppConfig":
        # Default log format: console in dev/test, json in prod.
        if self.log_format is None:
            self.log_format = "json" if self.environment == "prod" else "console"
        return self

    def to_sectioned_dict(self) -> dict[str, Any]:
        """
        Dump configuration in the sectioned shape used by config.yaml/docs.
        """
        cache = self.cache.model_dump(exclude={"directory"})
        images = self.images.model_dump(exclude={"directory"})
        sites = self.sites.model_dump()
        return {
            "app_name": self.app_name,
            "environment": self.environment,
            "http": {
                "follow_redirects": self.http_follow_redirects,
                "user_agent": self.http_user_agent,
            },
            "logging": {"level": self.log_level, "format": self.log_format},
            "cache": {"dir": str(self.cache.directory), **cache},
            "upstream": self.upstream.model_dump(),
            "sites": {
                **sites,
                "data_file": str(self.sites.data_file),
                "template_file": (
                    str(self.sites.template_file) if self.sites.template_file else None
                ),
            },
            "images": {
                "dir": str(self.images.directory),
                **images,
                "allowed_sizes": list(self.images.allowed_sizes),
            },
            "tmdb": self.tmdb.model_dump(),
            "access_password": self.access_password,
            "enable_local_image_cache": self.enable_local_image_cache,
        }


class EnvOverrides(BaseSettings):
    """
    Environment-variable overrides (all optional).

    Intended usage:
    - load.py creates EnvOverrides() to read VODHUB_* variables,
      converts to dict of set values, merges into YAML/defaults,
      then validates AppConfig.

    Supported env var examples (flat, explicit):
    - VODHUB_LOG_LEVEL
    - VODHUB_CACHE_BACKEND (or CACHE_TYPE)
    - VODHUB_REMOTE_DB_URL (or REMOTE_DB_URL)
    - VODHUB_TMDB_API_KEY (or TMDB_API_KEY)
    - VERCEL (any truthy value disables the local image cache)
    """

    model_config = SettingsConfigDict(
        env_prefix="VODHUB_",
        extra="ignore",
        case_sensitive=False,
    )

    app_name: Optional[str] = None
    environment: Optional[Environment] = None

    http_follow_redirects: Optional[bool] = None
    http_user_agent: Optional[str] = None

    log_level: Optional[LogLevel] = None
    log_format: Optional[LogFormat] = None

    cache_backend: Optional[CacheBackendName] = Field(
        default=None,
        validation_alias=AliasChoices("vodhub_cache_backend", "cache_type"),
    )
    cache_dir: Optional[Path] = None
    cache_search_ttl_seconds: Optional[int] = None
    cache_detail_ttl_seconds: Optional[int] = None

    search_timeout_seconds: Optional[float] = None
    detail_timeout_seconds: Optional[float] = None
    image_timeout_seconds: Optional[float] = None
    proxy_timeout_seconds: Optional[float] = None

    sites_data_file: Optional[Path] = None
    sites_template_file: Optional[Path] = None
    remote_db_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("vodhub_remote_db_url", "remote_db_url"),
    )
    remote_db_ttl_seconds: Optional[int] = None

    image_cache_dir: Optional[Path] = None
    image_cache_max_bytes: Optional[int] = None

    tmdb_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("vodhub_tmdb_api_key", "tmdb_api_key"),
    )
    tmdb_proxy_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("vodhub_tmdb_proxy_url", "tmdb_proxy_url"),
    )
    tmdb_language: Optional[str] = None

    access_password: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("vodhub_access_password", "access_password"),
    )
    enable_local_image_cache: Optional[bool] = None
    vercel: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("vercel"),
    )

    @field_validator("cache_backend", mode="before")
    @classmethod
    def _validate_cache_backend(cls, v: Any) -> Any:
        return _normalize_cache_backend(v)

    @field_validator(
        "cache_dir",
        "sites_data_file",
        "sites_template_file",
        "image_cache_dir",
        mode="before",
    )
    @classmethod
    def _validate_paths(cls, v: Any) -> Any:
        if v is None:
            return None
        return _normalize_path(v)

    def to_update_dict(self) -> dict[str, Any]:
        """
        Return only values that were actually provided (non-None), for merging.
        """
        data = self.model_dump(exclude_none=True)
        # Hosted on a read-only filesystem: no local image cache unless forced.
        vercel = data.pop("vercel", None)
        if vercel and "enable_local_image_cache" not in data:
            data["enable_local_image_cache"] = False
        return data
