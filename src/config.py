"""Configuration management for Nest insights.

Sources are layered, highest precedence first: constructor arguments,
environment variables, secrets YAML, user YAML, then ``config/nest.yml``.
Nested sections merge key by key, so a user file may override a single
``link_health`` value without restating the rest of the section.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Callable, Iterable
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

_REPO_ROOT = Path(__file__).resolve().parents[1]
_DEFAULT_CONFIG_PATH = _REPO_ROOT / "config" / "nest.yml"
_USER_CONFIG_PATHS = [
    Path("~/.config/nest/nest.yml").expanduser(),
    Path("/config/nest.yml"),
]
_USER_SECRETS_PATHS = [
    Path("~/.config/nest/secrets.yml").expanduser(),
    Path("/config/secrets.yml"),
]


def _truthy(raw: str) -> bool:
    return raw.strip().lower() in {"1", "true", "yes", "on"}


# Environment variable -> (dotted settings path, parser)
_ENV_OVERRIDES: dict[str, tuple[str, Callable[[str], Any]]] = {
    "NEST_LOG_LEVEL": ("log_level", str),
    "NEST_DATABASE_URL": ("database.url", str),
    "HTTP_TIMEOUT": ("http.timeout", float),
    "HTTP_CONNECT_TIMEOUT": ("http.connect_timeout", float),
    "USER_TIMEZONE": ("user.timezone", str),
    "DUPLICATE_DETECTION": ("analyzer.duplicate_detection", _truthy),
    "LINK_CHECK_BATCH_SIZE": ("link_health.batch_size", int),
    "LINK_PROBE_TIMEOUT": ("link_health.probe_timeout_seconds", float),
}

SettingsSource = Callable[[], dict[str, Any]]


def _read_mapping(path: Path) -> dict[str, Any]:
    """Parse one YAML file; a missing or empty file is an empty mapping."""
    if not path.is_file():
        return {}
    with path.open(encoding="utf-8") as handle:
        data = yaml.safe_load(handle)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file must contain a mapping: {path}")
    return data


def _merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in overlay.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = _merge(current, value)
        else:
            merged[key] = value
    return merged


def _yaml_source(paths: Iterable[Path]) -> SettingsSource:
    """Settings source over several YAML files; later files win."""
    paths = list(paths)

    def load() -> dict[str, Any]:
        data: dict[str, Any] = {}
        for path in paths:
            data = _merge(data, _read_mapping(path))
        return data

    return load


def _env_source() -> SettingsSource:
    """Settings source for the supported environment overrides."""

    def load() -> dict[str, Any]:
        data: dict[str, Any] = {}
        for env_key, (dotted, parse) in _ENV_OVERRIDES.items():
            raw = os.environ.get(env_key)
            if raw is None:
                continue
            *sections, leaf = dotted.split(".")
            node = data
            for section in sections:
                node = node.setdefault(section, {})
            node[leaf] = parse(raw)
        return data

    return load


class DatabaseConfig(BaseModel):
    """Database connection configuration."""

    url: str = "sqlite:///nest.db"


class HttpConfig(BaseModel):
    """Outbound HTTP defaults shared by probes and archive lookups."""

    timeout: float = 30.0
    connect_timeout: float = 10.0
    user_agent: str = "Nest Extension Link Checker"


class UserConfig(BaseModel):
    """User identity and locale configuration."""

    name: str = "user"
    timezone: str = "UTC"

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        """Reject names that are not IANA zones."""
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Invalid timezone: {value}") from exc
        return value


class AnalyzerConfig(BaseModel):
    """Activity pattern analysis tuning."""

    session_gap_minutes: int = 30
    activity_history_limit: int = 200
    stale_report_threshold: float = 0.3
    duplicate_detection: bool = True
    max_clusters: int = 5

    @field_validator("session_gap_minutes", "activity_history_limit", "max_clusters")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        """Ensure counts and windows are positive."""
        if value < 1:
            raise ValueError("analyzer counts and windows must be >= 1.")
        return value

    @field_validator("stale_report_threshold")
    @classmethod
    def validate_stale_threshold(cls, value: float) -> float:
        """Ensure the stale report threshold is between 0 and 1."""
        if not 0.0 <= value <= 1.0:
            raise ValueError("analyzer.stale_report_threshold must be between 0 and 1.")
        return value


class SuggestionConfig(BaseModel):
    """Suggestion ranking and batch planning defaults."""

    max_suggestions: int = 8
    inbox_overwhelm_threshold: int = 10
    cluster_confidence_threshold: float = 0.7
    min_cluster_size_for_batch: int = 3
    archive_staleness_threshold: float = 0.8

    @field_validator("max_suggestions")
    @classmethod
    def validate_max_suggestions(cls, value: int) -> int:
        """Ensure at least one suggestion can be returned."""
        if value < 1:
            raise ValueError("suggestions.max_suggestions must be >= 1.")
        return value

    @field_validator("cluster_confidence_threshold", "archive_staleness_threshold")
    @classmethod
    def validate_unit_interval(cls, value: float) -> float:
        """Ensure confidence-style thresholds are between 0 and 1."""
        if not 0.0 <= value <= 1.0:
            raise ValueError("suggestion thresholds must be between 0 and 1.")
        return value


class LinkHealthConfig(BaseModel):
    """Link health scheduling, rate limiting, and recovery timing."""

    storage_key: str = "nest_link_health"
    check_interval_hours: float = 24.0
    dead_recheck_days: float = 7.0
    batch_size: int = 5
    stagger_seconds: float = 0.5
    batch_delay_seconds: float = 2.0
    probe_timeout_seconds: float = 10.0
    recovery_delay_seconds: float = 5.0
    manual_check_delay_seconds: float = 2.0
    schedule_interval_minutes: int = 60

    @field_validator("batch_size")
    @classmethod
    def validate_batch_size(cls, value: int) -> int:
        """Ensure batch size is positive."""
        if value < 1:
            raise ValueError("link_health.batch_size must be >= 1.")
        return value

    @field_validator(
        "stagger_seconds",
        "batch_delay_seconds",
        "recovery_delay_seconds",
        "manual_check_delay_seconds",
    )
    @classmethod
    def validate_delays(cls, value: float) -> float:
        """Ensure delays are non-negative."""
        if value < 0:
            raise ValueError("link_health delays must be >= 0.")
        return value

    @field_validator("probe_timeout_seconds")
    @classmethod
    def validate_probe_timeout(cls, value: float) -> float:
        """Ensure probes carry a positive timeout."""
        if value <= 0:
            raise ValueError("link_health.probe_timeout_seconds must be > 0.")
        return value


class ArchiveConfig(BaseModel):
    """Archive provider endpoints used for dead link recovery."""

    wayback_cdx_url: str = "https://web.archive.org/cdx/search/cdx"
    wayback_base_url: str = "https://web.archive.org/web/"
    google_cache_url: str = "http://webcache.googleusercontent.com/search?q=cache:"
    archive_today_timemap_url: str = "http://archive.today/timemap/json/"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and YAML."""

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_nested_delimiter="__",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[Any, ...]:
        """Constructor arguments, then env, secrets, user, and default YAML."""
        return (
            init_settings,
            _env_source(),
            _yaml_source(_USER_SECRETS_PATHS),
            _yaml_source(_USER_CONFIG_PATHS),
            _yaml_source([_DEFAULT_CONFIG_PATH]),
        )

    # Logging
    log_level: str = "INFO"

    # Storage
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)

    # Outbound HTTP
    http: HttpConfig = Field(default_factory=HttpConfig)

    # User Context
    user: UserConfig = Field(default_factory=UserConfig)

    # Analysis and suggestions
    analyzer: AnalyzerConfig = Field(default_factory=AnalyzerConfig)
    suggestions: SuggestionConfig = Field(default_factory=SuggestionConfig)

    # Link monitoring
    link_health: LinkHealthConfig = Field(default_factory=LinkHealthConfig)
    archives: ArchiveConfig = Field(default_factory=ArchiveConfig)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Normalize and validate the log level name."""
        normalized = value.strip().upper()
        if normalized not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unsupported log level: {value}")
        return normalized


# Process-wide settings
settings = Settings()
