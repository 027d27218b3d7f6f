"""Unified configuration via pydantic-settings."""

from pathlib import Path
from typing import Annotated, Any, Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

LOG_LEVELS = ("debug", "info", "warning", "error", "critical")


class RuntimeConfig(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="BCFIELD_",
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # Feature switches
    plugins_enabled: bool = True
    validation_enabled: bool = True
    permissions_enabled: bool = True
    security_enabled: bool = True
    logging_enabled: bool = True
    metrics_enabled: bool = True
    tracing_enabled: bool = False
    breakpoints_enabled: bool = False
    analytics_enabled: bool = False
    caching_enabled: bool = True
    error_handling_enabled: bool = True

    # Load control
    load_timeout_seconds: float | None = 5.0
    load_retries: int = 3
    load_retry_delay_seconds: float = 1.0
    load_delay_seconds: float = 0.0

    # Plugin defaults
    default_plugin_config: dict[str, Any] = {}
    builtin_plugins: Annotated[list[str], NoDecode] = [
        "trim-whitespace",
        "max-length",
        "wordlist-suggest",
    ]
    plugin_manifests: Annotated[list[Path], NoDecode] = []

    # Permissions & security
    plugin_permissions: dict[str, list[str]] = {}
    blocked_capabilities: Annotated[list[str], NoDecode] = []
    enforce_hook_permissions: bool = False

    # Fallbacks
    fallback_behavior: Literal["disable", "ignore", "retry", "replace"] = "disable"
    fallback_plugins: dict[str, str] = {}
    max_hook_errors: int = 3

    # Diagnostics
    plugin_log_level: Literal["debug", "info", "warning", "error", "critical"] = (
        "info"
    )
    max_metrics_history: int = 100

    # Cache
    cache_ttl_seconds: float = 300.0
    max_cache_entries: int = 1000

    # Logging
    log_level: str = "INFO"
    log_dir: Path | None = None
    log_max_bytes: int = 10_485_760
    log_backup_count: int = 5
    audit_log_path: Path | None = None

    @field_validator("plugin_manifests", mode="before")
    @classmethod
    def parse_plugin_manifests(cls, v: list[Path] | str) -> list[Path]:
        if isinstance(v, str):
            return [Path(p.strip()) for p in v.split(",") if p.strip()]
        return v

    @field_validator("builtin_plugins", "blocked_capabilities", mode="before")
    @classmethod
    def parse_csv_names(cls, v: list[str] | str) -> list[str]:
        if isinstance(v, str):
            return [s.strip() for s in v.split(",") if s.strip()]
        return v

    @field_validator(
        "load_retries",
        "load_retry_delay_seconds",
        "load_delay_seconds",
        "max_hook_errors",
        "max_metrics_history",
        "cache_ttl_seconds",
        "max_cache_entries",
    )
    @classmethod
    def non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("must not be negative")
        return v

    @field_validator("load_timeout_seconds")
    @classmethod
    def positive_timeout(cls, v: float | None) -> float | None:
        if v is not None and v <= 0:
            raise ValueError("load_timeout_seconds must be positive")
        return v
