"""Bootstrap: wires all components together."""

from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog

from bcfield.core.config import RuntimeConfig
from bcfield.core.events import LIFECYCLE_EVENTS, EventBus
from bcfield.core.runtime import PluginRuntime
from bcfield.core.safety.audit import AuditLogger
from bcfield.exceptions import ConfigError
from bcfield.plugins.builtin.max_length import MAX_LENGTH
from bcfield.plugins.builtin.trim_whitespace import TRIM_WHITESPACE
from bcfield.plugins.builtin.wordlist_suggest import WORDLIST_SUGGEST
from bcfield.plugins.manifest import load_manifest

if TYPE_CHECKING:
    from collections.abc import Mapping

    from bcfield.core.diagnostics import ErrorHandler
    from bcfield.plugins.base import PluginDescriptor

logger = structlog.get_logger()

BUILTIN_PLUGINS: dict[str, PluginDescriptor] = {
    plugin.id: plugin for plugin in (TRIM_WHITESPACE, MAX_LENGTH, WORDLIST_SUGGEST)
}


def _configure_logging(config: RuntimeConfig, *, log_dir: Path | None = None) -> None:
    """Set up structlog with console output and optional rotating JSON file handler."""
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
    ]

    root_logger = logging.getLogger()
    root_logger.setLevel(config.log_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=structlog.dev.ConsoleRenderer(),
        )
    )
    root_logger.addHandler(console_handler)

    # JSON lines for machine parsing
    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_dir / "bcfield.log",
            maxBytes=config.log_max_bytes,
            backupCount=config.log_backup_count,
        )
        file_handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                processor=structlog.processors.JSONRenderer(),
            )
        )
        root_logger.addHandler(file_handler)

    structlog.configure(
        processors=shared_processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def _select_builtins(names: list[str]) -> list[PluginDescriptor]:
    unknown = [name for name in names if name not in BUILTIN_PLUGINS]
    if unknown:
        raise ConfigError(f"Unknown built-in plugins: {', '.join(unknown)}")
    return [BUILTIN_PLUGINS[name] for name in names]


def build_runtime(
    config: RuntimeConfig | None = None,
    *,
    plugins: list[PluginDescriptor | Mapping[str, Any]] | None = None,
    on_error: ErrorHandler | None = None,
) -> PluginRuntime:
    """Build a runtime whose startup loads built-ins, manifests, then *plugins*."""
    if config is None:
        config = RuntimeConfig()

    _configure_logging(config, log_dir=config.log_dir)

    logger.info(
        "runtime_building",
        builtin_plugins=config.builtin_plugins,
        manifest_count=len(config.plugin_manifests),
        plugins_enabled=config.plugins_enabled,
        log_level=config.log_level,
    )

    event_bus = EventBus()

    audit = None
    if config.audit_log_path is not None:
        audit = AuditLogger(config.audit_log_path)
        event_bus.subscribe(LIFECYCLE_EVENTS, audit.on_lifecycle_event)

    startup_plugins: list[PluginDescriptor | Mapping[str, Any]] = [
        *_select_builtins(config.builtin_plugins),
        *(load_manifest(path) for path in config.plugin_manifests),
        *(plugins or []),
    ]

    runtime = PluginRuntime(
        config,
        builtin_plugins=startup_plugins,
        event_bus=event_bus,
        audit=audit,
        on_error=on_error,
    )

    logger.info(
        "runtime_built",
        plugin_count=len(startup_plugins),
        has_audit=audit is not None,
    )
    return runtime
