"""Append-only plugin logs, traces and captured errors."""

from __future__ import annotations

import uuid
from collections.abc import Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import structlog
from pydantic import BaseModel, ConfigDict, Field

from bcfield.core.config import LOG_LEVELS

if TYPE_CHECKING:
    from bcfield.core.config import RuntimeConfig

logger = structlog.get_logger()

ErrorHandler = Callable[[BaseException, Any, dict[str, Any]], None]


def _new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex}"


class LogEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: _new_id("log"))
    plugin_id: str
    level: str
    message: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    context: dict[str, Any] = Field(default_factory=dict)


class TraceEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: _new_id("trace"))
    plugin_id: str
    trace: Any
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))


class PluginErrorRecord(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    id: str = Field(default_factory=lambda: _new_id("error"))
    plugin_id: str
    error: BaseException
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    context: dict[str, Any] = Field(default_factory=dict)


def log_plugin_error(
    error: BaseException, plugin: Any, context: dict[str, Any]
) -> None:
    """Default error handler: one structured log line."""
    plugin_id = getattr(plugin, "id", None)
    if plugin_id is None and isinstance(plugin, dict):
        plugin_id = plugin.get("id")
    logger.error(
        "plugin_error",
        plugin_id=plugin_id,
        error=str(error),
        error_type=type(error).__name__,
        action=context.get("action"),
    )


class Diagnostics:
    def __init__(
        self, config: RuntimeConfig, on_error: ErrorHandler | None = None
    ) -> None:
        self._config = config
        self._on_error = on_error or log_plugin_error
        self._logs: list[LogEntry] = []
        self._traces: list[TraceEntry] = []
        self._errors: list[PluginErrorRecord] = []
        self._breakpoints: dict[str, bool] = {}

    # --- logs ---

    def log(
        self,
        plugin_id: str,
        level: str,
        message: str,
        context: dict[str, Any] | None = None,
    ) -> LogEntry | None:
        if level not in LOG_LEVELS:
            raise ValueError(f"Unknown log level: {level}")
        if not self._config.logging_enabled:
            return None
        if LOG_LEVELS.index(level) < LOG_LEVELS.index(self._config.plugin_log_level):
            return None
        entry = LogEntry(
            plugin_id=plugin_id, level=level, message=message, context=context or {}
        )
        self._logs.append(entry)
        getattr(logger, level)(
            "plugin_event", plugin_id=plugin_id, message=message, context=entry.context
        )
        return entry

    def logs(self, plugin_id: str | None = None) -> list[LogEntry]:
        return _filter(self._logs, plugin_id)

    def clear_logs(self, plugin_id: str | None = None) -> None:
        self._logs = _remove(self._logs, plugin_id)

    # --- traces ---

    def trace(self, plugin_id: str, trace: Any) -> TraceEntry | None:
        if not self._config.tracing_enabled:
            return None
        entry = TraceEntry(plugin_id=plugin_id, trace=trace)
        self._traces.append(entry)
        return entry

    def traces(self, plugin_id: str | None = None) -> list[TraceEntry]:
        return _filter(self._traces, plugin_id)

    def clear_traces(self, plugin_id: str | None = None) -> None:
        self._traces = _remove(self._traces, plugin_id)

    # --- breakpoints ---

    def set_breakpoint(self, plugin_id: str, enabled: bool) -> None:
        if not self._config.breakpoints_enabled:
            return
        self._breakpoints[plugin_id] = enabled

    def has_breakpoint(self, plugin_id: str) -> bool:
        if not self._config.breakpoints_enabled:
            return False
        return self._breakpoints.get(plugin_id, False)

    # --- errors ---

    def record_error(
        self,
        plugin_id: str,
        error: BaseException,
        context: dict[str, Any],
        plugin: Any = None,
    ) -> PluginErrorRecord:
        record = PluginErrorRecord(plugin_id=plugin_id, error=error, context=context)
        self._errors.append(record)
        if self._config.error_handling_enabled:
            try:
                self._on_error(error, plugin, context)
            except Exception:
                logger.exception("plugin_error_handler_failed", plugin_id=plugin_id)
        return record

    def errors(self, plugin_id: str | None = None) -> list[PluginErrorRecord]:
        return _filter(self._errors, plugin_id)

    def clear_errors(self, plugin_id: str | None = None) -> None:
        self._errors = _remove(self._errors, plugin_id)

    def reset(self) -> None:
        self._logs.clear()
        self._traces.clear()
        self._errors.clear()
        self._breakpoints.clear()


def _filter(entries: list[Any], plugin_id: str | None) -> list[Any]:
    if plugin_id is None:
        return list(entries)
    return [e for e in entries if e.plugin_id == plugin_id]


def _remove(entries: list[Any], plugin_id: str | None) -> list[Any]:
    if plugin_id is None:
        return []
    return [e for e in entries if e.plugin_id != plugin_id]
