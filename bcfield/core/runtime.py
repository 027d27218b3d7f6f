"""Plugin runtime: the public surface the text field host talks to."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

import structlog

from bcfield.core.cache import PluginCache
from bcfield.core.diagnostics import Diagnostics
from bcfield.core.dispatch import HookDispatcher
from bcfield.core.events import EventBus
from bcfield.core.metrics import MetricsTable
from bcfield.core.safety.permissions import PermissionGate
from bcfield.core.snapshot import export_snapshot, parse_snapshot, rebuild_descriptor
from bcfield.exceptions import BcFieldError, PluginError
from bcfield.plugins.base import descriptor_id
from bcfield.plugins.hooks import HookExecutor
from bcfield.plugins.manifest import resolve_descriptor_source
from bcfield.plugins.registry import PluginRegistry

if TYPE_CHECKING:
    from bcfield.core.config import RuntimeConfig
    from bcfield.core.diagnostics import (
        ErrorHandler,
        LogEntry,
        PluginErrorRecord,
        TraceEntry,
    )
    from bcfield.core.metrics import PluginAnalytics, PluginMetrics
    from bcfield.core.safety.audit import AuditLogger
    from bcfield.core.safety.permissions import (
        BlockedRequest,
        SecurityViolation,
        Severity,
    )
    from bcfield.plugins.base import LoadedPlugin, PluginDescriptor, PluginState
    from bcfield.plugins.dependencies import DependencyReport
    from bcfield.plugins.validator import ValidationResult

logger = structlog.get_logger()


class PluginRuntime:
    """Wires the registry, hook executor, permission gate and diagnostics.

    Every lifecycle failure is recorded as a plugin error (and passed to the
    configured error handler) before it propagates to the caller.
    """

    def __init__(
        self,
        config: RuntimeConfig,
        *,
        builtin_plugins: Sequence[PluginDescriptor | Mapping[str, Any]] = (),
        event_bus: EventBus | None = None,
        audit: AuditLogger | None = None,
        on_error: ErrorHandler | None = None,
    ) -> None:
        self.config = config
        self.event_bus = event_bus or EventBus()
        self.audit = audit
        self.metrics = MetricsTable(config)
        self.diagnostics = Diagnostics(config, on_error)
        self.gate = PermissionGate(config, audit)
        self.cache = PluginCache(config)
        self.registry = PluginRegistry(
            config, self.metrics, self.diagnostics, self.event_bus, self.cache
        )
        self.executor = HookExecutor(
            config, self.registry, self.metrics, self.diagnostics, self.gate
        )
        self.dispatcher = HookDispatcher(self.registry, self.executor, self.cache)
        self._builtins = tuple(builtin_plugins)

    async def startup(self) -> None:
        await self._load_builtins()
        logger.info(
            "plugin_runtime_started",
            loaded=list(self.registry.loaded()),
            plugins_enabled=self.config.plugins_enabled,
        )

    async def _load_builtins(self) -> None:
        for descriptor in self._builtins:
            try:
                await self.load_plugin(descriptor)
            except BcFieldError as e:
                raise PluginError(
                    f"Built-in plugin {descriptor_id(descriptor)} failed to load: {e}"
                ) from e

    def _record_failure(
        self,
        plugin_id: str,
        error: BaseException,
        action: str,
        plugin: Any = None,
    ) -> None:
        plugin_id = plugin_id or "unknown"
        self.diagnostics.record_error(plugin_id, error, {"action": action}, plugin)
        self.diagnostics.log(
            plugin_id, "error", f"Plugin {action} failed: {error}", {"action": action}
        )

    # --- lifecycle ---

    async def load_plugin(
        self,
        descriptor: PluginDescriptor | Mapping[str, Any],
        *,
        replace: bool = False,
    ) -> LoadedPlugin | None:
        try:
            return await self.registry.load(descriptor, replace=replace)
        except BcFieldError as e:
            self._record_failure(descriptor_id(descriptor), e, "load", descriptor)
            raise

    async def unload_plugin(self, plugin_id: str, *hook_args: Any) -> bool:
        return await self.registry.unload(plugin_id, *hook_args)

    async def uninstall_plugin(self, plugin_id: str, *hook_args: Any) -> bool:
        return await self.unload_plugin(plugin_id, *hook_args)

    def enable_plugin(self, plugin_id: str) -> bool:
        return self.registry.enable(plugin_id)

    def disable_plugin(self, plugin_id: str) -> bool:
        return self.registry.disable(plugin_id)

    async def update_plugin(
        self, plugin_id: str, descriptor: PluginDescriptor | Mapping[str, Any]
    ) -> LoadedPlugin | None:
        try:
            return await self.registry.update(plugin_id, descriptor)
        except BcFieldError as e:
            self._record_failure(plugin_id, e, "update", descriptor)
            raise

    async def install_plugin(self, plugin_id: str, source: str) -> LoadedPlugin | None:
        """Load a plugin from a ``module:attribute`` import path."""
        logger.info("plugin_install_requested", plugin_id=plugin_id, source=source)
        try:
            descriptor = resolve_descriptor_source(source)
            if descriptor_id(descriptor) != plugin_id:
                raise PluginError(
                    f"Plugin source {source} provides "
                    f"{descriptor_id(descriptor) or 'no id'}, expected {plugin_id}"
                )
        except BcFieldError as e:
            self._record_failure(plugin_id, e, "install")
            raise
        return await self.load_plugin(descriptor)

    # --- introspection ---

    def get_plugin(self, plugin_id: str) -> LoadedPlugin | None:
        return self.registry.get(plugin_id)

    def get_active_plugins(self) -> list[LoadedPlugin]:
        return self.registry.active()

    def get_loaded_plugins(self) -> dict[str, LoadedPlugin]:
        return self.registry.loaded()

    def get_plugin_state(self, plugin_id: str) -> PluginState:
        return self.registry.state(plugin_id)

    # --- execution ---

    def execute_plugin_hook(self, plugin_id: str, hook_name: str, *args: Any) -> Any:
        return self.executor.invoke(plugin_id, hook_name, *args)

    # --- validation & config ---

    def validate_plugin(
        self, descriptor: PluginDescriptor | Mapping[str, Any]
    ) -> ValidationResult:
        return self.registry.validate(descriptor)

    def check_plugin_dependencies(
        self, descriptor: PluginDescriptor | Mapping[str, Any]
    ) -> DependencyReport:
        return self.registry.check_dependencies(descriptor)

    def update_plugin_config(self, plugin_id: str, config: Mapping[str, Any]) -> bool:
        return self.registry.update_config(plugin_id, config)

    # --- permissions & security ---

    def set_plugin_permissions(self, plugin_id: str, permissions: list[str]) -> None:
        self.gate.set_permissions(plugin_id, permissions)

    def check_plugin_permissions(self, plugin_id: str, permission: str) -> bool:
        return self.gate.check_permission(plugin_id, permission)

    def require_plugin_permission(self, plugin_id: str, permission: str) -> None:
        self.gate.require_permission(plugin_id, permission)

    def report_plugin_violation(
        self, plugin_id: str, violation: str, severity: Severity
    ) -> SecurityViolation | None:
        return self.gate.report_violation(plugin_id, violation, severity)

    def block_plugin_request(
        self, plugin_id: str, request: str, reason: str
    ) -> BlockedRequest | None:
        return self.gate.block_request(plugin_id, request, reason)

    def get_security_violations(
        self, plugin_id: str | None = None
    ) -> list[SecurityViolation]:
        return self.gate.violations(plugin_id)

    def get_blocked_requests(
        self, plugin_id: str | None = None
    ) -> list[BlockedRequest]:
        return self.gate.blocked_requests(plugin_id)

    # --- diagnostics ---

    def get_plugin_metrics(self, plugin_id: str) -> PluginMetrics | None:
        return self.metrics.get(plugin_id)

    def clear_plugin_metrics(self, plugin_id: str | None = None) -> None:
        self.metrics.clear(plugin_id)

    def log_plugin_event(
        self,
        plugin_id: str,
        level: str,
        message: str,
        context: dict[str, Any] | None = None,
    ) -> LogEntry | None:
        return self.diagnostics.log(plugin_id, level, message, context)

    def get_plugin_logs(self, plugin_id: str | None = None) -> list[LogEntry]:
        return self.diagnostics.logs(plugin_id)

    def clear_plugin_logs(self, plugin_id: str | None = None) -> None:
        self.diagnostics.clear_logs(plugin_id)

    def trace_plugin_execution(self, plugin_id: str, trace: Any) -> TraceEntry | None:
        return self.diagnostics.trace(plugin_id, trace)

    def get_plugin_traces(self, plugin_id: str | None = None) -> list[TraceEntry]:
        return self.diagnostics.traces(plugin_id)

    def clear_plugin_traces(self, plugin_id: str | None = None) -> None:
        self.diagnostics.clear_traces(plugin_id)

    def get_plugin_errors(
        self, plugin_id: str | None = None
    ) -> list[PluginErrorRecord]:
        return self.diagnostics.errors(plugin_id)

    def clear_plugin_errors(self, plugin_id: str | None = None) -> None:
        self.diagnostics.clear_errors(plugin_id)

    def set_plugin_breakpoint(self, plugin_id: str, enabled: bool) -> None:
        self.diagnostics.set_breakpoint(plugin_id, enabled)

    def update_plugin_analytics(self, plugin_id: str, data: dict[str, Any]) -> None:
        self.metrics.update_analytics(plugin_id, data)

    def get_plugin_analytics(
        self, plugin_id: str | None = None
    ) -> PluginAnalytics | dict[str, PluginAnalytics]:
        if plugin_id is None:
            return self.metrics.all_analytics()
        return self.metrics.analytics(plugin_id)

    # --- cache ---

    def cache_get(self, plugin_id: str, key: str, default: Any = None) -> Any:
        return self.cache.get(plugin_id, key, default)

    def cache_set(self, plugin_id: str, key: str, value: Any) -> None:
        self.cache.set(plugin_id, key, value)

    def clear_plugin_cache(self, plugin_id: str | None = None) -> None:
        self.cache.clear(plugin_id)

    # --- fallback policy ---

    def apply_fallback_policy(self, plugin_id: str) -> str:
        """Apply the configured fallback once a plugin reaches ``max_hook_errors``.

        Returns the behaviour applied, or ``"none"`` below the threshold.
        ``ignore`` and ``retry`` leave the plugin untouched.
        """
        if self.metrics.error_count(plugin_id) < self.config.max_hook_errors:
            return "none"
        behavior = self.config.fallback_behavior
        if behavior == "replace":
            replacement = self.config.fallback_plugins.get(plugin_id)
            if replacement is None or self.registry.get(replacement) is None:
                logger.warning(
                    "plugin_fallback_unavailable",
                    plugin_id=plugin_id,
                    replacement=replacement,
                )
                behavior = "disable"
            else:
                self.registry.disable(plugin_id)
                self.registry.enable(replacement)
        if behavior == "disable":
            self.registry.disable(plugin_id)
        self.diagnostics.log(
            plugin_id,
            "warning",
            f"Fallback policy applied: {behavior}",
            {"error_count": self.metrics.error_count(plugin_id)},
        )
        return behavior

    # --- snapshot ---

    def export_plugin_config(self) -> str:
        return export_snapshot(self.registry.loaded())

    async def import_plugin_config(self, snapshot: str) -> list[str]:
        """Re-load every snapshot entry in order; failing entries are skipped."""
        imported: list[str] = []
        for entry in parse_snapshot(snapshot):
            if not isinstance(entry, dict):
                logger.warning("snapshot_entry_skipped", reason="not a mapping")
                continue
            known = self.registry.catalog_entry(str(entry.get("id", "")))
            try:
                plugin = await self.load_plugin(rebuild_descriptor(entry, known))
            except BcFieldError as e:
                logger.warning(
                    "snapshot_entry_skipped", plugin_id=entry.get("id"), error=str(e)
                )
                continue
            if plugin is None:
                continue
            if entry.get("active") is False:
                self.registry.disable(plugin.id)
            imported.append(plugin.id)
        logger.info("plugin_snapshot_imported", count=len(imported))
        return imported

    # --- reset ---

    async def reset_plugin_system(self) -> None:
        """Drop all state, then re-load only the built-in plugins."""
        self.registry.clear()
        self.metrics.reset()
        self.diagnostics.reset()
        self.gate.reset()
        self.cache.clear()
        logger.info("plugin_system_reset", builtin_count=len(self._builtins))
        await self._load_builtins()
