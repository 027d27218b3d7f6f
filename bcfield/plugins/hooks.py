"""Hook execution with per-plugin failure isolation and bookkeeping."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from bcfield.core.config import RuntimeConfig
    from bcfield.core.diagnostics import Diagnostics
    from bcfield.core.metrics import MetricsTable
    from bcfield.core.safety.permissions import PermissionGate
    from bcfield.plugins.registry import PluginRegistry

logger = structlog.get_logger()


class HookExecutor:
    """Synchronous, in-order hook invocation.

    A missing plugin or hook is a silent no-op. A hook that raises is
    recorded against its plugin and the exception is re-raised unchanged;
    the plugin stays loaded and other plugins are unaffected.
    """

    def __init__(
        self,
        config: RuntimeConfig,
        registry: PluginRegistry,
        metrics: MetricsTable,
        diagnostics: Diagnostics,
        gate: PermissionGate,
    ) -> None:
        self._config = config
        self._registry = registry
        self._metrics = metrics
        self._diagnostics = diagnostics
        self._gate = gate

    def has_hook(self, plugin_id: str, hook_name: str) -> bool:
        plugin = self._registry.get(plugin_id)
        return plugin is not None and plugin.hooks.get(hook_name) is not None

    def invoke(self, plugin_id: str, hook_name: str, *args: Any) -> Any:
        if not self._config.plugins_enabled:
            return None
        plugin = self._registry.get(plugin_id)
        if plugin is None:
            return None
        hook = plugin.hooks.get(hook_name)
        if hook is None:
            return None

        if self._config.enforce_hook_permissions:
            self._gate.require_permission(plugin_id, f"hook:{hook_name}")
        if self._diagnostics.has_breakpoint(plugin_id):
            self._diagnostics.trace(
                plugin_id,
                {"breakpoint": True, "hook_name": hook_name, "args": list(args)},
            )

        start = time.perf_counter()
        try:
            result = hook(*args)
        except Exception as e:
            elapsed = time.perf_counter() - start
            self._metrics.record_failure(plugin_id, elapsed)
            self._diagnostics.record_error(
                plugin_id,
                e,
                {"action": "execute_hook", "hook_name": hook_name, "args": list(args)},
                plugin,
            )
            self._diagnostics.log(
                plugin_id,
                "error",
                f"Hook {hook_name} failed: {e}",
                {"hook_name": hook_name, "error_type": type(e).__name__},
            )
            logger.warning(
                "plugin_hook_failed",
                plugin_id=plugin_id,
                hook_name=hook_name,
                error=str(e),
            )
            raise

        self._metrics.record_success(plugin_id, time.perf_counter() - start)
        return result
