"""Plugin lifecycle manager, the only owner of the loaded and active sets."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

import structlog

from bcfield.core.events import (
    PLUGIN_LOAD_FAILED,
    PLUGIN_LOADED,
    PLUGIN_UNLOADED,
    Event,
)
from bcfield.exceptions import (
    PluginDependencyError,
    PluginError,
    PluginLoadTimeoutError,
    PluginValidationError,
)
from bcfield.plugins.base import (
    LoadedPlugin,
    PluginDescriptor,
    PluginState,
    coerce_descriptor,
    descriptor_id,
)
from bcfield.plugins.dependencies import DependencyReport, check_dependencies
from bcfield.plugins.validator import ValidationResult, validate_plugin

if TYPE_CHECKING:
    from bcfield.core.cache import PluginCache
    from bcfield.core.config import RuntimeConfig
    from bcfield.core.diagnostics import Diagnostics
    from bcfield.core.events import EventBus
    from bcfield.core.metrics import MetricsTable

logger = structlog.get_logger()


class PluginRegistry:
    """Moves plugins through loading, activation, deactivation and removal.

    Concurrent ``load`` calls for the same id are not serialized; callers
    must not overlap them. The commit step re-checks for duplicates so an
    overlapping load fails instead of replacing the first one.
    """

    def __init__(
        self,
        config: RuntimeConfig,
        metrics: MetricsTable,
        diagnostics: Diagnostics,
        event_bus: EventBus | None = None,
        cache: PluginCache | None = None,
    ) -> None:
        self._config = config
        self._metrics = metrics
        self._diagnostics = diagnostics
        self._event_bus = event_bus
        self._cache = cache
        self._loaded: dict[str, LoadedPlugin] = {}
        # Insertion-ordered set: activation order.
        self._active: dict[str, None] = {}
        self._loading: set[str] = set()
        self._unloaded: set[str] = set()
        self._catalog: dict[str, PluginDescriptor] = {}

    # --- introspection ---

    def get(self, plugin_id: str) -> LoadedPlugin | None:
        return self._loaded.get(plugin_id)

    def loaded(self) -> dict[str, LoadedPlugin]:
        return dict(self._loaded)

    def active(self) -> list[LoadedPlugin]:
        return [self._loaded[pid] for pid in self._active]

    def is_active(self, plugin_id: str) -> bool:
        return plugin_id in self._active

    def state(self, plugin_id: str) -> PluginState:
        plugin = self._loaded.get(plugin_id)
        if plugin is not None:
            return PluginState.ACTIVE if plugin.active else PluginState.INACTIVE
        if plugin_id in self._loading:
            return PluginState.LOADING
        if plugin_id in self._unloaded:
            return PluginState.UNLOADED
        return PluginState.UNREGISTERED

    def catalog_entry(self, plugin_id: str) -> PluginDescriptor | None:
        """Last descriptor that loaded successfully under *plugin_id*, if any."""
        return self._catalog.get(plugin_id)

    # --- checks ---

    def validate(
        self, descriptor: PluginDescriptor | Mapping[str, Any]
    ) -> ValidationResult:
        return validate_plugin(descriptor)

    def check_dependencies(
        self, descriptor: PluginDescriptor | Mapping[str, Any]
    ) -> DependencyReport:
        return check_dependencies(descriptor, self._loaded.keys())

    # --- lifecycle ---

    async def load(
        self,
        descriptor: PluginDescriptor | Mapping[str, Any],
        *,
        replace: bool = False,
    ) -> LoadedPlugin | None:
        """Validate, check dependencies and commit *descriptor*.

        With ``replace=True`` an already loaded plugin of the same id is
        unloaded first, but only once the replacement has passed its checks.
        A replacement that then times out leaves the id unloaded. Any other
        failed load leaves the loaded and active sets unchanged.
        """
        if not self._config.plugins_enabled:
            return None

        plugin_id = descriptor_id(descriptor)
        try:
            if plugin_id and plugin_id in self._loaded:
                if not replace:
                    raise PluginError(f"Plugin already loaded: {plugin_id}")
                self._check(descriptor, ignore=plugin_id)
                await self.unload(plugin_id)
            typed, load_time = await self._prepare_with_retries(descriptor, plugin_id)
            plugin = self._commit(typed, load_time)
        except PluginError as e:
            await self._emit(PLUGIN_LOAD_FAILED, plugin_id=plugin_id, error=str(e))
            raise

        logger.info(
            "plugin_loaded",
            plugin_id=typed.id,
            version=typed.version,
            hooks=typed.hooks.present(),
        )
        await self._emit(PLUGIN_LOADED, plugin_id=typed.id, version=typed.version)
        return plugin

    def _check(
        self,
        descriptor: PluginDescriptor | Mapping[str, Any],
        ignore: str | None = None,
    ) -> PluginDescriptor:
        if self._config.validation_enabled:
            validation = self.validate(descriptor)
            if not validation.is_valid:
                raise PluginValidationError(validation.errors)
            report = self.check_dependencies(descriptor)
            if not report.satisfied:
                raise PluginDependencyError(report.missing)
        typed = coerce_descriptor(descriptor)
        if typed.id in self._loaded and typed.id != ignore:
            raise PluginError(f"Plugin already loaded: {typed.id}")
        return typed

    async def _prepare_with_retries(
        self, descriptor: PluginDescriptor | Mapping[str, Any], plugin_id: str
    ) -> tuple[PluginDescriptor, float]:
        # Only timeouts are retried; validation and dependency errors surface at once.
        # The timeout covers preparation only, never the commit.
        attempts = self._config.load_retries + 1
        attempt = 0
        while True:
            attempt += 1
            try:
                return await asyncio.wait_for(
                    self._prepare(descriptor),
                    timeout=self._config.load_timeout_seconds,
                )
            except TimeoutError:
                logger.warning(
                    "plugin_load_timeout",
                    plugin_id=plugin_id,
                    attempt=attempt,
                    attempts=attempts,
                    timeout=self._config.load_timeout_seconds,
                )
                if attempt >= attempts:
                    raise PluginLoadTimeoutError(
                        f"Plugin {plugin_id} did not load within "
                        f"{self._config.load_timeout_seconds}s "
                        f"after {attempts} attempt(s)"
                    ) from None
                await asyncio.sleep(self._config.load_retry_delay_seconds)

    async def _prepare(
        self, descriptor: PluginDescriptor | Mapping[str, Any]
    ) -> tuple[PluginDescriptor, float]:
        plugin_id = descriptor_id(descriptor)
        self._loading.add(plugin_id)
        try:
            typed = self._check(descriptor)
            start = time.perf_counter()
            if self._config.load_delay_seconds:
                await asyncio.sleep(self._config.load_delay_seconds)
            return typed, time.perf_counter() - start
        finally:
            self._loading.discard(plugin_id)

    def _commit(self, typed: PluginDescriptor, load_time: float) -> LoadedPlugin:
        # Synchronous: nothing can interleave between the duplicate check and
        # the insert.
        if typed.id in self._loaded:
            raise PluginError(f"Plugin already loaded: {typed.id}")
        plugin = LoadedPlugin(
            descriptor=typed,
            config={**self._config.default_plugin_config, **typed.config},
        )
        self._loaded[typed.id] = plugin
        self._active[typed.id] = None
        self._unloaded.discard(typed.id)
        self._catalog[typed.id] = typed
        self._invalidate(typed.id)
        self._metrics.start(typed.id, load_time)
        self._diagnostics.log(
            typed.id, "info", "Plugin loaded successfully", {"load_time": load_time}
        )
        return plugin

    async def unload(self, plugin_id: str, *hook_args: Any) -> bool:
        """Remove a loaded plugin, calling its ``on_unmount`` hook best-effort."""
        if not self._config.plugins_enabled or plugin_id not in self._loaded:
            return False
        if self._config.load_delay_seconds:
            await asyncio.sleep(self._config.load_delay_seconds)
        plugin = self._loaded.get(plugin_id)
        if plugin is None:
            return False

        hook = plugin.hooks.get("on_unmount")
        if hook is not None:
            try:
                hook(*hook_args)
            except Exception as e:
                logger.exception("plugin_unmount_failed", plugin_id=plugin_id)
                self._diagnostics.record_error(
                    plugin_id,
                    e,
                    {"action": "unload", "hook_name": "on_unmount"},
                    plugin,
                )

        del self._loaded[plugin_id]
        self._active.pop(plugin_id, None)
        self._unloaded.add(plugin_id)
        self._invalidate(plugin_id)
        self._diagnostics.log(plugin_id, "info", "Plugin unloaded successfully")
        logger.info("plugin_unloaded", plugin_id=plugin_id)
        await self._emit(PLUGIN_UNLOADED, plugin_id=plugin_id)
        return True

    async def update(
        self, plugin_id: str, descriptor: PluginDescriptor | Mapping[str, Any]
    ) -> LoadedPlugin | None:
        """Unload then load. Config overrides on the old instance are dropped."""
        await self.unload(plugin_id)
        return await self.load(descriptor)

    def enable(self, plugin_id: str) -> bool:
        if not self._config.plugins_enabled:
            return False
        plugin = self._loaded.get(plugin_id)
        if plugin is None or plugin_id in self._active:
            return False
        plugin.active = True
        self._active[plugin_id] = None
        self._diagnostics.log(plugin_id, "info", "Plugin enabled")
        return True

    def disable(self, plugin_id: str) -> bool:
        if not self._config.plugins_enabled or plugin_id not in self._active:
            return False
        self._active.pop(plugin_id)
        self._loaded[plugin_id].active = False
        self._diagnostics.log(plugin_id, "info", "Plugin disabled")
        return True

    def update_config(self, plugin_id: str, partial: Mapping[str, Any]) -> bool:
        if not self._config.plugins_enabled:
            return False
        plugin = self._loaded.get(plugin_id)
        if plugin is None:
            logger.debug("plugin_config_update_skipped", plugin_id=plugin_id)
            return False
        plugin.config = {**plugin.config, **partial}
        self._invalidate(plugin_id)
        logger.debug("plugin_config_updated", plugin_id=plugin_id, keys=list(partial))
        return True

    def clear(self) -> None:
        """Drop every loaded plugin without running hooks. The catalog is kept."""
        self._loaded.clear()
        self._active.clear()
        self._loading.clear()
        self._unloaded.clear()

    async def _emit(self, name: str, **data: Any) -> None:
        if self._event_bus is not None:
            await self._event_bus.emit(Event(name=name, data=data))

    def _invalidate(self, plugin_id: str) -> None:
        """Cached hook answers are only valid for one instance and config."""
        if self._cache is not None:
            self._cache.clear(plugin_id)
