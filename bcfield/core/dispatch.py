"""Run one hook across every active plugin, isolating failures."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog
from pydantic import ValidationError

from bcfield.plugins.base import FieldCheck

if TYPE_CHECKING:
    from bcfield.core.cache import PluginCache
    from bcfield.plugins.base import LoadedPlugin
    from bcfield.plugins.hooks import HookExecutor
    from bcfield.plugins.registry import PluginRegistry

logger = structlog.get_logger()


class HookDispatcher:
    """Host-side fan-out over active plugins in activation order.

    A plugin whose hook raises is skipped; the executor has already
    recorded the failure against that plugin.
    """

    def __init__(
        self,
        registry: PluginRegistry,
        executor: HookExecutor,
        cache: PluginCache,
    ) -> None:
        self._registry = registry
        self._executor = executor
        self._cache = cache

    def _with_hook(self, hook_name: str) -> list[LoadedPlugin]:
        return [p for p in self._registry.active() if p.hooks.get(hook_name)]

    def dispatch(self, hook_name: str, *args: Any) -> dict[str, Any]:
        results: dict[str, Any] = {}
        for plugin in self._with_hook(hook_name):
            try:
                results[plugin.id] = self._executor.invoke(
                    plugin.id, hook_name, *args
                )
            except Exception:
                logger.debug(
                    "dispatch_plugin_skipped", plugin_id=plugin.id, hook_name=hook_name
                )
        return results

    def transform(self, value: str) -> str:
        for plugin in self._with_hook("on_transform"):
            try:
                transformed = self._executor.invoke(
                    plugin.id, "on_transform", value, plugin.config
                )
            except Exception:
                continue
            if isinstance(transformed, str):
                value = transformed
        return value

    def validate(self, value: str) -> dict[str, FieldCheck]:
        checks: dict[str, FieldCheck] = {}
        for plugin in self._with_hook("on_validate"):
            try:
                result = self._executor.invoke(
                    plugin.id, "on_validate", value, plugin.config
                )
            except Exception as e:
                checks[plugin.id] = FieldCheck(
                    is_valid=False, message=f"Validator failed: {e}"
                )
                continue
            checks[plugin.id] = _as_field_check(result)
        return checks

    def suggest(self, value: str) -> list[str]:
        """Merge suggestions in plugin order, caching each plugin's answer per value."""
        suggestions: list[str] = []
        cache_key = f"suggest:{value}"
        for plugin in self._with_hook("on_suggest"):
            found = self._cache.get(plugin.id, cache_key)
            if found is None:
                try:
                    found = list(
                        self._executor.invoke(
                            plugin.id, "on_suggest", value, plugin.config
                        )
                        or []
                    )
                except Exception:
                    continue
                self._cache.set(plugin.id, cache_key, found)
            for suggestion in found:
                if suggestion not in suggestions:
                    suggestions.append(suggestion)
        return suggestions

    def complete(self, value: str) -> str | None:
        for plugin in self._with_hook("on_complete"):
            try:
                completion = self._executor.invoke(
                    plugin.id, "on_complete", value, plugin.config
                )
            except Exception:
                continue
            if completion:
                return completion
        return None


def _as_field_check(result: Any) -> FieldCheck:
    if isinstance(result, FieldCheck):
        return result
    if isinstance(result, dict):
        try:
            return FieldCheck.model_validate(result)
        except ValidationError:
            return FieldCheck(is_valid=False, message="Malformed validation result")
    return FieldCheck(is_valid=bool(result))
