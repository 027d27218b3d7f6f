"""Per-plugin TTL cache."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from bcfield.core.config import RuntimeConfig

logger = structlog.get_logger()


class PluginCache:
    def __init__(self, config: RuntimeConfig) -> None:
        self._config = config
        # plugin_id -> key -> (stored_at, value)
        self._entries: dict[str, dict[str, tuple[float, Any]]] = {}

    def get(self, plugin_id: str, key: str, default: Any = None) -> Any:
        if not self._config.caching_enabled:
            return default
        bucket = self._entries.get(plugin_id)
        if not bucket or key not in bucket:
            return default
        stored_at, value = bucket[key]
        if time.monotonic() - stored_at > self._config.cache_ttl_seconds:
            del bucket[key]
            return default
        return value

    def set(self, plugin_id: str, key: str, value: Any) -> None:
        if not self._config.caching_enabled:
            return
        bucket = self._entries.setdefault(plugin_id, {})
        bucket.pop(key, None)
        bucket[key] = (time.monotonic(), value)
        self._evict()

    def __contains__(self, item: tuple[str, str]) -> bool:
        plugin_id, key = item
        sentinel = object()
        return self.get(plugin_id, key, sentinel) is not sentinel

    def size(self) -> int:
        return sum(len(bucket) for bucket in self._entries.values())

    def clear(self, plugin_id: str | None = None) -> None:
        if not self._config.caching_enabled:
            return
        if plugin_id is None:
            self._entries.clear()
        else:
            self._entries.pop(plugin_id, None)
        logger.debug("plugin_cache_cleared", plugin_id=plugin_id or "all")

    def _evict(self) -> None:
        """Drop the oldest entries across all plugins once over capacity."""
        overflow = self.size() - self._config.max_cache_entries
        if overflow <= 0:
            return
        oldest = sorted(
            (stored_at, plugin_id, key)
            for plugin_id, bucket in self._entries.items()
            for key, (stored_at, _) in bucket.items()
        )
        for _, plugin_id, key in oldest[:overflow]:
            del self._entries[plugin_id][key]
