"""Per-plugin execution counters and usage analytics."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import structlog
from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from bcfield.core.config import RuntimeConfig

logger = structlog.get_logger()


# Mutable: MetricsTable updates counters in place.
class PluginMetrics(BaseModel):
    load_time: float = 0.0
    execution_time: float = 0.0
    success_count: int = 0
    error_count: int = 0
    last_used: datetime | None = None


class PluginAnalytics(BaseModel):
    usage: int = 0
    errors: int = 0
    performance: list[float] = Field(default_factory=list)
    user_behavior: dict[str, Any] = Field(default_factory=dict)


class MetricsTable:
    """Owned by the registry (load time) and the hook executor (everything else)."""

    def __init__(self, config: RuntimeConfig) -> None:
        self._config = config
        self._metrics: dict[str, PluginMetrics] = {}
        self._analytics: dict[str, PluginAnalytics] = {}

    def start(self, plugin_id: str, load_time: float) -> None:
        """Create a fresh entry, discarding counters from any earlier load."""
        if not self._config.metrics_enabled:
            return
        self._metrics[plugin_id] = PluginMetrics(load_time=load_time)

    def record_success(self, plugin_id: str, elapsed: float) -> None:
        if self._config.metrics_enabled:
            metrics = self._metrics.setdefault(plugin_id, PluginMetrics())
            metrics.execution_time += elapsed
            metrics.success_count += 1
            metrics.last_used = datetime.now(UTC)
        self._sample(plugin_id, elapsed)

    def record_failure(self, plugin_id: str, elapsed: float) -> None:
        if self._config.metrics_enabled:
            metrics = self._metrics.setdefault(plugin_id, PluginMetrics())
            metrics.execution_time += elapsed
            metrics.error_count += 1
            metrics.last_used = datetime.now(UTC)
        if self._config.analytics_enabled:
            self._analytics.setdefault(plugin_id, PluginAnalytics()).errors += 1
        self._sample(plugin_id, elapsed)

    def _sample(self, plugin_id: str, elapsed: float) -> None:
        if not self._config.analytics_enabled:
            return
        analytics = self._analytics.setdefault(plugin_id, PluginAnalytics())
        performance = analytics.performance
        performance.append(elapsed)
        overflow = len(performance) - self._config.max_metrics_history
        if overflow > 0:
            del performance[:overflow]

    def get(self, plugin_id: str) -> PluginMetrics | None:
        metrics = self._metrics.get(plugin_id)
        return metrics.model_copy() if metrics else None

    def error_count(self, plugin_id: str) -> int:
        metrics = self._metrics.get(plugin_id)
        return metrics.error_count if metrics else 0

    def clear(self, plugin_id: str | None = None) -> None:
        if plugin_id is None:
            self._metrics.clear()
        else:
            self._metrics.pop(plugin_id, None)

    def update_analytics(self, plugin_id: str, data: dict[str, Any]) -> None:
        if not self._config.analytics_enabled:
            return
        analytics = self._analytics.setdefault(plugin_id, PluginAnalytics())
        analytics.usage += 1
        analytics.user_behavior = dict(data)
        logger.debug(
            "plugin_analytics_updated", plugin_id=plugin_id, usage=analytics.usage
        )

    def analytics(self, plugin_id: str) -> PluginAnalytics:
        analytics = self._analytics.get(plugin_id)
        return analytics.model_copy(deep=True) if analytics else PluginAnalytics()

    def all_analytics(self) -> dict[str, PluginAnalytics]:
        return {pid: a.model_copy(deep=True) for pid, a in self._analytics.items()}

    def reset(self) -> None:
        self._metrics.clear()
        self._analytics.clear()
