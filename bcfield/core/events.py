"""Plugin lifecycle notifications.

The registry emits one event per load, unload and failed load. Handlers are
awaited in subscription order; a handler that raises is logged and skipped.
"""

from collections.abc import Callable, Coroutine, Iterable
from datetime import UTC, datetime
from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict, Field

logger = structlog.get_logger()

PLUGIN_LOADED = "plugin.loaded"
PLUGIN_UNLOADED = "plugin.unloaded"
PLUGIN_LOAD_FAILED = "plugin.load_failed"

LIFECYCLE_EVENTS = (PLUGIN_LOADED, PLUGIN_UNLOADED, PLUGIN_LOAD_FAILED)


class Event(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    data: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def plugin_id(self) -> str | None:
        return self.data.get("plugin_id")


LifecycleHandler = Callable[[Event], Coroutine[Any, Any, None]]


class EventBus:
    def __init__(self) -> None:
        self._subscribers: dict[str, list[LifecycleHandler]] = {}

    def subscribe(
        self, event_names: str | Iterable[str], handler: LifecycleHandler
    ) -> None:
        names = [event_names] if isinstance(event_names, str) else event_names
        for name in names:
            self._subscribers.setdefault(name, []).append(handler)

    async def emit(self, event: Event) -> None:
        for handler in self._subscribers.get(event.name, []):
            try:
                await handler(event)
            except Exception:
                logger.exception(
                    "lifecycle_handler_failed",
                    event_name=event.name,
                    plugin_id=event.plugin_id,
                    handler=getattr(handler, "__name__", repr(handler)),
                )
