"""Append-only audit logger, JSON lines format."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from bcfield.core.events import Event

logger = structlog.get_logger()


class AuditLogger:
    def __init__(self, log_path: Path | str) -> None:
        self._path = Path(log_path)
        self._path.parent.mkdir(parents=True, exist_ok=True)

    def _write(self, entry: dict[str, Any]) -> None:
        entry["timestamp"] = datetime.now(UTC).isoformat()
        try:
            with open(self._path, "a") as f:
                f.write(json.dumps(entry, default=str) + "\n")
        except OSError as e:
            logger.error("audit_write_failed", error=str(e))

    def log_security_violation(
        self,
        plugin_id: str,
        description: str,
        severity: str,
    ) -> None:
        self._write(
            {
                "event": "security_violation",
                "plugin_id": plugin_id,
                "description": description,
                "severity": severity,
            }
        )

    def log_blocked_request(self, plugin_id: str, request: str, reason: str) -> None:
        self._write(
            {
                "event": "blocked_request",
                "plugin_id": plugin_id,
                "request": _truncate(request),
                "reason": reason,
            }
        )

    def log_permissions_changed(self, plugin_id: str, capabilities: list[str]) -> None:
        self._write(
            {
                "event": "permissions_changed",
                "plugin_id": plugin_id,
                "capabilities": capabilities,
            }
        )

    async def on_lifecycle_event(self, event: Event) -> None:
        """Event bus handler recording plugin load/unload outcomes."""
        self._write({"event": event.name, **event.data})


def _truncate(value: str, limit: int = 500) -> str:
    """Truncate large values for audit readability."""
    if len(value) > limit:
        return value[:limit] + "...[truncated]"
    return value
