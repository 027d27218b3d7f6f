"""Per-plugin capability allow-list and the security audit trail."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Literal

import structlog
from pydantic import BaseModel, ConfigDict, Field

from bcfield.exceptions import PermissionDeniedError

if TYPE_CHECKING:
    from bcfield.core.config import RuntimeConfig
    from bcfield.core.safety.audit import AuditLogger

logger = structlog.get_logger()

WILDCARD = "*"

Severity = Literal["low", "medium", "high", "critical"]


class SecurityViolation(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: f"violation-{uuid.uuid4().hex}")
    plugin_id: str
    description: str
    severity: Severity
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))


class BlockedRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: f"blocked-{uuid.uuid4().hex}")
    plugin_id: str
    request: str
    reason: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))


class PermissionGate:
    """Capability checks plus append-only violation and blocked-request sinks.

    Recording a violation never unloads or disables a plugin; acting on it
    is left to the host.
    """

    def __init__(
        self, config: RuntimeConfig, audit: AuditLogger | None = None
    ) -> None:
        self._config = config
        self._audit = audit
        self._permissions: dict[str, list[str]] = {}
        self._violations: list[SecurityViolation] = []
        self._blocked: list[BlockedRequest] = []
        self.reset()

    def reset(self) -> None:
        self._permissions = {
            pid: list(caps) for pid, caps in self._config.plugin_permissions.items()
        }
        self._violations.clear()
        self._blocked.clear()

    def set_permissions(self, plugin_id: str, capabilities: list[str]) -> None:
        if not self._config.permissions_enabled:
            return
        self._permissions[plugin_id] = list(capabilities)
        logger.info(
            "plugin_permissions_set", plugin_id=plugin_id, capabilities=capabilities
        )
        if self._audit:
            self._audit.log_permissions_changed(plugin_id, list(capabilities))

    def permissions(self, plugin_id: str) -> list[str]:
        return list(self._permissions.get(plugin_id, []))

    def check_permission(self, plugin_id: str, capability: str) -> bool:
        if not self._config.permissions_enabled:
            return True
        if capability in self._config.blocked_capabilities:
            return False
        granted = self._permissions.get(plugin_id, [])
        return capability in granted or WILDCARD in granted

    def require_permission(self, plugin_id: str, capability: str) -> None:
        """Raise PermissionDeniedError, recording a blocked request, unless granted."""
        if self.check_permission(plugin_id, capability):
            return
        reason = f"Missing capability: {capability}"
        self.block_request(plugin_id, capability, reason)
        raise PermissionDeniedError(f"Plugin {plugin_id} denied: {reason}")

    def report_violation(
        self, plugin_id: str, description: str, severity: Severity
    ) -> SecurityViolation | None:
        if not self._config.security_enabled:
            return None
        violation = SecurityViolation(
            plugin_id=plugin_id, description=description, severity=severity
        )
        self._violations.append(violation)
        logger.warning(
            "plugin_security_violation",
            plugin_id=plugin_id,
            description=description,
            severity=severity,
        )
        if self._audit:
            self._audit.log_security_violation(plugin_id, description, severity)
        return violation

    def block_request(
        self, plugin_id: str, request: str, reason: str
    ) -> BlockedRequest | None:
        if not self._config.security_enabled:
            return None
        blocked = BlockedRequest(plugin_id=plugin_id, request=request, reason=reason)
        self._blocked.append(blocked)
        logger.warning(
            "plugin_request_blocked",
            plugin_id=plugin_id,
            request=request,
            reason=reason,
        )
        if self._audit:
            self._audit.log_blocked_request(plugin_id, request, reason)
        return blocked

    def violations(self, plugin_id: str | None = None) -> list[SecurityViolation]:
        if plugin_id is None:
            return list(self._violations)
        return [v for v in self._violations if v.plugin_id == plugin_id]

    def blocked_requests(self, plugin_id: str | None = None) -> list[BlockedRequest]:
        if plugin_id is None:
            return list(self._blocked)
        return [b for b in self._blocked if b.plugin_id == plugin_id]
